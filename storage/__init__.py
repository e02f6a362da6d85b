"""
Storage Module
Job state persistence and read-only lookups
"""
from .job_store import InMemoryJobStore, JobStore
from .file_store import JsonFileJobStore
from .directory import InMemoryDirectory
from .seed import build_from_seed, load_seed

__all__ = [
    # Job State Store
    "JobStore",
    "InMemoryJobStore",
    "JsonFileJobStore",
    # Lookups
    "InMemoryDirectory",
    "build_from_seed",
    "load_seed",
]
