"""
Configuration Management Module
Centralised settings for the deep dive research engine
"""
from .settings import (
    DeepDiveSettings,
    EmailSettings,
    FeatureFlags,
    LLMSettings,
    Settings,
    StorageSettings,
    get_deep_dive_settings,
    get_email_settings,
    get_llm_settings,
    get_settings,
    get_storage_settings,
)

__all__ = [
    "DeepDiveSettings",
    "EmailSettings",
    "FeatureFlags",
    "LLMSettings",
    "Settings",
    "StorageSettings",
    "get_deep_dive_settings",
    "get_email_settings",
    "get_llm_settings",
    "get_settings",
    "get_storage_settings",
]
