"""
Deep Dive Module
Resumable, time-boxed research job stages and their orchestrator
"""
from .services import DeepDiveServices, build_services
from .discover import CandidateDiscovery, resolve_max_sources, select_candidates
from .fetch_extract import EvidenceExtractor, classify_document, fetch_source
from .report_format import (
    NO_CHANGE_SENTENCE,
    build_no_coverage_report,
    build_template_report,
    parse_report_markdown,
    render_report_html,
)
from .validators import BANNED_PHRASES, extract_entities, validate_report
from .synthesize import ReportSynthesizer, strategy_chain
from .publish import ReportPublisher, build_subject
from .orchestrator import DeepDiveOrchestrator

__all__ = [
    "DeepDiveServices",
    "build_services",
    # Stages
    "CandidateDiscovery",
    "EvidenceExtractor",
    "ReportSynthesizer",
    "ReportPublisher",
    "DeepDiveOrchestrator",
    # Helpers
    "resolve_max_sources",
    "select_candidates",
    "classify_document",
    "fetch_source",
    "strategy_chain",
    "build_subject",
    # Report format
    "NO_CHANGE_SENTENCE",
    "build_no_coverage_report",
    "build_template_report",
    "parse_report_markdown",
    "render_report_html",
    # Validation
    "BANNED_PHRASES",
    "extract_entities",
    "validate_report",
]
