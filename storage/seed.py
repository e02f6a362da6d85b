"""Loads the directory and corpus from a JSON seed document."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from pydantic import ValidationError

from core import ArticleMatch, CorpusArticle, DeepDiveConfig, Topic, UserProfile
from sources.corpus import InMemoryCorpus
from utils.exceptions import ConfigurationError

from .directory import InMemoryDirectory


logger = logging.getLogger(__name__)


def build_from_seed(payload: Dict[str, Any]) -> Tuple[InMemoryDirectory, InMemoryCorpus]:
    """
    Build lookup collaborators from a seed mapping.

    Keys: ``topics``, ``users``, ``configs``, ``articles``, ``matches``,
    ``quality_tiers`` (host -> tier) and ``blocked_hosts``.
    """
    try:
        directory = InMemoryDirectory(
            topics=[Topic.model_validate(item) for item in payload.get("topics", [])],
            users=[UserProfile.model_validate(item) for item in payload.get("users", [])],
            configs=[DeepDiveConfig.model_validate(item) for item in payload.get("configs", [])],
        )
        corpus = InMemoryCorpus(
            articles=[CorpusArticle.model_validate(item) for item in payload.get("articles", [])],
            matches=[ArticleMatch.model_validate(item) for item in payload.get("matches", [])],
            quality_tiers=dict(payload.get("quality_tiers") or {}),
            blocked_patterns=list(payload.get("blocked_hosts") or []),
        )
    except ValidationError as e:
        raise ConfigurationError("Invalid seed document", {"errors": e.errors()}) from e
    return directory, corpus


def load_seed(path: Union[str, Path]) -> Tuple[InMemoryDirectory, InMemoryCorpus]:
    seed_path = Path(path)
    if not seed_path.exists():
        logger.warning(f"Seed file not found, starting empty: {seed_path}")
        return InMemoryDirectory(), InMemoryCorpus()
    try:
        with open(seed_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read seed file {seed_path}: {e}") from e
    return build_from_seed(payload)
