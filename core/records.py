"""Read-only records owned by external collaborators (users, topics, corpus)."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


DAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")


class Topic(BaseModel):
    """A subject a user can request deep dives on."""

    id: str
    label: str


class UserProfile(BaseModel):
    id: str
    email: str
    timezone: str = "UTC"
    email_enabled: bool = True
    paused: bool = False


class DeepDiveConfig(BaseModel):
    """Per-user deep dive preferences."""

    user_id: str
    enabled: bool = True
    day_of_week: str = "MO"
    max_sources: Optional[int] = None
    topic_ids: List[str] = Field(default_factory=list)

    @field_validator("day_of_week", mode="before")
    @classmethod
    def _day_code(cls, value: object) -> str:
        code = str(value or "").strip().upper()[:2]
        if code not in DAY_CODES:
            raise ValueError(f"day_of_week must be one of {', '.join(DAY_CODES)}")
        return code


class CorpusArticle(BaseModel):
    """An article already ingested by the upstream feed collector."""

    url: str
    title: str = ""
    snippet: str = ""
    source_name: Optional[str] = None
    published_at: Optional[datetime] = None
    fetched_at: Optional[datetime] = None
    access_status: str = "unknown"


class ArticleMatch(BaseModel):
    """Precomputed relevance of an article to a (user, topic) pair."""

    user_id: str
    topic_id: str
    url: str
    score: float = 0.0
