"""
Corpus / relevance source
Recent articles from the upstream feed collector, the per-(user, topic)
relevance index, host quality tiers and host block rules.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Dict, Iterable, List, Optional

from core import ArticleMatch, Candidate, CorpusArticle, Topic
from utils.text import canonicalize_url, extract_domain


DEFAULT_QUALITY_TIER = 3
USABLE_ACCESS_STATUSES = frozenset({"ok", "unknown"})


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class InMemoryCorpus:
    """Article corpus with a precomputed relevance index and a keyword fallback."""

    def __init__(
        self,
        articles: Optional[Iterable[CorpusArticle]] = None,
        matches: Optional[Iterable[ArticleMatch]] = None,
        quality_tiers: Optional[Dict[str, int]] = None,
        blocked_patterns: Optional[Iterable[str]] = None,
    ) -> None:
        self._articles: Dict[str, CorpusArticle] = {}
        self._matches: List[ArticleMatch] = []
        self._tiers: Dict[str, int] = {}
        self._blocked: List[str] = []
        self._lock = Lock()

        for article in articles or []:
            self.add_article(article)
        for match in matches or []:
            self.add_match(match)
        for host, tier in (quality_tiers or {}).items():
            self.set_quality_tier(host, tier)
        for pattern in blocked_patterns or []:
            self.block_host(pattern)

    def add_article(self, article: CorpusArticle) -> None:
        with self._lock:
            self._articles[canonicalize_url(article.url)] = article

    def add_match(self, match: ArticleMatch) -> None:
        with self._lock:
            self._matches.append(match)

    def set_quality_tier(self, host_or_url: str, tier: int) -> None:
        host = extract_domain(host_or_url) if "://" in host_or_url else host_or_url.lower().removeprefix("www.")
        with self._lock:
            self._tiers[host] = int(tier)

    def block_host(self, pattern: str) -> None:
        value = str(pattern or "").strip().lower()
        if value:
            with self._lock:
                self._blocked.append(value)

    def _is_recent(self, article: CorpusArticle, cutoff: datetime) -> bool:
        seen_at = _aware(article.fetched_at) or _aware(article.published_at)
        return seen_at is not None and seen_at >= cutoff

    def _usable(self, article: Optional[CorpusArticle], cutoff: datetime) -> bool:
        return (
            article is not None
            and str(article.access_status).lower() in USABLE_ACCESS_STATUSES
            and self._is_recent(article, cutoff)
        )

    @staticmethod
    def _to_candidate(article: CorpusArticle) -> Candidate:
        return Candidate(
            url=canonicalize_url(article.url),
            title=article.title or None,
            source_name=article.source_name,
            published_at=article.published_at,
        )

    def recent_candidates(
        self,
        topic: Topic,
        *,
        user_id: str,
        lookback_days: int = 7,
        limit: int = 24,
        now: Optional[datetime] = None,
    ) -> List[Candidate]:
        """
        Candidate articles for a topic, relevance index first.

        Index hits are ordered by score descending; when the index has none the
        keyword fallback matches the topic label against titles and snippets,
        newest first.
        """
        current = _aware(now) or datetime.now(timezone.utc)
        cutoff = current - timedelta(days=max(0, int(lookback_days)))
        limit = max(0, int(limit))

        with self._lock:
            matches = [
                match
                for match in self._matches
                if match.user_id == user_id and match.topic_id == topic.id
            ]
            matches.sort(key=lambda match: match.score, reverse=True)
            indexed: List[CorpusArticle] = []
            for match in matches:
                article = self._articles.get(canonicalize_url(match.url))
                if self._usable(article, cutoff):
                    indexed.append(article)
                if len(indexed) >= limit:
                    break
            if indexed:
                return [self._to_candidate(article) for article in indexed]

            needle = str(topic.label or "").strip().lower()
            if not needle:
                return []
            hits = [
                article
                for article in self._articles.values()
                if self._usable(article, cutoff)
                and (needle in str(article.title or "").lower() or needle in str(article.snippet or "").lower())
            ]

        epoch = datetime.min.replace(tzinfo=timezone.utc)
        hits.sort(key=lambda article: _aware(article.published_at) or epoch, reverse=True)
        return [self._to_candidate(article) for article in hits[:limit]]

    def source_quality_tier(self, url: str) -> int:
        """Quality tier of the URL's host; lower is better, unknown hosts rank 3."""
        with self._lock:
            return self._tiers.get(extract_domain(url), DEFAULT_QUALITY_TIER)

    def blocked_host_patterns(self) -> List[str]:
        with self._lock:
            return list(self._blocked)
