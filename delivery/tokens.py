"""Scoped link tokens for notification footers. Only sha256 hashes are kept."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import hashlib
import json
import logging
import os
from pathlib import Path
import secrets
import tempfile
from threading import Lock
from typing import Dict, Optional, Union

from pydantic import BaseModel, ValidationError

from utils.exceptions import StorageError


logger = logging.getLogger(__name__)

TOKEN_SCOPES = ("prefs", "pause", "unsubscribe")
DEFAULT_TTL_DAYS = 14
UNSUBSCRIBE_TTL_DAYS = 90


@dataclass
class TokenSet:
    prefs: str
    pause: str
    unsubscribe: str


class StoredToken(BaseModel):
    user_id: str
    scope: str
    expires_at: datetime


def hash_token(token: str) -> str:
    return hashlib.sha256(str(token).encode("utf-8")).hexdigest()


class InMemoryTokenIssuer:
    """Issues ``prefs``/``pause``/``unsubscribe`` tokens and validates them by hash, scope and expiry."""

    def __init__(self) -> None:
        self._tokens: Dict[str, StoredToken] = {}
        self._lock = Lock()

    def _commit(self) -> None:
        """Hook for persistent subclasses; called with the lock held."""

    def issue(self, user_id: str, scope: str, *, now: Optional[datetime] = None) -> str:
        if scope not in TOKEN_SCOPES:
            raise ValueError(f"Unknown token scope: {scope}")
        current = now or datetime.now(timezone.utc)
        ttl = UNSUBSCRIBE_TTL_DAYS if scope == "unsubscribe" else DEFAULT_TTL_DAYS
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._tokens[hash_token(token)] = StoredToken(
                user_id=str(user_id),
                scope=scope,
                expires_at=current + timedelta(days=ttl),
            )
            self._commit()
        return token

    def issue_scoped_tokens(self, user_id: str, *, now: Optional[datetime] = None) -> TokenSet:
        return TokenSet(
            prefs=self.issue(user_id, "prefs", now=now),
            pause=self.issue(user_id, "pause", now=now),
            unsubscribe=self.issue(user_id, "unsubscribe", now=now),
        )

    def validate(self, token: str, required_scope: str, *, now: Optional[datetime] = None) -> Optional[str]:
        """Owning user id, or None when unknown, out of scope or expired."""
        with self._lock:
            stored = self._tokens.get(hash_token(token))
        if stored is None or stored.scope != required_scope:
            return None
        if stored.expires_at < (now or datetime.now(timezone.utc)):
            return None
        return stored.user_id


class JsonFileTokenIssuer(InMemoryTokenIssuer):
    """Token hashes mirrored to a JSON file so links stay valid across invocations."""

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read token file {self.path}: {e}") from e

        try:
            for token_hash, raw in payload.get("tokens", {}).items():
                self._tokens[token_hash] = StoredToken.model_validate(raw)
        except ValidationError as e:
            raise StorageError(f"Corrupt token file {self.path}", {"errors": e.errors()}) from e

        logger.debug(f"Loaded {len(self._tokens)} token hashes from {self.path}")

    def _commit(self) -> None:
        data = json.dumps(
            {"tokens": {key: value.model_dump(mode="json") for key, value in self._tokens.items()}},
            indent=2,
        )
        fd, tmp_name = tempfile.mkstemp(prefix=".tokens-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Cannot write token file {self.path}: {e}") from e
