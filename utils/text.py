"""URL canonicalization and text truncation helpers."""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse


_TRACKING_PARAMS = {
    "ref",
    "source",
    "fbclid",
    "gclid",
    "msclkid",
}
_WS_RE = re.compile(r"\s+")


def _is_tracking_param(key: str) -> bool:
    lowered = str(key or "").strip().lower()
    return lowered.startswith("utm_") or lowered in _TRACKING_PARAMS


def canonicalize_url(url: str) -> str:
    """Tracking-parameter-stripped, host-lowercased, trailing-slash-normalized form."""
    value = str(url or "").strip()
    if not value.startswith(("http://", "https://")):
        return value

    try:
        parsed = urlparse(value)
    except ValueError:
        return value

    host = str(parsed.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    if parsed.port and parsed.port not in {80, 443}:
        host = f"{host}:{parsed.port}"

    path = re.sub(r"/{2,}", "/", str(parsed.path or ""))
    path = path.rstrip("/") or "/"

    query_pairs = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if not _is_tracking_param(k)]
    query = urlencode(query_pairs, doseq=True)

    return urlunparse((str(parsed.scheme).lower(), host, path, "", query, ""))


def extract_domain(url: str) -> str:
    """Lowercase host without ``www.``; empty string for unparsable input."""
    try:
        host = str(urlparse(str(url or "").strip()).hostname or "").lower()
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host


def normalize_whitespace(value: str) -> str:
    return _WS_RE.sub(" ", str(value or "")).strip()


def truncate_text(text: str, max_length: int) -> str:
    """Cut to ``max_length``, backing off to the last space when it lies past 80% of the cap."""
    value = str(text or "")
    if len(value) <= max_length:
        return value
    truncated = value[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return truncated[:last_space]
    return truncated
