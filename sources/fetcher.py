"""Document fetch: GET with redirect-follow and a fixed browser user agent."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

import httpx


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


@dataclass
class FetchResponse:
    status: int
    final_url: str
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class DocumentFetcher(ABC):
    """Retrieves a document; transport errors are raised to the caller."""

    @abstractmethod
    async def get(self, url: str) -> FetchResponse:
        pass


class HttpxDocumentFetcher(DocumentFetcher):
    """httpx-backed fetcher with a short per-request timeout."""

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = float(timeout)
        self.headers: Dict[str, str] = {"User-Agent": user_agent, "Accept": DEFAULT_ACCEPT}
        self._transport = transport

    async def get(self, url: str) -> FetchResponse:
        timeout = httpx.Timeout(self.timeout)
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=self.headers,
            transport=self._transport,
        ) as client:
            response = await client.get(url)
            return FetchResponse(
                status=response.status_code,
                final_url=str(response.url),
                body=str(response.text or ""),
            )
