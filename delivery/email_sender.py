"""Outbound notification senders: local JSONL outbox or the Resend HTTP API."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx

from utils.exceptions import ConfigurationError, DeliveryError


logger = logging.getLogger(__name__)

RESEND_ENDPOINT = "https://api.resend.com/emails"


@dataclass
class DeliveryResult:
    ok: bool
    channel: str
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailSender(ABC):
    """``send(to, subject, html)``; raises DeliveryError when the message was not accepted."""

    channel = "email"

    @abstractmethod
    async def send(self, to_address: str, subject: str, html: str) -> DeliveryResult:
        pass


class LogEmailSender(EmailSender):
    """Appends each message to ``notifications.jsonl`` in the outbox directory."""

    channel = "outbox"

    def __init__(self, out_dir: Union[str, Path], *, from_address: str = ""):
        self.out_dir = Path(out_dir)
        self.from_address = from_address

    async def send(self, to_address: str, subject: str, html: str) -> DeliveryResult:
        entry: Dict[str, Any] = {
            "channel": "send_email",
            "payload": {"from": self.from_address, "to": str(to_address), "subject": str(subject), "html": str(html)},
            "sent_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "status": "ok",
        }
        try:
            self.out_dir.mkdir(parents=True, exist_ok=True)
            log_path = self.out_dir / "notifications.jsonl"
            with log_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            raise DeliveryError(f"Cannot write outbox: {e}", channel=self.channel) from e
        return DeliveryResult(ok=True, channel=self.channel, message_id=str(log_path))


class ResendEmailSender(EmailSender):
    """Resend transactional email API."""

    channel = "resend"

    def __init__(
        self,
        api_key: str,
        *,
        from_address: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ConfigurationError("EMAIL_RESEND_API_KEY is required for the resend sender")
        self.api_key = api_key
        self.from_address = from_address
        self.timeout = float(timeout)
        self._transport = transport

    async def send(self, to_address: str, subject: str, html: str) -> DeliveryResult:
        payload = {"from": self.from_address, "to": [to_address], "subject": subject, "html": html}
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=self._transport) as client:
                response = await client.post(RESEND_ENDPOINT, json=payload, headers=headers)
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DeliveryError(f"Resend delivery failed: {e}", channel=self.channel) from e
        return DeliveryResult(ok=True, channel=self.channel, message_id=str(body.get("id") or "") or None)


def get_email_sender(provider: Optional[str] = None) -> EmailSender:
    """Sender for ``EMAIL_PROVIDER`` (``log`` by default)."""
    from config import get_email_settings

    settings = get_email_settings()
    provider = (provider or settings.provider or "log").lower()

    if provider == "log":
        return LogEmailSender(settings.outbox_dir, from_address=settings.from_address)
    elif provider == "resend":
        return ResendEmailSender(
            settings.resend_api_key or "",
            from_address=settings.from_address,
            timeout=settings.timeout,
        )
    else:
        raise ConfigurationError(f"Unsupported email provider: {provider}")
