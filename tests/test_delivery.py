from __future__ import annotations

import json

import httpx
import pytest

from deep_dive import parse_report_markdown
from deep_dive_support import VALID_REPORT
from delivery import LogEmailSender, ResendEmailSender, TokenSet, render_deep_dive_email
from utils.exceptions import ConfigurationError, DeliveryError


@pytest.mark.asyncio
async def test_log_sender_appends_jsonl(tmp_path) -> None:
    sender = LogEmailSender(tmp_path / "outbox", from_address="Deep Dive <dd@example.com>")

    await sender.send("a@example.com", "First", "<p>1</p>")
    result = await sender.send("b@example.com", "Second", "<p>2</p>")

    lines = (tmp_path / "outbox" / "notifications.jsonl").read_text(encoding="utf-8").splitlines()
    assert result.ok is True
    assert len(lines) == 2
    entry = json.loads(lines[1])
    assert entry["channel"] == "send_email"
    assert entry["payload"]["to"] == "b@example.com"
    assert entry["payload"]["subject"] == "Second"


@pytest.mark.asyncio
async def test_resend_sender_posts_message() -> None:
    seen = {}

    def _handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email_123"})

    sender = ResendEmailSender("re_key", from_address="dd@example.com", transport=httpx.MockTransport(_handler))
    result = await sender.send("a@example.com", "Subject", "<p>hi</p>")

    assert result.message_id == "email_123"
    assert seen["auth"] == "Bearer re_key"
    assert seen["body"]["to"] == ["a@example.com"]


@pytest.mark.asyncio
async def test_resend_sender_raises_on_rejection() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "bad address"}))
    sender = ResendEmailSender("re_key", from_address="dd@example.com", transport=transport)

    with pytest.raises(DeliveryError):
        await sender.send("nobody", "Subject", "<p>hi</p>")


def test_resend_sender_requires_api_key() -> None:
    with pytest.raises(ConfigurationError):
        ResendEmailSender("", from_address="dd@example.com")


def test_email_template_escapes_content_and_links_tokens() -> None:
    report = parse_report_markdown(VALID_REPORT.replace("large banks", "large <b>banks</b>"))
    html = render_deep_dive_email(
        report,
        TokenSet(prefs="p1", pause="p2", unsubscribe="u3"),
        app_host="https://app.example.com/",
        subject="Deep Dive | Bank Capital Rules | October 14",
        date_label="October 14",
    )

    assert "large &lt;b&gt;banks&lt;/b&gt;" in html
    assert "https://app.example.com/prefs?token=p1" in html
    assert "https://app.example.com/api/pause?token=p2" in html
    assert "https://app.example.com/api/unsubscribe?token=u3" in html
    assert "https://news.example.com/a1" in html
