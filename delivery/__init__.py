"""Notification delivery: senders, link tokens and the email template."""

from .email_sender import (
    DeliveryResult,
    EmailSender,
    LogEmailSender,
    ResendEmailSender,
    get_email_sender,
)
from .templates import render_deep_dive_email
from .tokens import InMemoryTokenIssuer, JsonFileTokenIssuer, TokenSet, hash_token

__all__ = [
    "DeliveryResult",
    "EmailSender",
    "LogEmailSender",
    "ResendEmailSender",
    "get_email_sender",
    "render_deep_dive_email",
    "InMemoryTokenIssuer",
    "JsonFileTokenIssuer",
    "TokenSet",
    "hash_token",
]
