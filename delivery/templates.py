"""Inline-styled HTML for the deep dive notification email."""

from __future__ import annotations

from html import escape
from typing import Iterable

from core import ReportDocument

from .tokens import TokenSet


INDIGO = "#002D62"
AMBER = "#FDB913"
MUTED = "#828282"

_H2 = (
    f"margin: 0 0 16px; color: {INDIGO}; font-size: 20px; font-weight: bold; "
    f"border-bottom: 2px solid {AMBER}; padding-bottom: 8px;"
)


def _bullets(items: Iterable[str], color: str = "#333333") -> str:
    return "".join(
        f'<li style="margin-bottom: 10px; line-height: 1.6; color: {color};">{escape(item)}</li>' for item in items
    )


def _section(title: str, items: Iterable[str]) -> str:
    return (
        '<tr><td style="padding: 0 40px 24px;">'
        f'<h2 style="{_H2}">{escape(title)}</h2>'
        f'<ul style="margin: 0; padding-left: 24px;">{_bullets(items)}</ul>'
        "</td></tr>"
    )


def _sources(report: ReportDocument) -> str:
    rows = []
    for source in report.sources:
        meta = escape(source.source)
        if source.date:
            meta += f", {escape(source.date)}"
        rows.append(
            '<li style="margin-bottom: 10px; line-height: 1.6;">'
            f'<a href="{escape(source.url)}" style="color: {AMBER}; text-decoration: none; font-weight: bold;">'
            f"{escape(source.title)}</a>"
            f'<span style="color: {MUTED}; font-size: 13px;"> &mdash; {meta}</span></li>'
        )
    return "".join(rows)


def render_deep_dive_email(
    report: ReportDocument,
    tokens: TokenSet,
    *,
    app_host: str,
    subject: str,
    date_label: str,
) -> str:
    host = str(app_host or "").rstrip("/")
    prefs_url = f"{host}/prefs?token={tokens.prefs}"
    pause_url = f"{host}/api/pause?token={tokens.pause}"
    unsubscribe_url = f"{host}/api/unsubscribe?token={tokens.unsubscribe}"

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(subject)}</title>
</head>
<body style="margin: 0; padding: 0; background-color: #F7F7F7; font-family: Arial, Helvetica, sans-serif;">
  <table role="presentation" cellpadding="0" cellspacing="0" border="0" width="100%" style="background-color: #F7F7F7;">
    <tr><td align="center" style="padding: 32px 16px;">
      <table role="presentation" cellpadding="0" cellspacing="0" border="0" width="680" style="max-width: 680px; background-color: #FFFFFF; border-radius: 8px;">
        <tr><td style="padding: 32px 40px; background-color: {INDIGO};">
          <h1 style="margin: 0; color: #FFFFFF; font-size: 26px; font-weight: bold; line-height: 1.3;">{escape(report.headline)}</h1>
          <p style="margin: 8px 0 0; color: #BDBDBD; font-size: 14px;">Deep Dive &mdash; {escape(date_label)}</p>
        </td></tr>
        <tr><td style="padding: 32px 0 0;"></td></tr>
        {_section("What Happened", report.what_happened)}
        {_section("What Changed", report.what_changed)}
        {_section("Why It Matters", report.why_it_matters)}
        {_section("Risks / Watch-outs", report.risks)}
        <tr><td style="padding: 0 40px 24px;">
          <table role="presentation" cellpadding="0" cellspacing="0" border="0" width="100%" style="background-color: {INDIGO}; border-radius: 6px;">
            <tr><td style="padding: 24px;">
              <h2 style="margin: 0 0 16px; color: {AMBER}; font-size: 20px; font-weight: bold;">Action Prompts</h2>
              <ul style="margin: 0; padding-left: 24px;">{_bullets(report.action_prompts, color="#FFFFFF")}</ul>
            </td></tr>
          </table>
        </td></tr>
        <tr><td style="padding: 0 40px 32px;">
          <h2 style="margin: 0 0 16px; color: {INDIGO}; font-size: 20px; font-weight: bold; border-bottom: 2px solid #E0E0E0; padding-bottom: 8px;">Sources</h2>
          <ol style="margin: 0; padding-left: 24px;">{_sources(report)}</ol>
        </td></tr>
        <tr><td style="padding: 24px 40px; text-align: center; border-top: 1px solid #E0E0E0;">
          <p style="margin: 0 0 12px; font-size: 13px; color: {MUTED};">
            <a href="{escape(prefs_url)}" style="color: {AMBER}; text-decoration: none;">Update preferences</a>
            &nbsp;&bull;&nbsp;
            <a href="{escape(pause_url)}" style="color: {AMBER}; text-decoration: none;">Pause emails</a>
            &nbsp;&bull;&nbsp;
            <a href="{escape(unsubscribe_url)}" style="color: {AMBER}; text-decoration: none;">Unsubscribe</a>
          </p>
          <p style="margin: 0; font-size: 12px; color: #BDBDBD;">You're receiving this because you enabled weekly deep dives.</p>
        </td></tr>
      </table>
    </td></tr>
  </table>
</body>
</html>"""
