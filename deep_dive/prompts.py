"""Prompt text for report synthesis and per-source summaries."""

from __future__ import annotations

from typing import Sequence

from core import Source
from utils.text import truncate_text


SYNTHESIS_SYSTEM_PROMPT = """You are a research analyst producing a deep-dive briefing for financial services and consulting professionals.

You will receive extracted text from multiple sources about a specific topic. Synthesize them into a structured report.

CRITICAL RULES:
- Use concrete entities (companies, regulators, products, people, dates)
- Ground every claim in the source text provided
- Active voice, confident tone
- No hedging ("may", "might", "could potentially")
- No filler: "fast-changing landscape", "paradigm", "leveraging", "it is important to note", "this article", "the piece", "game-changer", "cutting-edge", "unprecedented"
- Maximum 1 exclamation mark in entire report
- Action prompts must be specific and actionable for a client engagement

OUTPUT FORMAT (strict markdown):
# [Headline, one line, specific]

## What Happened
- [3-6 bullets of key facts with specific details]

## What Changed
- [2-4 bullets on what's different now. If nothing changed, write: "No meaningful change identified."]

## Why It Matters
- [Exactly 3 bullets on implications for financial services / consulting professionals]

## Risks / Watch-outs
- [2-4 bullets on risks or things to monitor]

## Action Prompts
- [Exactly 3 bullets: concrete, client-ready actions a consultant could take this week]

## Sources
1. [Title](URL) — Source Name — Date"""

STRICTER_RETRY_PROMPT = """Your previous synthesis was rejected for quality issues. This time:
- Every bullet MUST reference a specific entity, date, or event from the sources
- Remove ALL filler language
- Ensure every section has the required number of bullets
- Ground EVERY claim in the source text"""

SUMMARY_SYSTEM_PROMPT = (
    "Summarize this article in 3-4 sentences. Focus on concrete facts, entities, and events. No filler."
)


def build_direct_prompt(sources: Sequence[Source], topic: str, *, excerpt_chars: int, strict: bool = False) -> str:
    blocks = []
    for i, source in enumerate(sources, start=1):
        blocks.append(
            f"--- SOURCE {i} ---\n"
            f"Title: {source.title or 'Unknown'}\n"
            f"URL: {source.url}\n"
            f"Source: {source.source_name or 'Unknown'}\n\n"
            f"{truncate_text(source.extracted_text or '', excerpt_chars)}\n"
        )
    preamble = f"{STRICTER_RETRY_PROMPT}\n\n" if strict else ""
    return f'Topic: "{topic}"\n\n{preamble}' + "\n".join(blocks)


def build_summary_prompt(source: Source, *, excerpt_chars: int) -> str:
    return (
        f"Title: {source.title or 'Unknown'}\n"
        f"URL: {source.url}\n\n"
        f"{truncate_text(source.extracted_text or '', excerpt_chars)}"
    )


def build_reduce_prompt(summaries: Sequence[tuple], topic: str) -> str:
    """``summaries`` holds ``(source, summary_text)`` pairs in source order."""
    blocks = []
    for i, (source, summary) in enumerate(summaries, start=1):
        blocks.append(
            f'{i}. "{source.title or "Untitled"}" ({source.source_name or "Unknown"})\n'
            f"URL: {source.url}\n"
            f"Summary: {summary}\n"
        )
    return f'Topic: "{topic}"\n\nSynthesize these article summaries into a deep dive report:\n\n' + "\n".join(blocks)
