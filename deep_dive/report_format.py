"""
Report format
Markdown parsing, safe HTML rendering and the deterministic fallback reports.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence

from markdown_it import MarkdownIt

from core import ReportDocument, Source, SourceCitation


NO_CHANGE_SENTENCE = "No meaningful change identified."

SECTION_WHAT_HAPPENED = "what happened"
SECTION_WHAT_CHANGED = "what changed"
SECTION_WHY_IT_MATTERS = "why it matters"
SECTION_RISKS = "risks / watch-outs"
SECTION_ACTION_PROMPTS = "action prompts"
SECTION_SOURCES = "sources"

_BULLET_RE = re.compile(r"^[-*]\s+")
_NUMBERED_RE = re.compile(r"^\d+[.)]\s+")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
_LEADING_SEPARATOR_RE = re.compile(r"^[\s—–-]+")

_md = MarkdownIt("commonmark", {"html": False})


def _section_key(heading: str) -> str:
    key = heading.strip().lower()
    if key == "risks":
        return SECTION_RISKS
    return key


def _parse_citation(item: str) -> SourceCitation:
    link = _LINK_RE.search(item)
    if not link:
        return SourceCitation(title=item.strip())

    rest = _LEADING_SEPARATOR_RE.sub("", _LINK_RE.sub("", item, count=1)).strip()
    source_name, date = rest, None
    if "—" in rest:
        parts = [part.strip() for part in rest.split("—") if part.strip()]
        source_name = parts[0] if parts else ""
        date = parts[1] if len(parts) > 1 else None
    elif ", " in rest:
        source_name, date = (part.strip() for part in rest.rsplit(", ", 1))
    return SourceCitation(title=link.group(1).strip(), url=link.group(2).strip(), source=source_name, date=date or None)


def parse_report_markdown(markdown: str) -> ReportDocument:
    """Split report markdown into headline, section bullets and source citations."""
    sections: Dict[str, List[str]] = {}
    current = ""
    headline = ""

    for line in str(markdown or "").splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("# "):
            headline = stripped[2:].strip()
            continue
        if stripped.startswith("## "):
            current = _section_key(stripped[3:])
            sections[current] = []
            continue
        if not current:
            continue
        if _BULLET_RE.match(stripped):
            sections[current].append(_BULLET_RE.sub("", stripped, count=1).strip())
        elif current == SECTION_SOURCES and _NUMBERED_RE.match(stripped):
            sections[current].append(_NUMBERED_RE.sub("", stripped, count=1).strip())
        elif current == SECTION_WHAT_CHANGED and stripped.lower() == NO_CHANGE_SENTENCE.lower():
            sections[current].append(stripped)

    return ReportDocument(
        headline=headline,
        what_happened=sections.get(SECTION_WHAT_HAPPENED, []),
        what_changed=sections.get(SECTION_WHAT_CHANGED, []),
        why_it_matters=sections.get(SECTION_WHY_IT_MATTERS, []),
        risks=sections.get(SECTION_RISKS, []),
        action_prompts=sections.get(SECTION_ACTION_PROMPTS, []),
        sources=[_parse_citation(item) for item in sections.get(SECTION_SOURCES, [])],
    )


def render_report_html(markdown: str) -> str:
    """CommonMark to HTML with raw HTML escaped and unsafe link schemes dropped."""
    return _md.render(str(markdown or ""))


def _source_line(index: int, source: Source) -> str:
    title = (source.title or "Source").replace("[", "(").replace("]", ")")
    name = source.source_name or "Unknown"
    line = f"{index}. [{title}]({source.url}) — {name}"
    if source.published_at is not None:
        line += f" — {source.published_at.date().isoformat()}"
    return line


def build_template_report(sources: Sequence[Source], topic: str) -> str:
    """Deterministic overview from source titles and URLs; never calls a model."""
    source_list = "\n".join(_source_line(i, source) for i, source in enumerate(sources, start=1))
    return f"""# {topic} — Weekly Overview

## What Happened
- Multiple sources reported on developments related to {topic}
- Coverage spans {len(sources)} sources from the past week
- Full synthesis was not possible due to processing constraints

## What Changed
- {NO_CHANGE_SENTENCE}

## Why It Matters
- Developments in {topic} may affect client advisory and compliance strategies
- Multiple independent sources indicate sustained activity in this area
- Monitoring recommended for emerging regulatory or market signals

## Risks / Watch-outs
- Limited source availability may indicate early-stage developments
- Follow up with primary source review recommended

## Action Prompts
- Review the linked sources below for detailed coverage
- Flag any client-relevant developments for team discussion
- Schedule a follow-up deep dive for next week if warranted

## Sources
{source_list}"""


def build_no_coverage_report(topic: Optional[str]) -> str:
    """Fixed report used when no accessible source exists for the period."""
    return f"""# {topic or "Topic"} — No Coverage Available

## What Happened
- No accessible sources were found for this topic in the past week

## What Changed
- {NO_CHANGE_SENTENCE}

## Why It Matters
- Absence of coverage may indicate a quiet period for this topic
- Consider broadening search terms or adding related interests
- Regular monitoring will capture emerging developments

## Risks / Watch-outs
- Low coverage does not necessarily mean low activity
- Manual research may be warranted for time-sensitive topics

## Action Prompts
- Review your deep dive topic settings to ensure they match current priorities
- Consider adding related interests to broaden coverage
- Check back next week for updated coverage

## Sources
- No sources available for this period"""
