"""Grounding and anti-filler checks for synthesized reports."""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence

from core import ReportDocument, ValidationResult

from .report_format import NO_CHANGE_SENTENCE


BANNED_PHRASES = (
    "fast-changing landscape",
    "rapidly evolving",
    "paradigm shift",
    "paradigm-shifting",
    "leveraging",
    "it is important to note",
    "it's important to note",
    "this article",
    "the piece",
    "the post",
    "in conclusion",
    "in today's",
    "game-changer",
    "game changer",
    "cutting-edge",
    "cutting edge",
    "at the end of the day",
    "moving forward",
    "going forward",
    "synergy",
    "synergies",
    "holistic approach",
    "best-in-class",
    "thought leader",
    "disruptive",
    "unprecedented times",
)

MAX_EXCLAMATIONS = 1
MAX_FILLER_RATIO = 0.2
MAX_UNGROUNDED_RATIO = 0.3
MIN_SENTENCE_CHARS = 10

ACRONYM_STOPWORDS = frozenset({"AND", "THE", "FOR", "NOT", "BUT", "NOR", "YET"})
COMMON_WORDS = frozenset(
    {
        "The", "This", "That", "These", "Those", "What", "Why", "How", "When",
        "Where", "Which", "Who", "No", "Yes", "Not", "And", "But", "For",
        "With", "From", "Into", "Over", "Under", "After", "Before", "Between",
        "Through", "During", "Without", "Within", "Along", "Following",
        "Across", "Behind", "Beyond", "Also", "However", "Moreover",
        "Furthermore", "Additionally", "Meanwhile", "Nevertheless",
        "Action", "Risk", "Source", "Key", "New", "Major",
    }
)

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")
_WORD_RE = re.compile(r"[A-Za-z][\w'&-]*")
_CAPITALIZED_RE = re.compile(r"^[A-Z][a-z]+$")
_ACRONYM_RE = re.compile(r"\b([A-Z]{2,6})\b")

# (section name, items getter, min, max)
_BULLET_BOUNDS = (
    ("What Happened", lambda r: r.what_happened, 3, 6),
    ("Why It Matters", lambda r: r.why_it_matters, 3, 3),
    ("Risks / Watch-outs", lambda r: r.risks, 2, 4),
    ("Action Prompts", lambda r: r.action_prompts, 3, 3),
)


def serialize_report(report: ReportDocument) -> str:
    """Whole report as one string, including source titles."""
    return " ".join(
        [
            report.headline,
            *report.what_happened,
            *report.what_changed,
            *report.why_it_matters,
            *report.risks,
            *report.action_prompts,
            *[source.title for source in report.sources],
        ]
    )


def _claim_texts(report: ReportDocument) -> List[str]:
    return [
        report.headline,
        *report.what_happened,
        *report.what_changed,
        *report.why_it_matters,
        *report.risks,
        *report.action_prompts,
    ]


def _capitalized_runs(sentence: str) -> Iterable[str]:
    words = _WORD_RE.findall(sentence)
    run: List[str] = []
    # Index 0 is the sentence start and never begins an entity.
    for index, word in enumerate(words + [""]):
        if index > 0 and _CAPITALIZED_RE.match(word):
            run.append(word)
            continue
        while run and run[0] in COMMON_WORDS:
            run.pop(0)
        if len(run) >= 2:
            yield " ".join(run)
        run = []


def extract_entities(report: ReportDocument) -> List[str]:
    """
    Probable named entities in the report's claims.

    Capitalized multi-word sequences that do not start a sentence, plus
    2-6 letter acronyms. Source titles are excluded.
    """
    entities: List[str] = []
    seen = set()

    def _add(entity: str) -> None:
        if entity not in seen:
            seen.add(entity)
            entities.append(entity)

    for text in _claim_texts(report):
        for sentence in _SENTENCE_BOUNDARY_RE.split(str(text or "")):
            for entity in _capitalized_runs(sentence):
                _add(entity)
        for acronym in _ACRONYM_RE.findall(str(text or "")):
            if acronym not in ACRONYM_STOPWORDS:
                _add(acronym)
    return entities


def _is_no_change(items: Sequence[str]) -> bool:
    return len(items) == 1 and items[0].strip().lower().rstrip(".") == NO_CHANGE_SENTENCE.lower().rstrip(".")


def _structure_errors(report: ReportDocument) -> List[str]:
    errors: List[str] = []
    if len(report.headline.strip()) < 5:
        errors.append("Headline is missing or too short")

    for name, getter, low, high in _BULLET_BOUNDS:
        items = [item for item in getter(report) if item.strip()]
        if not items:
            errors.append(f'"{name}" section is empty')
        elif not low <= len(items) <= high:
            bound = f"exactly {low}" if low == high else f"{low}-{high}"
            errors.append(f'"{name}" must have {bound} bullets (got {len(items)})')

    changed = [item for item in report.what_changed if item.strip()]
    if not changed:
        errors.append('"What Changed" section is empty')
    elif not _is_no_change(changed) and not 2 <= len(changed) <= 4:
        errors.append(f'"What Changed" must have 2-4 bullets or "{NO_CHANGE_SENTENCE}" (got {len(changed)})')

    if not report.sources:
        errors.append('"Sources" section is empty')
    return errors


def validate_report(report: ReportDocument, source_texts: Sequence[str]) -> ValidationResult:
    """Run every check independently; any error makes the report invalid."""
    errors = _structure_errors(report)

    full_text = serialize_report(report).lower()
    for phrase in BANNED_PHRASES:
        if phrase in full_text:
            errors.append(f'Contains banned filler phrase: "{phrase}"')

    exclamations = full_text.count("!")
    if exclamations > MAX_EXCLAMATIONS:
        errors.append(f"Too many exclamation marks ({exclamations}, max {MAX_EXCLAMATIONS})")

    sentences = [s for s in _SENTENCE_SPLIT_RE.split(full_text) if len(s.strip()) > MIN_SENTENCE_CHARS]
    if sentences:
        vague = sum(1 for sentence in sentences if any(phrase in sentence for phrase in BANNED_PHRASES))
        if vague / len(sentences) > MAX_FILLER_RATIO:
            errors.append(f">20% of sentences contain vague filler ({vague}/{len(sentences)})")

    texts = [text for text in source_texts if text]
    if texts:
        entities = extract_entities(report)
        combined = " ".join(texts).lower()
        ungrounded = [entity for entity in entities if entity.lower() not in combined]
        if entities and len(ungrounded) > len(entities) * MAX_UNGROUNDED_RATIO:
            errors.append(
                f"Too many ungrounded entities ({len(ungrounded)}/{len(entities)}): {', '.join(ungrounded[:5])}"
            )

    return ValidationResult(valid=not errors, errors=errors)
