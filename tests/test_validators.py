from __future__ import annotations

import pytest

from core import ReportDocument, SourceCitation
from deep_dive import extract_entities, parse_report_markdown, validate_report
from deep_dive.report_format import NO_CHANGE_SENTENCE
from deep_dive_support import SOURCE_TEXT, VALID_REPORT


def _validate(markdown: str, texts=(SOURCE_TEXT,)):
    return validate_report(parse_report_markdown(markdown), list(texts))


def _drop_section(markdown: str, heading: str) -> str:
    kept = []
    skipping = False
    for line in markdown.splitlines():
        if line.startswith("## "):
            skipping = line[3:].strip() == heading
        if not skipping:
            kept.append(line)
    return "\n".join(kept)


def test_valid_report_passes() -> None:
    result = _validate(VALID_REPORT)

    assert result.valid is True
    assert result.errors == []


def test_missing_why_it_matters_is_invalid() -> None:
    result = _validate(_drop_section(VALID_REPORT, "Why It Matters"))

    assert result.valid is False
    assert any("Why It Matters" in error for error in result.errors)


def test_two_exclamation_marks_are_invalid() -> None:
    markdown = VALID_REPORT.replace(
        "- Audit committees must review capital planning assumptions again.",
        "- Audit committees must review capital planning assumptions again!",
    )
    result = _validate(markdown)

    assert result.valid is False
    assert any("exclamation" in error for error in result.errors)


def test_banned_phrase_is_invalid() -> None:
    markdown = VALID_REPORT.replace(
        "- Smaller lenders could see indirect pressure from counterparties.",
        "- Smaller lenders face a paradigm shift in counterparty pressure.",
    )
    result = _validate(markdown)

    assert result.valid is False
    assert any("paradigm shift" in error for error in result.errors)


def test_banned_phrase_in_source_title_counts() -> None:
    markdown = VALID_REPORT.replace("[Fed finalizes capital rules]", "[Rapidly evolving capital rules]")

    assert _validate(markdown).valid is False


def test_bullet_bounds_per_section() -> None:
    markdown = VALID_REPORT.replace(
        "- Draft a readiness checklist for the January reporting deadline!\n",
        "- Draft a readiness checklist for the January reporting deadline!\n"
        "- Brief the board on quarterly reporting costs.\n",
    )
    result = _validate(markdown)

    assert result.valid is False
    assert any("Action Prompts" in error and "exactly 3" in error for error in result.errors)


def test_no_change_sentence_satisfies_what_changed() -> None:
    markdown = VALID_REPORT.replace(
        "- Quarterly liquidity reporting replaces the previous annual filing.\n"
        "- Capital buffers rise by two percentage points for the largest lenders.\n",
        "No meaningful change identified.\n",
    )

    assert _validate(markdown).valid is True


def test_extract_entities_skips_sentence_starts() -> None:
    entities = extract_entities(parse_report_markdown(VALID_REPORT))

    assert entities == ["Federal Reserve", "Goldman Sachs", "SEC"]


def test_ungrounded_entities_are_invalid() -> None:
    result = _validate(VALID_REPORT, texts=["A short note about regional weather and crop yields."])

    assert result.valid is False
    assert any("ungrounded" in error for error in result.errors)


def test_entity_check_skipped_without_source_text() -> None:
    assert _validate(VALID_REPORT, texts=[]).valid is True


def _bullets(count: int, stem: str) -> list:
    return [f"{stem} item number {i} for the quarterly review." for i in range(count)]


@pytest.mark.parametrize(
    "field, count, section",
    [
        ("what_happened", 2, "What Happened"),
        ("what_happened", 7, "What Happened"),
        ("why_it_matters", 2, "Why It Matters"),
        ("why_it_matters", 4, "Why It Matters"),
        ("risks", 1, "Risks / Watch-outs"),
        ("risks", 5, "Risks / Watch-outs"),
        ("action_prompts", 2, "Action Prompts"),
        ("action_prompts", 4, "Action Prompts"),
        ("what_changed", 1, "What Changed"),
        ("what_changed", 5, "What Changed"),
    ],
)
def test_section_bullet_count_out_of_range(field: str, count: int, section: str) -> None:
    report = parse_report_markdown(VALID_REPORT).model_copy(update={field: _bullets(count, "Planning")})

    result = validate_report(report, [])

    assert result.valid is False
    assert any(f'"{section}"' in error and f"(got {count})" in error for error in result.errors)


def test_section_bullet_counts_at_bounds_pass() -> None:
    report = parse_report_markdown(VALID_REPORT).model_copy(
        update={
            "what_happened": _bullets(6, "Filing"),
            "what_changed": _bullets(4, "Buffer"),
            "risks": _bullets(4, "Exposure"),
        }
    )

    assert validate_report(report, []).valid is True


def test_filler_sentence_ratio_is_invalid() -> None:
    report = ReportDocument(
        headline="Lenders adjust capital plans for the new quarter",
        what_happened=[
            "Lenders are leveraging new models for capital planning.",
            "Treasury desks describe a paradigm shift in reporting.",
            "Boards expect a game changer in liquidity rules.",
            "Analysts call the rules a cutting-edge approach.",
            "Executives expect synergies across reporting teams.",
            "Banks must report liquidity positions every quarter.",
        ],
        what_changed=[NO_CHANGE_SENTENCE],
        why_it_matters=_bullets(3, "Treasury"),
        risks=_bullets(2, "Reporting"),
        action_prompts=_bullets(3, "Checklist"),
        sources=[SourceCitation(title="Capital rules update", url="https://news.example.com/a1", source="Example News")],
    )

    result = validate_report(report, [])

    assert result.valid is False
    assert any(error.startswith(">20% of sentences") for error in result.errors)


def test_single_filler_sentence_stays_under_ratio() -> None:
    markdown = VALID_REPORT.replace(
        "- Smaller lenders could see indirect pressure from counterparties.",
        "- Smaller lenders face a paradigm shift in counterparty pressure.",
    )
    result = _validate(markdown)

    assert not any(error.startswith(">20% of sentences") for error in result.errors)
