from __future__ import annotations

import pytest

from core import JobStatus, PublishState, SynthesisProgress, SynthesisStrategy, UserProfile, dump_state
from deep_dive import ReportPublisher, build_subject
from deep_dive_support import (
    NOW,
    USER_ID,
    VALID_REPORT,
    RecordingSender,
    build_services,
    create_job,
)


def _publish_state(markdown=VALID_REPORT, *, partial: bool = False) -> PublishState:
    return PublishState(
        partial=partial,
        synthesis=SynthesisProgress(partial_markdown=markdown, used_strategy=SynthesisStrategy.DIRECT),
    )


async def _publish(services, job, state):
    services.store.update_job(job.id, state=dump_state(state))
    await ReportPublisher(services).run(services.store.get_job(job.id), state)
    return services.store.get_job(job.id)


def test_subject_line_format() -> None:
    assert build_subject("Bank Capital Rules", NOW) == "Deep Dive | Bank Capital Rules | October 14"


@pytest.mark.asyncio
async def test_publish_creates_report_and_sends_email() -> None:
    sender = RecordingSender()
    services = build_services(sender=sender)
    job = create_job(services)

    updated = await _publish(services, job, _publish_state())

    report = services.store.get_report(job.id)
    assert updated.status == JobStatus.COMPLETE
    assert report.subject == "Deep Dive | Bank Capital Rules | October 14"
    assert report.markdown == VALID_REPORT
    assert "<h1>Federal Reserve tightens capital rules for large banks</h1>" in report.html

    [(to_address, subject, html)] = sender.sent
    assert to_address == "analyst@example.com"
    assert subject == report.subject
    assert "/api/unsubscribe?token=" in html
    assert "/api/pause?token=" in html

    state = updated.load_state()
    assert state.publish.report_id == report.id
    assert state.publish.email_sent is True


@pytest.mark.asyncio
async def test_publish_is_idempotent() -> None:
    sender = RecordingSender()
    services = build_services(sender=sender)
    job = create_job(services)

    await _publish(services, job, _publish_state())
    first = services.store.get_report(job.id)
    updated = await _publish(services, job, _publish_state())

    assert updated.status == JobStatus.COMPLETE
    assert services.store.get_report(job.id).id == first.id
    assert len(sender.sent) == 1


@pytest.mark.asyncio
async def test_missing_markdown_fails_without_artifact() -> None:
    sender = RecordingSender()
    services = build_services(sender=sender)
    job = create_job(services)

    updated = await _publish(services, job, _publish_state(markdown=None))

    assert updated.status == JobStatus.FAILED
    assert services.store.get_report(job.id) is None
    assert sender.sent == []


@pytest.mark.asyncio
async def test_partial_state_publishes_as_partial() -> None:
    services = build_services()
    job = create_job(services)

    updated = await _publish(services, job, _publish_state(partial=True))

    assert updated.status == JobStatus.PARTIAL
    assert services.store.get_report(job.id) is not None


@pytest.mark.asyncio
async def test_republishing_partial_job_marks_it_complete() -> None:
    sender = RecordingSender()
    services = build_services(sender=sender)
    job = create_job(services)
    state = _publish_state(partial=True)

    first = await _publish(services, job, state)
    report_id = services.store.get_report(job.id).id
    again = await _publish(services, job, state)

    assert first.status == JobStatus.PARTIAL
    assert again.status == JobStatus.COMPLETE
    assert again.status.is_hard_terminal
    assert services.store.get_report(job.id).id == report_id
    assert len(sender.sent) == 1


@pytest.mark.asyncio
async def test_paused_user_gets_no_email() -> None:
    sender = RecordingSender()
    services = build_services(
        sender=sender,
        user=UserProfile(id=USER_ID, email="analyst@example.com", paused=True),
    )
    job = create_job(services)

    updated = await _publish(services, job, _publish_state())

    assert updated.status == JobStatus.COMPLETE
    assert sender.sent == []
    assert updated.load_state().publish.email_sent is False


@pytest.mark.asyncio
async def test_delivery_failure_does_not_downgrade_status() -> None:
    services = build_services(sender=RecordingSender(fail=True))
    job = create_job(services)

    updated = await _publish(services, job, _publish_state())

    assert updated.status == JobStatus.COMPLETE
    assert services.store.get_report(job.id) is not None
    assert updated.load_state().publish.email_sent is False


@pytest.mark.asyncio
async def test_report_html_escapes_raw_html() -> None:
    services = build_services()
    job = create_job(services)
    markdown = VALID_REPORT.replace(
        "- Banks must report liquidity positions every quarter starting in January.",
        "- Banks must report <script>alert(1)</script> every quarter.",
    )

    await _publish(services, job, _publish_state(markdown=markdown))

    html = services.store.get_report(job.id).html
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
