"""PUBLISH stage: persist the report once, notify the user, finalize the job."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Optional

from core import Job, JobStatus, PublishProgress, PublishState, dump_state
from delivery import render_deep_dive_email
from utils.exceptions import DuplicateReportError
from utils.logger import log_deep_dive

from .report_format import parse_report_markdown, render_report_html
from .services import DeepDiveServices


logger = logging.getLogger(__name__)


def format_date_label(now: datetime) -> str:
    return f"{now.strftime('%B')} {now.day}"


def build_subject(topic: str, now: datetime) -> str:
    return f"Deep Dive | {topic} | {format_date_label(now)}"


class ReportPublisher:
    def __init__(self, services: DeepDiveServices):
        self.services = services

    def _final_status(self, state: Optional[PublishState]) -> JobStatus:
        return JobStatus.PARTIAL if state is not None and state.partial else JobStatus.COMPLETE

    async def run(self, job: Job, state: PublishState) -> None:
        services = self.services
        store = services.store

        if store.get_report(job.id) is not None:
            store.update_job(job.id, status=JobStatus.COMPLETE)
            log_deep_dive(job_id=job.id, user_id=job.user_id, stage="PUBLISH", status="already_published")
            return

        markdown = state.synthesis.partial_markdown
        if not markdown:
            store.update_job(job.id, status=JobStatus.FAILED)
            log_deep_dive(
                job_id=job.id,
                user_id=job.user_id,
                stage="PUBLISH",
                status="failed",
                level=logging.ERROR,
                error="No markdown in state",
            )
            return

        now = services.now()
        topic = services.topic_label(job.topic_id, "Deep Dive")
        subject = build_subject(topic, now)

        try:
            report = store.create_report(job.id, subject=subject, markdown=markdown, html=render_report_html(markdown))
        except DuplicateReportError:
            report = store.get_report(job.id)

        tokens = services.tokens.issue_scoped_tokens(job.user_id, now=now)
        email_html = render_deep_dive_email(
            parse_report_markdown(markdown),
            tokens,
            app_host=services.app_host,
            subject=subject,
            date_label=format_date_label(now),
        )

        email_sent = False
        user = services.directory.get_user(job.user_id)
        if user is not None and user.email and user.email_enabled and not user.paused:
            try:
                result = await services.sender.send(user.email, subject, email_html)
                email_sent = bool(result.ok)
                log_deep_dive(job_id=job.id, user_id=job.user_id, stage="PUBLISH", status="sent", channel=result.channel)
            except Exception as e:
                log_deep_dive(
                    job_id=job.id,
                    user_id=job.user_id,
                    stage="PUBLISH",
                    status="send_failed",
                    level=logging.WARNING,
                    error=str(e),
                )

        final_status = self._final_status(state)
        done = state.model_copy(update={"publish": PublishProgress(report_id=report.id, email_sent=email_sent)})
        store.update_job(job.id, status=final_status, state=dump_state(done))

        log_deep_dive(
            job_id=job.id,
            user_id=job.user_id,
            stage="PUBLISH",
            status=final_status.value,
            report_id=report.id,
            email_sent=email_sent,
        )
