"""
Deep dive orchestrator
Loads one job, dispatches the stage its state names, and applies the
attempt ceiling when a stage raises.
"""

from __future__ import annotations

import logging
from typing import Optional

from core import (
    AccessStatus,
    DiscoverState,
    FetchState,
    Job,
    JobState,
    JobStatus,
    PublishState,
    SynthesisProgress,
    SynthesisStrategy,
    SynthesizeState,
    dump_state,
)
from utils.logger import log_deep_dive
from utils.timing import TimeBudget

from .discover import CandidateDiscovery
from .fetch_extract import EvidenceExtractor
from .publish import ReportPublisher
from .report_format import build_no_coverage_report, build_template_report
from .services import DeepDiveServices
from .synthesize import ReportSynthesizer


logger = logging.getLogger(__name__)


class DeepDiveOrchestrator:
    """``step(job_id, max_duration)`` advances one job by at most one stage."""

    def __init__(self, services: DeepDiveServices):
        self.services = services
        self.discovery = CandidateDiscovery(services)
        self.extractor = EvidenceExtractor(services)
        self.synthesizer = ReportSynthesizer(services)
        self.publisher = ReportPublisher(services)

    async def _dispatch(self, job: Job, state: JobState, budget: TimeBudget) -> None:
        if isinstance(state, DiscoverState):
            await self.discovery.run(job, state, budget)
        elif isinstance(state, FetchState):
            await self.extractor.run(job, state, budget)
        elif isinstance(state, SynthesizeState):
            await self.synthesizer.run(job, state, budget)
        elif isinstance(state, PublishState):
            await self.publisher.run(job, state)

    async def step(self, job_id: str, max_duration: float) -> Optional[JobStatus]:
        """Run one stage; returns the job's status afterwards, None for an unknown job."""
        store = self.services.store
        budget = TimeBudget(max_duration=float(max_duration), clock=self.services.clock)

        job = store.get_job(job_id)
        if job is None:
            return None
        if job.status.is_hard_terminal:
            return job.status

        job = store.begin_attempt(job_id)
        state = job.load_state()
        if state is None:
            log_deep_dive(
                job_id=job.id,
                user_id=job.user_id,
                stage=str((job.state or {}).get("stage")),
                status="reset",
                level=logging.WARNING,
            )
            state = DiscoverState()
            store.update_job(job.id, state=dump_state(state))

        log_deep_dive(job_id=job.id, user_id=job.user_id, stage=state.stage, status="starting", attempt=job.attempt)

        try:
            await self._dispatch(job, state, budget)
        except Exception as e:
            logger.exception(f"Stage {state.stage} raised for job {job.id}")
            log_deep_dive(
                job_id=job.id,
                user_id=job.user_id,
                stage=state.stage,
                status="error",
                level=logging.ERROR,
                error=str(e),
                attempt=job.attempt,
                elapsed=round(budget.elapsed(), 3),
            )
            await self._handle_failure(job)
        else:
            self._settle_status(job.id)

        final = store.get_job(job.id)
        log_deep_dive(
            job_id=job.id,
            user_id=job.user_id,
            stage=(final.state or {}).get("stage") if final else None,
            status="step_complete",
            job_status=final.status.value if final else None,
            elapsed=round(budget.elapsed(), 3),
        )
        return final.status if final else None

    def _settle_status(self, job_id: str) -> None:
        """A step that left the job running restores ``partial`` when the state carries it."""
        job = self.services.store.get_job(job_id)
        if job is None or job.status != JobStatus.RUNNING:
            return
        state = job.load_state()
        if state is not None and state.partial:
            self.services.store.update_job(job_id, status=JobStatus.PARTIAL)

    async def _handle_failure(self, job: Job) -> None:
        store = self.services.store
        if job.attempt < self.services.settings.max_attempts:
            store.update_job(job.id, status=JobStatus.QUEUED)
            return

        log_deep_dive(job_id=job.id, user_id=job.user_id, status="aborting", attempt=job.attempt)
        try:
            forced = self._forced_publish_state(job)
            store.update_job(job.id, status=JobStatus.PARTIAL, state=dump_state(forced))
            current = store.get_job(job.id)
            await self.publisher.run(current, forced)
        except Exception as e:
            logger.exception(f"Forced publish failed for job {job.id}")
            store.update_job(job.id, status=JobStatus.FAILED)
            log_deep_dive(
                job_id=job.id,
                user_id=job.user_id,
                stage="PUBLISH",
                status="failed",
                level=logging.ERROR,
                error=str(e),
            )

    def _forced_publish_state(self, job: Job) -> PublishState:
        """PUBLISH state built from whatever the job has, drafting a fallback report when needed."""
        services = self.services
        current = services.store.get_job(job.id) or job
        state = current.load_state()

        synthesis = getattr(state, "synthesis", None) or SynthesisProgress(strategy=SynthesisStrategy.MAP_REDUCE)
        if not synthesis.partial_markdown:
            sources = services.store.list_sources(
                job.id,
                access_status=AccessStatus.OK,
                with_text=True,
                limit=services.settings.max_synthesis_sources,
            )
            if sources:
                markdown = build_template_report(sources, services.topic_label(job.topic_id, "Unknown Topic"))
                used = SynthesisStrategy.TEMPLATE
            else:
                markdown = build_no_coverage_report(services.topic_label(job.topic_id, "Topic"))
                used = SynthesisStrategy.NO_COVERAGE
            synthesis = synthesis.model_copy(update={"partial_markdown": markdown, "used_strategy": used})

        return PublishState(
            partial=True,
            discovery=getattr(state, "discovery", None),
            fetch=getattr(state, "fetch", None),
            synthesis=synthesis,
            publish=getattr(state, "publish", None),
        )
