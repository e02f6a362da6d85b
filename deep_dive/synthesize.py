"""
SYNTHESIZE stage
Ordered strategy chain (direct, map-reduce, template) with a validation
gate and one stricter retry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from core import (
    AccessStatus,
    Job,
    JobStatus,
    PublishState,
    Source,
    SynthesisProgress,
    SynthesisStrategy,
    SynthesizeState,
    ValidationResult,
    dump_state,
)
from utils.logger import log_deep_dive
from utils.timing import TimeBudget

from .prompts import (
    SUMMARY_SYSTEM_PROMPT,
    SYNTHESIS_SYSTEM_PROMPT,
    build_direct_prompt,
    build_reduce_prompt,
    build_summary_prompt,
)
from .report_format import build_no_coverage_report, build_template_report, parse_report_markdown
from .services import DeepDiveServices
from .validators import validate_report


logger = logging.getLogger(__name__)

SYNTHESIS_TEMPERATURE = 0.3
SUMMARY_TEMPERATURE = 0.2


def strategy_chain(preferred: SynthesisStrategy) -> List[SynthesisStrategy]:
    if preferred == SynthesisStrategy.DIRECT:
        return [SynthesisStrategy.DIRECT, SynthesisStrategy.MAP_REDUCE]
    return [SynthesisStrategy.MAP_REDUCE]


class ReportSynthesizer:
    def __init__(self, services: DeepDiveServices):
        self.services = services

    async def _generate(self, system_prompt: str, user_prompt: str, *, max_tokens: int, temperature: float, timeout: float) -> Optional[str]:
        try:
            return await self.services.generator.generate(
                system_prompt,
                user_prompt,
                max_output_tokens=max_tokens,
                temperature=temperature,
                hard_timeout=timeout,
            )
        except Exception as e:
            logger.warning(f"Generation call raised: {e}")
            return None

    async def synthesize_direct(self, sources: Sequence[Source], topic: str, *, strict: bool = False) -> Optional[str]:
        settings = self.services.settings
        prompt = build_direct_prompt(sources, topic, excerpt_chars=settings.excerpt_chars, strict=strict)
        return await self._generate(
            SYNTHESIS_SYSTEM_PROMPT,
            prompt,
            max_tokens=settings.output_tokens,
            temperature=SYNTHESIS_TEMPERATURE,
            timeout=settings.direct_timeout,
        )

    async def _summarize(self, source: Source) -> Tuple[Source, str]:
        settings = self.services.settings
        summary = await self._generate(
            SUMMARY_SYSTEM_PROMPT,
            build_summary_prompt(source, excerpt_chars=settings.map_excerpt_chars),
            max_tokens=settings.summary_tokens,
            temperature=SUMMARY_TEMPERATURE,
            timeout=settings.map_timeout,
        )
        return source, summary or (source.title or "")

    async def synthesize_map_reduce(self, sources: Sequence[Source], topic: str, budget: TimeBudget) -> Optional[str]:
        settings = self.services.settings
        summaries = await asyncio.gather(*(self._summarize(source) for source in sources))
        if not budget.allows(settings.synthesis_buffer):
            return None
        return await self._generate(
            SYNTHESIS_SYSTEM_PROMPT,
            build_reduce_prompt(summaries, topic),
            max_tokens=settings.output_tokens,
            temperature=SYNTHESIS_TEMPERATURE,
            timeout=settings.direct_timeout,
        )

    async def _draft(
        self,
        progress: SynthesisProgress,
        sources: Sequence[Source],
        topic: str,
        budget: TimeBudget,
    ) -> Tuple[str, SynthesisStrategy]:
        buffer = self.services.settings.synthesis_buffer
        for strategy in strategy_chain(progress.strategy):
            if not budget.allows(buffer):
                break
            if strategy == SynthesisStrategy.DIRECT:
                markdown = await self.synthesize_direct(sources, topic, strict=progress.retry_count > 0)
            else:
                markdown = await self.synthesize_map_reduce(sources, topic, budget)
            if markdown:
                return markdown, strategy
        return build_template_report(sources, topic), SynthesisStrategy.TEMPLATE

    async def run(self, job: Job, state: SynthesizeState, budget: TimeBudget) -> None:
        services = self.services
        settings = services.settings
        store = services.store

        sources = store.list_sources(
            job.id,
            access_status=AccessStatus.OK,
            with_text=True,
            limit=settings.max_synthesis_sources,
        )
        topic = services.topic_label(job.topic_id, "Unknown Topic")
        progress = state.synthesis

        if not sources:
            markdown = build_no_coverage_report(services.topic_label(job.topic_id, "Topic"))
            done = PublishState(
                partial=True,
                discovery=state.discovery,
                fetch=state.fetch,
                synthesis=SynthesisProgress(
                    strategy=progress.strategy,
                    retry_count=progress.retry_count,
                    partial_markdown=markdown,
                    used_strategy=SynthesisStrategy.NO_COVERAGE,
                ),
            )
            store.update_job(job.id, status=JobStatus.PARTIAL, state=dump_state(done))
            log_deep_dive(job_id=job.id, user_id=job.user_id, stage="SYNTHESIZE", status="no_coverage")
            return

        log_deep_dive(
            job_id=job.id,
            user_id=job.user_id,
            stage="SYNTHESIZE",
            status="starting",
            strategy=progress.strategy.value,
            sources_ok=len(sources),
        )

        markdown, used = await self._draft(progress, sources, topic, budget)
        source_texts = [source.extracted_text or "" for source in sources]
        validation: ValidationResult = validate_report(parse_report_markdown(markdown), source_texts)

        retry_count = progress.retry_count
        if not validation.valid and retry_count == 0 and budget.allows(settings.synthesis_buffer):
            log_deep_dive(
                job_id=job.id,
                user_id=job.user_id,
                stage="SYNTHESIZE",
                status="retry",
                error="; ".join(validation.errors),
            )
            # Counter is persisted before the retry call.
            retry_count = 1
            pending = SynthesizeState(
                partial=state.partial,
                discovery=state.discovery,
                fetch=state.fetch,
                synthesis=progress.model_copy(update={"retry_count": retry_count}),
            )
            store.update_job(job.id, state=dump_state(pending))

            retry_markdown = await self.synthesize_direct(sources, topic, strict=True)
            if retry_markdown:
                retry_validation = validate_report(parse_report_markdown(retry_markdown), source_texts)
                if retry_validation.valid:
                    markdown, used, validation = retry_markdown, SynthesisStrategy.DIRECT, retry_validation

        degraded = not validation.valid or used == SynthesisStrategy.TEMPLATE
        done = PublishState(
            partial=state.partial or degraded,
            discovery=state.discovery,
            fetch=state.fetch,
            synthesis=SynthesisProgress(
                strategy=progress.strategy,
                retry_count=retry_count,
                partial_markdown=markdown,
                used_strategy=used,
                validation_errors=validation.errors,
            ),
        )
        store.update_job(
            job.id,
            status=JobStatus.PARTIAL if degraded else None,
            state=dump_state(done),
        )

        log_deep_dive(
            job_id=job.id,
            user_id=job.user_id,
            stage="SYNTHESIZE",
            status="complete",
            strategy=used.value,
            retry_count=retry_count,
            valid=validation.valid,
            partial=done.partial,
            elapsed=round(budget.elapsed(), 3),
        )
