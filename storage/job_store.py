"""Job State Store: the sole continuation mechanism between invocations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from itertools import count
from threading import RLock
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import uuid4

from core import (
    AccessStatus,
    Candidate,
    FetchOutcome,
    Job,
    JobResult,
    JobStatus,
    Report,
    Source,
    initial_state,
)
from utils.exceptions import DuplicateJobError, DuplicateReportError, JobNotFoundError, StorageError
from utils.text import canonicalize_url


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{_utcnow().strftime('%Y%m%d_%H%M%S')}_{uuid4().hex[:8]}"


class JobStore(ABC):
    """Persisted jobs, their sources and their single report."""

    @abstractmethod
    def create_job(self, user_id: str, period: date, topic_id: str, *, now: Optional[datetime] = None) -> Job:
        """Create a queued job in DISCOVER. Raises DuplicateJobError for an existing (user, period)."""

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[Job]:
        pass

    @abstractmethod
    def find_job(self, user_id: str, period: date) -> Optional[Job]:
        pass

    @abstractmethod
    def list_jobs(self, statuses: Optional[Iterable[JobStatus]] = None, *, limit: Optional[int] = None) -> List[Job]:
        """Jobs ordered ``partial`` first, then oldest-created first."""

    @abstractmethod
    def list_user_jobs(self, user_id: str, *, limit: Optional[int] = None) -> List[Job]:
        """A user's jobs, newest first."""

    @abstractmethod
    def update_job(
        self,
        job_id: str,
        *,
        status: Optional[JobStatus] = None,
        state: Optional[dict] = None,
        attempt: Optional[int] = None,
    ) -> Job:
        """Single-row update. Raises JobNotFoundError."""

    @abstractmethod
    def add_sources(self, job_id: str, candidates: Sequence[Candidate]) -> int:
        """Insert sources with ``unknown`` access, skipping duplicate canonical URLs."""

    @abstractmethod
    def list_sources(
        self,
        job_id: str,
        *,
        access_status: Optional[AccessStatus] = None,
        with_text: bool = False,
        limit: Optional[int] = None,
    ) -> List[Source]:
        pass

    @abstractmethod
    def count_sources(self, job_id: str, *, access_status: Optional[AccessStatus] = None) -> int:
        pass

    @abstractmethod
    def update_source(self, source_id: str, outcome: FetchOutcome, *, fetched_at: Optional[datetime] = None) -> Source:
        pass

    @abstractmethod
    def get_report(self, job_id: str) -> Optional[Report]:
        pass

    @abstractmethod
    def create_report(self, job_id: str, *, subject: str, markdown: str, html: str) -> Report:
        """Create the job's report. Raises DuplicateReportError if one exists."""

    def begin_attempt(self, job_id: str) -> Job:
        """Increment ``attempt`` and mark the job running."""
        job = self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return self.update_job(job_id, status=JobStatus.RUNNING, attempt=job.attempt + 1)

    def get_job_result(self, job_id: str) -> Optional[JobResult]:
        job = self.get_job(job_id)
        if job is None:
            return None
        return JobResult(
            job_id=job.id,
            status=job.status,
            stage=str((job.state or {}).get("stage") or "") or None,
            report=self.get_report(job_id),
        )


class InMemoryJobStore(JobStore):
    """Thread-safe store; every read returns a deep copy so callers never share rows."""

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self._job_seq: Dict[str, int] = {}
        self._period_index: Dict[Tuple[str, str], str] = {}
        self._sources: Dict[str, Source] = {}
        self._job_sources: Dict[str, List[str]] = {}
        self._reports: Dict[str, Report] = {}
        self._seq = count()
        self._lock = RLock()

    def _commit(self) -> None:
        """Hook run after every mutation while the lock is held."""
        return None

    def create_job(self, user_id: str, period: date, topic_id: str, *, now: Optional[datetime] = None) -> Job:
        with self._lock:
            key = (str(user_id), period.isoformat())
            if key in self._period_index:
                raise DuplicateJobError(user_id=str(user_id), period=period.isoformat())
            created = now or _utcnow()
            job = Job(
                id=_new_id("job"),
                user_id=user_id,
                period=period,
                topic_id=topic_id,
                status=JobStatus.QUEUED,
                attempt=0,
                state=initial_state(),
                created_at=created,
                updated_at=created,
            )
            self._jobs[job.id] = job
            self._job_seq[job.id] = next(self._seq)
            self._period_index[key] = job.id
            self._job_sources[job.id] = []
            self._commit()
            return job.model_copy(deep=True)

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def find_job(self, user_id: str, period: date) -> Optional[Job]:
        with self._lock:
            job_id = self._period_index.get((str(user_id), period.isoformat()))
            return self.get_job(job_id) if job_id else None

    def list_jobs(self, statuses: Optional[Iterable[JobStatus]] = None, *, limit: Optional[int] = None) -> List[Job]:
        wanted = {JobStatus(item) for item in statuses} if statuses is not None else None
        with self._lock:
            rows = [job for job in self._jobs.values() if wanted is None or job.status in wanted]
            rows.sort(
                key=lambda job: (
                    0 if job.status == JobStatus.PARTIAL else 1,
                    job.created_at,
                    self._job_seq.get(job.id, 0),
                )
            )
            if limit is not None:
                rows = rows[: max(0, int(limit))]
            return [job.model_copy(deep=True) for job in rows]

    def list_user_jobs(self, user_id: str, *, limit: Optional[int] = None) -> List[Job]:
        with self._lock:
            rows = [job for job in self._jobs.values() if job.user_id == str(user_id)]
            rows.sort(key=lambda job: (job.created_at, self._job_seq.get(job.id, 0)), reverse=True)
            if limit is not None:
                rows = rows[: max(0, int(limit))]
            return [job.model_copy(deep=True) for job in rows]

    def update_job(
        self,
        job_id: str,
        *,
        status: Optional[JobStatus] = None,
        state: Optional[dict] = None,
        attempt: Optional[int] = None,
    ) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if attempt is not None:
                if int(attempt) < job.attempt:
                    raise StorageError("attempt counter cannot decrease", {"job_id": job_id})
                job.attempt = int(attempt)
            if status is not None:
                job.status = JobStatus(status)
            if state is not None:
                job.state = dict(state)
            job.updated_at = _utcnow()
            self._commit()
            return job.model_copy(deep=True)

    def add_sources(self, job_id: str, candidates: Sequence[Candidate]) -> int:
        with self._lock:
            if job_id not in self._jobs:
                raise JobNotFoundError(job_id)
            bucket = self._job_sources.setdefault(job_id, [])
            seen = {self._sources[source_id].canonical_url for source_id in bucket}
            created = 0
            for candidate in candidates:
                canonical = canonicalize_url(candidate.url)
                if not canonical or canonical in seen:
                    continue
                source = Source(
                    id=_new_id("src"),
                    job_id=job_id,
                    url=candidate.url,
                    canonical_url=canonical,
                    title=candidate.title,
                    source_name=candidate.source_name,
                    published_at=candidate.published_at,
                    access_status=AccessStatus.UNKNOWN,
                )
                self._sources[source.id] = source
                bucket.append(source.id)
                seen.add(canonical)
                created += 1
            if created:
                self._commit()
            return created

    def _job_rows(self, job_id: str) -> List[Source]:
        return [self._sources[source_id] for source_id in self._job_sources.get(job_id, [])]

    def list_sources(
        self,
        job_id: str,
        *,
        access_status: Optional[AccessStatus] = None,
        with_text: bool = False,
        limit: Optional[int] = None,
    ) -> List[Source]:
        with self._lock:
            rows = self._job_rows(job_id)
            if access_status is not None:
                rows = [row for row in rows if row.access_status == AccessStatus(access_status)]
            if with_text:
                rows = [row for row in rows if row.extracted_text]
            if limit is not None:
                rows = rows[: max(0, int(limit))]
            return [row.model_copy(deep=True) for row in rows]

    def count_sources(self, job_id: str, *, access_status: Optional[AccessStatus] = None) -> int:
        with self._lock:
            rows = self._job_rows(job_id)
            if access_status is None:
                return len(rows)
            return sum(1 for row in rows if row.access_status == AccessStatus(access_status))

    def update_source(self, source_id: str, outcome: FetchOutcome, *, fetched_at: Optional[datetime] = None) -> Source:
        with self._lock:
            source = self._sources.get(source_id)
            if source is None:
                raise StorageError(f"Source not found: {source_id}")
            source.access_status = outcome.status
            source.title = outcome.title or source.title
            source.source_name = outcome.source_name or source.source_name
            source.extracted_text = outcome.text
            source.fetched_at = fetched_at or _utcnow()
            self._commit()
            return source.model_copy(deep=True)

    def get_report(self, job_id: str) -> Optional[Report]:
        with self._lock:
            report = self._reports.get(job_id)
            return report.model_copy(deep=True) if report else None

    def create_report(self, job_id: str, *, subject: str, markdown: str, html: str) -> Report:
        with self._lock:
            if job_id not in self._jobs:
                raise JobNotFoundError(job_id)
            if job_id in self._reports:
                raise DuplicateReportError(job_id)
            report = Report(id=_new_id("rpt"), job_id=job_id, subject=subject, markdown=markdown, html=html)
            self._reports[job_id] = report
            self._commit()
            return report.model_copy(deep=True)
