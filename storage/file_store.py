"""
JSON File Job Store
Persists the in-memory job store to one JSON document so separate CLI
invocations resume from the same state.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Dict, Union

from pydantic import ValidationError

from core import Job, Report, Source
from utils.exceptions import StorageError

from .job_store import InMemoryJobStore


logger = logging.getLogger(__name__)

FILE_FORMAT_VERSION = 1


class JsonFileJobStore(InMemoryJobStore):
    """In-memory store mirrored to disk after every mutation."""

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read job store {self.path}: {e}") from e

        try:
            for raw in payload.get("jobs", []):
                job = Job.model_validate(raw)
                self._jobs[job.id] = job
                self._job_seq[job.id] = next(self._seq)
                self._period_index[(job.user_id, job.period.isoformat())] = job.id
                self._job_sources.setdefault(job.id, [])
            for raw in payload.get("sources", []):
                source = Source.model_validate(raw)
                self._sources[source.id] = source
                self._job_sources.setdefault(source.job_id, []).append(source.id)
            for raw in payload.get("reports", []):
                report = Report.model_validate(raw)
                self._reports[report.job_id] = report
        except ValidationError as e:
            raise StorageError(f"Corrupt job store {self.path}", {"errors": e.errors()}) from e

        logger.debug(f"Loaded {len(self._jobs)} jobs from {self.path}")

    def _snapshot(self) -> Dict[str, Any]:
        ordered_jobs = sorted(self._jobs.values(), key=lambda job: self._job_seq.get(job.id, 0))
        sources = [
            self._sources[source_id].model_dump(mode="json")
            for job in ordered_jobs
            for source_id in self._job_sources.get(job.id, [])
        ]
        return {
            "version": FILE_FORMAT_VERSION,
            "jobs": [job.model_dump(mode="json") for job in ordered_jobs],
            "sources": sources,
            "reports": [report.model_dump(mode="json") for report in self._reports.values()],
        }

    def _commit(self) -> None:
        data = json.dumps(self._snapshot(), ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(prefix=".jobs-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Cannot write job store {self.path}: {e}") from e
