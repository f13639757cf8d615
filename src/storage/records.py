"""
Job record stores.

The pipeline only needs create/get/update; ``delete`` backs the video removal
endpoint. ``update`` stamps ``updated_at`` and raises ``KeyError`` for unknown ids.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from .models import Job, utcnow

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    def create(self, job: Job) -> str: ...

    def get(self, job_id: str) -> Optional[Job]: ...

    def update(self, job_id: str, **fields: Any) -> Job: ...

    def delete(self, job_id: str) -> None: ...


class InMemoryRecordStore:
    """Process-local store. Suitable for a single instance and for tests."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def create(self, job: Job) -> str:
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Job {job.id} already exists")
            self._jobs[job.id] = job.model_copy(deep=True)
        return job.id

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def update(self, job_id: str, **fields: Any) -> Job:
        with self._lock:
            if job_id not in self._jobs:
                raise KeyError(job_id)
            job = self._jobs[job_id].model_copy(update={**fields, "updated_at": utcnow()})
            self._jobs[job_id] = job
            return job.model_copy(deep=True)

    def delete(self, job_id: str) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)


class JsonFileRecordStore:
    """One JSON document per job under ``root``, replaced atomically on write."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, job_id: str) -> Path:
        if not job_id or "/" in job_id or "\\" in job_id or job_id.startswith("."):
            raise KeyError(job_id)
        return self.root / f"{job_id}.json"

    def _write(self, job: Job) -> None:
        path = self._path(job.id)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(job.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp_path, path)

    def _read(self, job_id: str) -> Optional[Job]:
        path = self._path(job_id)
        if not path.exists():
            return None
        return Job.model_validate_json(path.read_text(encoding="utf-8"))

    def create(self, job: Job) -> str:
        with self._lock:
            if self._path(job.id).exists():
                raise ValueError(f"Job {job.id} already exists")
            self._write(job)
        return job.id

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            try:
                return self._read(job_id)
            except KeyError:
                return None

    def update(self, job_id: str, **fields: Any) -> Job:
        with self._lock:
            job = self._read(job_id)
            if job is None:
                raise KeyError(job_id)
            job = job.model_copy(update={**fields, "updated_at": utcnow()})
            self._write(job)
            return job

    def delete(self, job_id: str) -> None:
        with self._lock:
            try:
                self._path(job_id).unlink()
            except FileNotFoundError:
                pass
