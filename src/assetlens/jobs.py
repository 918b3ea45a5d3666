"""Job registry for normalized uploads.

The store is injected into the pipeline rather than held as a module global.
Nothing is evicted automatically: the owning process calls ``sweep`` (or
``sweep_expired``) on its own schedule.
"""
from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from .analytics import InventorySummary
from .errors import JobNotFoundError
from .logging_utils import get_logger

LOGGER = get_logger("jobs")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class JobRecord:
    """Normalized records and their summary for one upload."""

    job_id: str
    records: Tuple[Any, ...]
    summary: InventorySummary
    customer_name: str = "Unknown"
    filename: str = ""
    status: str = "completed"
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def rows_processed(self) -> int:
        return len(self.records)


class JobStore(Protocol):
    def put(self, job_id: str, record: JobRecord) -> None:
        ...

    def get(self, job_id: str) -> Optional[JobRecord]:
        ...

    def sweep(self, older_than: datetime) -> List[str]:
        ...


class InMemoryJobStore:
    """Process-local ``JobStore``; safe to sweep from a scheduler thread."""

    def __init__(self) -> None:
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def put(self, job_id: str, record: JobRecord) -> None:
        with self._lock:
            self._jobs[job_id] = record

    def get(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            return self._jobs.get(job_id)

    def sweep(self, older_than: datetime) -> List[str]:
        """Remove jobs created before ``older_than``; return the removed ids."""
        with self._lock:
            expired = [job_id for job_id, job in self._jobs.items() if job.created_at < older_than]
            for job_id in expired:
                del self._jobs[job_id]
        for job_id in expired:
            LOGGER.info("Cleaned up old job: %s", job_id)
        return expired

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs


def new_job_id() -> str:
    return str(uuid.uuid4())


def require_job(store: JobStore, job_id: str) -> JobRecord:
    """Return the job or raise ``JobNotFoundError``."""
    job = store.get(job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    return job


def sweep_expired(store: JobStore, retention_minutes: int, now: Optional[datetime] = None) -> List[str]:
    """Evict jobs older than ``retention_minutes`` relative to ``now``."""
    cutoff = (now or _utcnow()) - timedelta(minutes=retention_minutes)
    return store.sweep(cutoff)


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def clamp_page(total: int, offset: Any = None, limit: Any = None) -> Tuple[int, int]:
    """Clamp an offset/limit pair to ``[0, total]``.

    Missing or non-numeric values mean "from the start" and "everything".
    """

    start = _to_int(offset)
    size = _to_int(limit)
    start = min(max(start if start is not None else 0, 0), total)
    size = min(max(size if size is not None else total, 0), total)
    return start, size


def status_payload(job: JobRecord) -> Dict[str, Any]:
    summary = job.summary
    return {
        "status": job.status,
        "job_id": job.job_id,
        "customer_name": job.customer_name,
        "filename": job.filename,
        "rows_processed": job.rows_processed,
        "timestamp": job.created_at.isoformat(),
        "results": {
            "findings": [
                f"Processed {job.rows_processed} items",
                f"{summary.active_support} items with active support",
                f"{summary.expired_support} items with expired support",
            ]
        },
    }


def results_payload(job: JobRecord, offset: Any = None, limit: Any = None) -> Dict[str, Any]:
    """Records page plus the full summary; pagination never applies to the summary."""
    total = job.rows_processed
    start, size = clamp_page(total, offset, limit)
    return {
        "products": list(job.records[start : start + size]),
        "summary": job.summary.to_dict(),
        "pagination": {"total": total, "limit": size, "offset": start},
    }
