"""
Result values produced by a bronze load.

LoadRecord describes one attempt at one dataset, LoadSuccess/LoadFailure wrap
it as the loader's outcome, and RunSummary aggregates the records of a run in
execution order. Wall-clock timestamps are UTC; durations come from a
monotonic clock so they are never negative.
"""

import time
from dataclasses import dataclass, field, replace
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from bronze_ingestion.errors import BronzeIngestionError


class LoadStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class RunStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class LoadRecord:
    """
    Outcome of one attempt to load one dataset.

    Attributes:
        dataset: Dataset name from the registry
        group: Source group the dataset belongs to (e.g. 'crm')
        sink: Fully qualified raw-layer table
        started_at: UTC time the attempt began
        status: pending until finalized with succeed() or fail()
        finished_at: UTC time the attempt ended
        rows: Records written to the sink
        error: Message of the failure, if any
    """

    dataset: str
    group: str
    sink: str
    started_at: datetime
    status: LoadStatus = LoadStatus.PENDING
    finished_at: Optional[datetime] = None
    rows: int = 0
    error: Optional[str] = None
    started_clock: float = field(default=0.0, repr=False, compare=False)
    finished_clock: Optional[float] = field(default=None, repr=False, compare=False)

    @classmethod
    def begin(cls, dataset: str, group: str, sink: str) -> "LoadRecord":
        return cls(
            dataset=dataset,
            group=group,
            sink=sink,
            started_at=datetime.now(UTC),
            started_clock=time.perf_counter(),
        )

    def succeed(self, rows: int) -> "LoadRecord":
        return replace(
            self,
            status=LoadStatus.SUCCESS,
            rows=rows,
            finished_at=datetime.now(UTC),
            finished_clock=time.perf_counter(),
        )

    def fail(self, error: BaseException) -> "LoadRecord":
        return replace(
            self,
            status=LoadStatus.FAILED,
            rows=0,
            error=str(error),
            finished_at=datetime.now(UTC),
            finished_clock=time.perf_counter(),
        )

    @property
    def duration_seconds(self) -> float:
        if self.finished_clock is None:
            return 0.0
        return max(self.finished_clock - self.started_clock, 0.0)

    @property
    def duration_ms(self) -> float:
        return self.duration_seconds * 1000.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "dataset": self.dataset,
            "group": self.group,
            "sink": self.sink,
            "status": self.status.value,
            "rows": self.rows,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": round(self.duration_ms, 3),
            "error": self.error,
        }


@dataclass(frozen=True)
class LoadSuccess:
    record: LoadRecord


@dataclass(frozen=True)
class LoadFailure:
    record: LoadRecord
    error: BronzeIngestionError


LoadOutcome = Union[LoadSuccess, LoadFailure]


@dataclass(frozen=True)
class RunSummary:
    """
    Aggregate of one orchestrated pass over the registry.

    The total duration spans from the first dataset's start to the last
    dataset's end, so it is the sum of the sequential loads plus the small
    gaps between them.
    """

    status: RunStatus
    records: List[LoadRecord]
    started_at: datetime
    finished_at: datetime

    @property
    def duration_seconds(self) -> float:
        if not self.records or self.records[-1].finished_clock is None:
            return 0.0
        return max(self.records[-1].finished_clock - self.records[0].started_clock, 0.0)

    @property
    def total_rows(self) -> int:
        return sum(record.rows for record in self.records)

    @property
    def failed_record(self) -> Optional[LoadRecord]:
        for record in self.records:
            if record.status == LoadStatus.FAILED:
                return record
        return None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
            "total_rows": self.total_rows,
            "datasets": [record.as_dict() for record in self.records],
        }
