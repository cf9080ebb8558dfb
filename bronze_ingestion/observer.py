"""
Lifecycle observers for the bronze load.

The orchestrator reports what happens to an observer and never prints
itself. ConsoleLoadObserver narrates the run with the timestamped console
helpers; NullLoadObserver stays silent.
"""

from typing import Protocol, Sequence

from bronze_ingestion.errors import BronzeIngestionError
from bronze_ingestion.models import LoadRecord, RunSummary
from bronze_ingestion.registry import DatasetDefinition
from bronze_ingestion.utils.logging_utils import (
    format_duration,
    log_dataset_metrics,
    log_error,
    log_progress,
    log_section_complete,
    log_section_start,
)

RUN_SECTION = "Bronze Layer Load"


class LoadObserver(Protocol):
    def run_started(self, groups: Sequence[str]) -> None: ...

    def group_started(self, group: str) -> None: ...

    def dataset_clearing(self, definition: DatasetDefinition) -> None: ...

    def dataset_cleared(self, definition: DatasetDefinition) -> None: ...

    def dataset_loaded(self, record: LoadRecord) -> None: ...

    def dataset_failed(self, record: LoadRecord, error: BronzeIngestionError) -> None: ...

    def run_completed(self, summary: RunSummary) -> None: ...

    def run_aborted(self, summary: RunSummary, error: BronzeIngestionError) -> None: ...

    def run_cancelled(self, summary: RunSummary) -> None: ...


class NullLoadObserver:
    def run_started(self, groups):
        pass

    def group_started(self, group):
        pass

    def dataset_clearing(self, definition):
        pass

    def dataset_cleared(self, definition):
        pass

    def dataset_loaded(self, record):
        pass

    def dataset_failed(self, record, error):
        pass

    def run_completed(self, summary):
        pass

    def run_aborted(self, summary, error):
        pass

    def run_cancelled(self, summary):
        pass


class ConsoleLoadObserver:
    """Narrates the run on stdout with UTC timestamps."""

    def run_started(self, groups: Sequence[str]) -> None:
        log_section_start(RUN_SECTION)
        log_progress(RUN_SECTION, f"Source groups: {', '.join(groups)}")

    def group_started(self, group: str) -> None:
        log_progress(RUN_SECTION, f"Loading {group.upper()} files into tables")

    def dataset_clearing(self, definition: DatasetDefinition) -> None:
        log_progress(f"Dataset {definition.name}", f"Truncating table {definition.sink}")

    def dataset_cleared(self, definition: DatasetDefinition) -> None:
        log_progress(
            f"Dataset {definition.name}",
            f"Inserting data into {definition.sink} from {definition.source}",
        )

    def dataset_loaded(self, record: LoadRecord) -> None:
        log_dataset_metrics(record.dataset, record.rows, record.duration_seconds)

    def dataset_failed(self, record: LoadRecord, error: BronzeIngestionError) -> None:
        log_error(f"Dataset {record.dataset}", f"{error.kind.value}: {error}")

    def run_completed(self, summary: RunSummary) -> None:
        log_section_complete(
            RUN_SECTION,
            f"{len(summary.records)} datasets, {summary.total_rows} rows, "
            f"total duration {format_duration(summary.duration_seconds)}",
        )

    def run_aborted(self, summary: RunSummary, error: BronzeIngestionError) -> None:
        failed = summary.failed_record
        dataset = failed.dataset if failed else "unknown dataset"
        loaded = len(summary.records) - 1
        log_error(
            RUN_SECTION,
            f"Aborted at {dataset} "
            f"after {loaded} successful datasets "
            f"({format_duration(summary.duration_seconds)})",
        )

    def run_cancelled(self, summary: RunSummary) -> None:
        log_progress(
            RUN_SECTION,
            f"Cancelled after {len(summary.records)} datasets "
            f"({format_duration(summary.duration_seconds)})",
        )
