"""
Load orchestrator.

Runs every dataset of the registry one at a time, group by group, in
registry order, and stops at the first failure. Datasets after a failure are
never attempted; datasets loaded before it stay loaded.
"""

import threading
from datetime import datetime, UTC
from typing import List, Optional

from bronze_ingestion.bronze.loader import RawLoader
from bronze_ingestion.models import LoadFailure, LoadRecord, RunStatus, RunSummary
from bronze_ingestion.observer import LoadObserver, NullLoadObserver
from bronze_ingestion.registry import DatasetRegistry
from bronze_ingestion.reporting import FailureReporter


class LoadOrchestrator:
    """
    Sequential, fail-fast pass over the dataset registry.

    Args:
        registry: Datasets to load, grouped by source system
        loader: Raw loader used for every dataset
        observer: Receives lifecycle events (defaults to a silent observer)
        reporter: Raises the enriched error on the first failure
        cancel_event: Checked between datasets; when set the run stops
    """

    def __init__(
        self,
        registry: DatasetRegistry,
        loader: RawLoader,
        observer: Optional[LoadObserver] = None,
        reporter: Optional[FailureReporter] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.registry = registry
        self.loader = loader
        self.observer = observer or NullLoadObserver()
        self.reporter = reporter or FailureReporter()
        self.cancel_event = cancel_event

    def _summary(self, status: RunStatus, records: List[LoadRecord], started_at: datetime) -> RunSummary:
        return RunSummary(
            status=status,
            records=list(records),
            started_at=started_at,
            finished_at=datetime.now(UTC),
        )

    def run(self) -> RunSummary:
        """
        Load all datasets in registry order.

        The run stops at the first failed dataset whatever the reporter does;
        a reporter that does not raise gets the failed summary returned.

        Returns:
            RunSummary: status success (or cancelled) with one record per
            attempted dataset in execution order

        Raises:
            BronzeLoadError: For the first failing dataset; its summary lists
                the datasets completed before it plus the failed one
        """
        started_at = datetime.now(UTC)
        records: List[LoadRecord] = []
        self.observer.run_started(self.registry.groups)

        for group in self.registry.groups:
            self.observer.group_started(group)

            for definition in self.registry.list(group):
                if self.cancel_event is not None and self.cancel_event.is_set():
                    summary = self._summary(RunStatus.CANCELLED, records, started_at)
                    self.observer.run_cancelled(summary)
                    return summary

                self.observer.dataset_clearing(definition)
                outcome = self.loader.load(definition, self.observer)
                records.append(outcome.record)

                if isinstance(outcome, LoadFailure):
                    self.observer.dataset_failed(outcome.record, outcome.error)
                    summary = self._summary(RunStatus.FAILED, records, started_at)
                    self.observer.run_aborted(summary, outcome.error)
                    self.reporter.report(outcome.error, definition.name, summary)
                    return summary

                self.observer.dataset_loaded(outcome.record)

        summary = self._summary(RunStatus.SUCCESS, records, started_at)
        self.observer.run_completed(summary)
        return summary
