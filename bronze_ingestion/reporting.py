"""
Failure reporting for the bronze load.

Turns the first failure of a run into a BronzeLoadError that carries the
diagnostic context a caller needs (message, severity, kind, dataset,
state, line, partial run summary) and raises it.
"""

from typing import NoReturn, Optional

from bronze_ingestion.errors import BronzeIngestionError, FailureKind, classify_exception
from bronze_ingestion.models import RunSummary
from bronze_ingestion.utils.logging_utils import log_error

REPORT_SECTION = "Bronze Layer Load"


class BronzeLoadError(Exception):
    """
    Raised to the caller of a bronze load when a dataset fails.

    Attributes:
        dataset: Name of the dataset that failed
        kind: FailureKind of the underlying error
        severity: Numeric severity of the failure
        state: Engine state code, if the failure came from the database
        line: Approximate source line, when known
        summary: Run summary up to and including the failed dataset
        original_message: Message of the underlying error
    """

    def __init__(
        self,
        dataset: str,
        error: BronzeIngestionError,
        summary: Optional[RunSummary] = None,
    ) -> None:
        self.dataset = dataset
        self.kind: FailureKind = error.kind
        self.severity: int = error.severity
        self.state: Optional[str] = error.state
        self.line: Optional[int] = error.line
        self.summary = summary
        self.original_message = error.message
        super().__init__(f"Error loading {dataset}: {error.message}")

    def as_dict(self) -> dict:
        return {
            "message": str(self),
            "dataset": self.dataset,
            "kind": self.kind.value,
            "severity": self.severity,
            "state": self.state,
            "line": self.line,
        }


class FailureReporter:
    """Reports the first failure of a run and re-raises it."""

    def report(
        self,
        error: BaseException,
        dataset: str,
        summary: Optional[RunSummary] = None,
    ) -> NoReturn:
        """
        Log the diagnostic block and raise the enriched error.

        Args:
            error: Failure as captured by the loader
            dataset: Name of the dataset where it occurred
            summary: Run summary at the time of the failure

        Raises:
            BronzeLoadError: Always, chained from the underlying error
        """
        classified = classify_exception(error)
        enriched = BronzeLoadError(dataset, classified, summary)

        log_error(REPORT_SECTION, "FATAL ERROR")
        log_error(REPORT_SECTION, f"Error Message: {enriched}")
        log_error(REPORT_SECTION, f"Error Kind: {enriched.kind.value}")
        log_error(REPORT_SECTION, f"Error Severity: {enriched.severity}")
        log_error(REPORT_SECTION, f"Error State: {enriched.state or 'n/a'}")
        log_error(REPORT_SECTION, f"Error Line: {enriched.line if enriched.line is not None else 'n/a'}")
        log_error(REPORT_SECTION, f"Dataset: {dataset}")

        cause = classified.__cause__ or classified
        raise enriched from cause
