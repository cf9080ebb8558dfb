"""
UTC timestamped console logging helpers for the bronze load.

Every line is flushed immediately so scheduler logs keep the order of events
even when a run is killed mid-dataset.
"""

from datetime import datetime, UTC
from typing import Optional


def _utc_timestamp() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")


def _emit(line: str) -> None:
    print(f"[{_utc_timestamp()}] {line}", flush=True)


def format_duration(seconds: float) -> str:
    """
    Render a duration for log lines.

    Args:
        seconds (float): Elapsed time in seconds.

    Returns:
        str: Milliseconds below one second (e.g. '250ms'), seconds with
        millisecond precision otherwise (e.g. '12.042s').
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    return f"{seconds:.3f}s"


def log_section_start(section: str) -> None:
    """
    Log the start of a section.

    Args:
        section (str): Description of the section that is beginning.
    """
    _emit(f"Starting: {section}")


def log_section_complete(section: str, details: Optional[str] = None) -> None:
    """
    Log the completion of a section.

    Args:
        section (str): Description of the section that finished.
        details (Optional[str]): Optional extra context to append to the message.
    """
    suffix = f" - {details}" if details else ""
    _emit(f"Completed: {section}{suffix}")


def log_progress(section: str, message: str) -> None:
    _emit(f"{section}: {message}")


def log_dataset_metrics(dataset: str, rows: int, seconds: float) -> None:
    """
    Log the row count and load duration of one dataset.

    Args:
        dataset (str): Dataset name.
        rows (int): Records written to the sink.
        seconds (float): Elapsed load time in seconds.
    """
    _emit(f"Dataset {dataset}: Rows loaded: {rows} | Duration: {format_duration(seconds)}")


def log_error(section: str, error: Exception | str) -> None:
    """
    Log an error that occurred during a section.

    Args:
        section (str): Description of the section where the error occurred.
        error (Exception | str): Exception instance or error message to record.
    """
    _emit(f"Error in {section}: {error}")
