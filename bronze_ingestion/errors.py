"""
Failure taxonomy for the bronze load.

Every failure raised while clearing or filling a raw-layer table is mapped to
exactly one FailureKind, so the orchestrator and the failure reporter can act
on the classification rather than on message text.
"""

import re
from enum import Enum
from typing import Optional

import psycopg2
import requests
from botocore.exceptions import ClientError, EndpointConnectionError
from psycopg2 import errorcodes
from psycopg2 import errors as pg_errors


class FailureKind(str, Enum):
    """Classification of a dataset load failure."""

    SOURCE_UNAVAILABLE = "SourceUnavailable"
    MALFORMED_RECORD = "MalformedRecord"
    SINK_UNAVAILABLE = "SinkUnavailable"
    PERMISSION_DENIED = "PermissionDenied"
    UNKNOWN = "UnknownFailure"


# Severity levels reported to callers, in the spirit of a database error report
SEVERITY = {
    FailureKind.SOURCE_UNAVAILABLE: 16,
    FailureKind.MALFORMED_RECORD: 16,
    FailureKind.SINK_UNAVAILABLE: 16,
    FailureKind.PERMISSION_DENIED: 14,
    FailureKind.UNKNOWN: 16,
}

_COPY_LINE = re.compile(r"\bline (\d+)")

_S3_MISSING_CODES = {"NoSuchKey", "NoSuchBucket", "404", "NotFound"}
_S3_DENIED_CODES = {"AccessDenied", "403", "Forbidden", "InvalidAccessKeyId", "SignatureDoesNotMatch"}


class BronzeIngestionError(Exception):
    """
    Base class for classified load failures.

    Args:
        message: Human readable description of the failure
        line: Source line number the failure points at, when known
        state: Engine specific state code (e.g. a PostgreSQL SQLSTATE)
    """

    kind = FailureKind.UNKNOWN

    def __init__(
        self, message: str, line: Optional[int] = None, state: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.state = state

    @property
    def severity(self) -> int:
        return SEVERITY[self.kind]


class SourceUnavailableError(BronzeIngestionError):
    """The source locator could not be opened or read."""

    kind = FailureKind.SOURCE_UNAVAILABLE


class MalformedRecordError(BronzeIngestionError):
    """A source record does not fit the sink's fields."""

    kind = FailureKind.MALFORMED_RECORD


class SinkUnavailableError(BronzeIngestionError):
    """Clearing or writing the raw-layer table failed."""

    kind = FailureKind.SINK_UNAVAILABLE


class PermissionDeniedError(BronzeIngestionError):
    """Insufficient rights on the source or the sink."""

    kind = FailureKind.PERMISSION_DENIED


class UnknownFailureError(BronzeIngestionError):
    """Anything not covered by the other kinds."""

    kind = FailureKind.UNKNOWN


_ERROR_TYPES = {
    FailureKind.SOURCE_UNAVAILABLE: SourceUnavailableError,
    FailureKind.MALFORMED_RECORD: MalformedRecordError,
    FailureKind.SINK_UNAVAILABLE: SinkUnavailableError,
    FailureKind.PERMISSION_DENIED: PermissionDeniedError,
    FailureKind.UNKNOWN: UnknownFailureError,
}


def _kind_of(exc: BaseException) -> FailureKind:
    if isinstance(exc, BronzeIngestionError):
        return exc.kind

    if isinstance(exc, psycopg2.Error):
        if (
            isinstance(exc, pg_errors.InsufficientPrivilege)
            or exc.pgcode == errorcodes.INSUFFICIENT_PRIVILEGE
        ):
            return FailureKind.PERMISSION_DENIED
        if isinstance(exc, psycopg2.DataError):
            return FailureKind.MALFORMED_RECORD
        return FailureKind.SINK_UNAVAILABLE

    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        if code in _S3_DENIED_CODES:
            return FailureKind.PERMISSION_DENIED
        if code in _S3_MISSING_CODES:
            return FailureKind.SOURCE_UNAVAILABLE
        return FailureKind.UNKNOWN

    if isinstance(exc, requests.exceptions.HTTPError) and exc.response is not None:
        if exc.response.status_code in (401, 403):
            return FailureKind.PERMISSION_DENIED
        return FailureKind.SOURCE_UNAVAILABLE

    if isinstance(exc, (requests.exceptions.RequestException, EndpointConnectionError)):
        return FailureKind.SOURCE_UNAVAILABLE

    if isinstance(exc, PermissionError):
        return FailureKind.PERMISSION_DENIED
    if isinstance(exc, (FileNotFoundError, IsADirectoryError, NotADirectoryError)):
        return FailureKind.SOURCE_UNAVAILABLE
    if isinstance(exc, UnicodeDecodeError):
        return FailureKind.MALFORMED_RECORD

    return FailureKind.UNKNOWN


def _line_of(exc: BaseException) -> Optional[int]:
    """Pull a line number out of a PostgreSQL COPY context, e.g. 'COPY t, line 3'."""
    line = getattr(exc, "line", None)
    if isinstance(line, int):
        return line

    diag = getattr(exc, "diag", None)
    context = getattr(diag, "context", None) if diag is not None else None
    match = _COPY_LINE.search(context) if context else None
    return int(match.group(1)) if match else None


def classify_exception(exc: BaseException) -> BronzeIngestionError:
    """
    Map any exception to the failure taxonomy.

    Already classified errors are returned unchanged. Foreign exceptions are
    wrapped in the matching BronzeIngestionError subclass with the original
    chained as __cause__.

    Args:
        exc: Exception raised while loading a dataset

    Returns:
        BronzeIngestionError: Classified error carrying line/state when known
    """
    if isinstance(exc, BronzeIngestionError):
        return exc

    kind = _kind_of(exc)
    state = getattr(exc, "pgcode", None)
    message = str(exc).strip() or type(exc).__name__
    classified = _ERROR_TYPES[kind](message, line=_line_of(exc), state=state)
    classified.__cause__ = exc
    return classified
