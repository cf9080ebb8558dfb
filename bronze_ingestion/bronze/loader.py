"""
Raw loader.

Moves one dataset from its source into its raw-layer table with no
transformation: clear the table, stream the source records through the
field checks, copy them in, and report the attempt as a LoadSuccess or a
LoadFailure. No retries; a failed dataset leaves its table empty.
"""

from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from bronze_ingestion.bronze.sink import RawSink
from bronze_ingestion.errors import BronzeIngestionError, classify_exception
from bronze_ingestion.extract.record_parser import parse_record
from bronze_ingestion.extract.source_reader import read_raw_records
from bronze_ingestion.models import LoadFailure, LoadOutcome, LoadRecord, LoadSuccess
from bronze_ingestion.observer import LoadObserver
from bronze_ingestion.registry import DatasetDefinition, RecordFormat

SinkFactory = Callable[[DatasetDefinition], RawSink]
RecordReader = Callable[[str, RecordFormat], Iterable[Tuple[int, str]]]

DEFAULT_BATCH_SIZE = 10000


def source_line(batch_lines: List[int], copy_line: Optional[int]) -> Optional[int]:
    """
    Map a 1-based row number within a COPY batch to its source line.

    Returns None when the row is outside the batch.
    """
    if copy_line is None or not 1 <= copy_line <= len(batch_lines):
        return None
    return batch_lines[copy_line - 1]


class RawLoader:
    """
    Clear-and-load of a single dataset.

    Args:
        sink_factory: Builds the sink for a dataset definition
        batch_size: Parsed records per COPY batch
        reader: Yields (line, raw record) pairs for a source locator
    """

    def __init__(
        self,
        sink_factory: SinkFactory,
        batch_size: int = DEFAULT_BATCH_SIZE,
        reader: RecordReader = read_raw_records,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.sink_factory = sink_factory
        self.batch_size = batch_size
        self.reader = reader

    def _batches(
        self, definition: DatasetDefinition, batch_lines: List[int]
    ) -> Iterator[List[list]]:
        # batch_lines holds the source lines of the batch last handed to the sink
        batch: List[list] = []
        lines: List[int] = []
        delimiter = definition.format.field_delimiter
        for line, raw in self.reader(definition.source, definition.format):
            batch.append(parse_record(raw, line, definition.fields, delimiter))
            lines.append(line)
            if len(batch) >= self.batch_size:
                batch_lines[:] = lines
                yield batch
                batch, lines = [], []
        if batch:
            batch_lines[:] = lines
            yield batch

    def load(
        self, definition: DatasetDefinition, observer: Optional[LoadObserver] = None
    ) -> LoadOutcome:
        """
        Clear the dataset's table and refill it from the source.

        The clear is committed before any record is read, so the table's
        previous content is gone even when the refill fails.

        Args:
            definition: Dataset to load
            observer: Told when the clear has been committed

        Returns:
            LoadSuccess with the finalized record, or LoadFailure carrying
            the classified error
        """
        record = LoadRecord.begin(definition.name, definition.group, definition.sink)
        batch_lines: List[int] = []
        try:
            sink = self.sink_factory(definition)
            sink.clear()
            if observer is not None:
                observer.dataset_cleared(definition)
            rows = sink.load(self._batches(definition, batch_lines))
        except Exception as e:
            error = classify_exception(e)
            if not isinstance(e, BronzeIngestionError):
                # Engine line numbers count rows of the current batch
                error.line = source_line(batch_lines, error.line)
            return LoadFailure(record=record.fail(error), error=error)

        return LoadSuccess(record=record.succeed(rows))
