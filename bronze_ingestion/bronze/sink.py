"""
Raw-layer table sinks.

A sink is cleared and committed first, then refilled inside a single
transaction with PostgreSQL COPY FROM STDIN. The refill commits only when
every batch is in and the table count matches, so a failed refill rolls back
to the already committed empty table.
"""

import io
from typing import Any, Iterable, List, Protocol, Sequence

import pandas as pd

from bronze_ingestion.errors import SinkUnavailableError

Batch = Sequence[Sequence[Any]]


class RawSink(Protocol):
    """Destination of one dataset's raw records."""

    def clear(self) -> None:
        """Remove all content; must be committed before returning."""
        ...

    def load(self, batches: Iterable[Batch]) -> int:
        """Write every batch atomically and return the number of rows written."""
        ...


def batch_to_csv(batch: Batch, columns: List[str]) -> io.StringIO:
    """
    Render a batch of parsed values as CSV for COPY.

    None becomes an unquoted empty field, which COPY reads as NULL.

    Args:
        batch: Rows of parsed values in column order
        columns: Column names

    Returns:
        io.StringIO: Buffer positioned at the start
    """
    # object dtype keeps integers from turning into floats next to NULLs
    df = pd.DataFrame(list(batch), columns=columns, dtype=object)
    buffer = io.StringIO()
    df.to_csv(buffer, index=False, header=False, na_rep="", lineterminator="\n")
    buffer.seek(0)
    return buffer


class PostgresTableSink:
    """
    Raw-layer table in the warehouse.

    Args:
        conn: psycopg2 connection (autocommit off)
        table: Schema qualified table name
        columns: Ordered column names matching the source fields
    """

    def __init__(self, conn, table: str, columns: List[str]) -> None:
        self.conn = conn
        self.table = table
        self.columns = list(columns)

    def clear(self) -> None:
        cursor = self.conn.cursor()
        try:
            cursor.execute(f"TRUNCATE TABLE {self.table}")
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        finally:
            cursor.close()

    def load(self, batches: Iterable[Batch]) -> int:
        columns_str = ", ".join(self.columns)
        copy_query = f"""
            COPY {self.table} ({columns_str})
            FROM STDIN
            WITH (FORMAT csv, DELIMITER ',', NULL '', QUOTE '"')
        """

        cursor = self.conn.cursor()
        rows_written = 0
        try:
            for batch in batches:
                if not batch:
                    continue
                cursor.copy_expert(copy_query, batch_to_csv(batch, self.columns))
                rows_written += len(batch)

            cursor.execute(f"SELECT COUNT(*) FROM {self.table}")
            rows_in_table = cursor.fetchone()[0]
            if rows_in_table != rows_written:
                raise SinkUnavailableError(
                    f"{self.table} holds {rows_in_table} rows after writing {rows_written}"
                )

            self.conn.commit()
            return rows_written
        except Exception:
            self.conn.rollback()
            raise
        finally:
            cursor.close()

    def count(self) -> int:
        cursor = self.conn.cursor()
        try:
            cursor.execute(f"SELECT COUNT(*) FROM {self.table}")
            return cursor.fetchone()[0]
        finally:
            cursor.close()
            self.conn.rollback()
