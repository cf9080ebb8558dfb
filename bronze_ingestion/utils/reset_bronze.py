"""
Utility script to empty raw-layer tables.

Provides a manual way to reset the bronze layer, or a few of its datasets;
the next scheduled load refills them from the sources.
"""

import argparse
import sys
from typing import List, Optional, Sequence

from bronze_ingestion.bronze.connection import get_db_connection
from bronze_ingestion.bronze.sink import PostgresTableSink
from bronze_ingestion.config import Config
from bronze_ingestion.registry import DatasetRegistry
from bronze_ingestion.utils.logging_utils import (
    log_error,
    log_progress,
    log_section_complete,
    log_section_start,
)


def reset_bronze(
    conn, registry: DatasetRegistry, datasets: Optional[Sequence[str]] = None
) -> int:
    """
    Truncate the tables of registry datasets.

    Args:
        conn: psycopg2 connection
        registry: Catalog of datasets
        datasets: Names to reset; every dataset when omitted

    Returns:
        int: Number of tables truncated

    Raises:
        KeyError: If a named dataset is not in the registry
    """
    if datasets:
        definitions = [registry.get(name) for name in datasets]
    else:
        definitions = registry.all()

    for index, definition in enumerate(definitions, start=1):
        sink = PostgresTableSink(conn, definition.sink, definition.field_names)
        removed = sink.count()
        sink.clear()
        log_progress(
            "Bronze Reset",
            f"Truncated {definition.sink}, {removed} rows removed ({index}/{len(definitions)})",
        )
    return len(definitions)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main function to truncate bronze tables.
    """
    parser = argparse.ArgumentParser(description="Empty bronze raw-layer tables")
    parser.add_argument(
        "--dataset",
        action="append",
        dest="datasets",
        metavar="NAME",
        help="Only reset this dataset (repeatable)",
    )
    args = parser.parse_args(argv)

    log_section_start("Bronze Reset")

    try:
        Config.validate()
        registry = Config.build_registry()
        conn = get_db_connection()
        try:
            truncated = reset_bronze(conn, registry, args.datasets)
        finally:
            conn.close()
        log_section_complete("Bronze Reset", f"Truncated {truncated} tables")
    except Exception as e:
        log_error("Bronze Reset", str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
