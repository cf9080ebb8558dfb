"""
Entry points for the scheduled bronze load.

run_bronze_load() wires the configuration, the warehouse connection and the
orchestrator together. lambda_handler() and main() wrap it for a scheduler
and for the command line.
"""

import argparse
import json
import sys
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Sequence

from bronze_ingestion.bronze.connection import get_db_connection
from bronze_ingestion.bronze.loader import RawLoader
from bronze_ingestion.bronze.sink import PostgresTableSink
from bronze_ingestion.config import Config
from bronze_ingestion.models import RunSummary
from bronze_ingestion.observer import ConsoleLoadObserver
from bronze_ingestion.orchestrator import LoadOrchestrator
from bronze_ingestion.reporting import BronzeLoadError
from bronze_ingestion.utils.logging_utils import (
    log_error,
    log_section_complete,
    log_section_start,
)


def run_bronze_load(datasets: Optional[Sequence[str]] = None) -> RunSummary:
    """
    Clear and reload every raw-layer table from its source.

    Args:
        datasets: Optional dataset names to restrict the run to; registry
            order is kept

    Returns:
        RunSummary of the completed run

    Raises:
        BronzeLoadError: On the first dataset that fails
        ValueError: If the configuration is incomplete
    """
    log_section_start("Configuration Validation")
    Config.validate()
    registry = Config.build_registry()
    if datasets:
        registry = registry.select(datasets)
    log_section_complete("Configuration Validation", f"{len(registry)} datasets")

    conn = get_db_connection()
    try:
        loader = RawLoader(
            sink_factory=lambda definition: PostgresTableSink(
                conn, definition.sink, definition.field_names
            ),
            batch_size=Config.get_batch_size(),
        )
        orchestrator = LoadOrchestrator(registry, loader, observer=ConsoleLoadObserver())
        return orchestrator.run()
    finally:
        conn.close()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Scheduler-facing handler for the bronze load.

    Args:
        event: May carry {"datasets": [...]} to restrict the run
        context: Lambda context object (unused)

    Returns:
        Dict with statusCode 200 and the run summary, or 500 with the
        enriched error and the partial summary
    """
    run_timestamp = datetime.now(UTC)
    datasets = (event or {}).get("datasets")

    try:
        summary = run_bronze_load(datasets)
        return {
            "statusCode": 200,
            "body": json.dumps(
                {"run_timestamp": run_timestamp.isoformat(), "summary": summary.as_dict()}
            ),
        }
    except BronzeLoadError as e:
        return {
            "statusCode": 500,
            "body": json.dumps(
                {
                    "run_timestamp": run_timestamp.isoformat(),
                    "error": e.as_dict(),
                    "summary": e.summary.as_dict() if e.summary else None,
                }
            ),
        }
    except Exception as e:
        log_error("Bronze Layer Load", str(e))
        return {
            "statusCode": 500,
            "body": json.dumps(
                {"run_timestamp": run_timestamp.isoformat(), "error": {"message": str(e)}}
            ),
        }


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse CLI arguments and run the bronze load.

    Returns:
        int: Process exit code, 0 on success and 1 on failure
    """
    parser = argparse.ArgumentParser(description="Load raw source extracts into the bronze layer")
    parser.add_argument(
        "--dataset",
        action="append",
        dest="datasets",
        metavar="NAME",
        help="Only load this dataset (repeatable)",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the run summary as JSON on success"
    )
    args = parser.parse_args(argv)

    try:
        summary = run_bronze_load(args.datasets)
    except BronzeLoadError:
        # Diagnostics were already printed by the failure reporter
        return 1
    except Exception as e:
        log_error("Bronze Layer Load", str(e))
        return 1

    if args.json:
        print(json.dumps(summary.as_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
