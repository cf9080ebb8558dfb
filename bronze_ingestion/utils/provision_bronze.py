"""
Utility script to provision the bronze schema and its raw-layer tables.

Drops and recreates one table per registry dataset, with columns taken from
the dataset's field specs. Run it once before the first load, or whenever
the catalog's fields change. It destroys existing bronze data.
"""

import sys
from typing import List

from bronze_ingestion.bronze.connection import get_db_connection
from bronze_ingestion.config import Config
from bronze_ingestion.registry import DatasetDefinition, DatasetRegistry, FieldSpec, FieldType
from bronze_ingestion.utils.logging_utils import (
    log_error,
    log_progress,
    log_section_complete,
    log_section_start,
)

_SQL_TYPES = {
    FieldType.INTEGER: "INTEGER",
    FieldType.DATE: "DATE",
}


def column_type(spec: FieldSpec) -> str:
    if spec.type == FieldType.TEXT:
        return f"VARCHAR({spec.length})"
    return _SQL_TYPES[spec.type]


def render_table_ddl(definition: DatasetDefinition) -> List[str]:
    """
    Render the statements that (re)create a dataset's table.

    Args:
        definition: Dataset whose sink should be created

    Returns:
        List[str]: DROP TABLE and CREATE TABLE statements
    """
    columns = ",\n".join(
        f"    {spec.name} {column_type(spec)}" for spec in definition.fields
    )
    return [
        f"DROP TABLE IF EXISTS {definition.sink}",
        f"CREATE TABLE {definition.sink} (\n{columns}\n)",
    ]


def provision_bronze(conn, registry: DatasetRegistry, schema: str) -> int:
    """
    Create the schema and every table of the registry in one transaction.

    Args:
        conn: psycopg2 connection
        registry: Datasets whose tables are created
        schema: Bronze schema name

    Returns:
        int: Number of tables created
    """
    cursor = conn.cursor()
    try:
        cursor.execute(f"CREATE SCHEMA IF NOT EXISTS {schema}")
        for definition in registry.all():
            log_progress("Bronze Provisioning", f"Creating table {definition.sink}")
            for statement in render_table_ddl(definition):
                cursor.execute(statement)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()
    return len(registry)


def main() -> None:
    """
    Create the bronze schema and tables for the configured catalog.
    """
    log_section_start("Bronze Provisioning")

    try:
        Config.validate()
        registry = Config.build_registry()
        conn = get_db_connection()
        try:
            created = provision_bronze(conn, registry, Config.BRONZE_SCHEMA)
        finally:
            conn.close()
        log_section_complete("Bronze Provisioning", f"Created {created} tables")
    except Exception as e:
        log_error("Bronze Provisioning", str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
