"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Dict, List

import pytest

from bronze_ingestion.registry import (
    DatasetDefinition,
    DatasetRegistry,
    FieldSpec,
    FieldType,
    RecordFormat,
)

CUSTOMER_FIELDS = (
    FieldSpec("cst_id", FieldType.INTEGER),
    FieldSpec("cst_key", FieldType.TEXT, 50),
    FieldSpec("cst_create_date", FieldType.DATE),
)

CUSTOMER_HEADER = "cst_id,cst_key,cst_create_date"


class InMemorySink:
    """
    Transactional stand-in for a raw-layer table.

    Rows only become visible once load() has consumed every batch, mirroring
    the commit-at-end behaviour of the PostgreSQL sink.
    """

    def __init__(self, tables: Dict[str, List[list]], table: str) -> None:
        self.tables = tables
        self.table = table

    def clear(self) -> None:
        self.tables[self.table] = []

    def load(self, batches) -> int:
        staged: List[list] = []
        for batch in batches:
            staged.extend(batch)
        self.tables[self.table] = staged
        return len(staged)


class InMemoryWarehouse:
    """Holds the in-memory tables and counts how often each sink was built."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[list]] = {}
        self.sinks_built: List[str] = []

    def sink_for(self, definition: DatasetDefinition) -> InMemorySink:
        self.sinks_built.append(definition.name)
        return InMemorySink(self.tables, definition.sink)

    def count(self, table: str) -> int:
        return len(self.tables.get(table, []))


def write_customer_csv(path: Path, rows: int, header: bool = True) -> Path:
    """Write a customer extract with `rows` well-formed records."""
    lines = [CUSTOMER_HEADER] if header else []
    lines += [f"{i},AW{i:08d},2024-01-{(i % 28) + 1:02d}" for i in range(1, rows + 1)]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def customer_dataset(name: str, group: str, source: Path) -> DatasetDefinition:
    return DatasetDefinition(
        name=name,
        group=group,
        sink=f"bronze.{name}",
        source=str(source),
        fields=CUSTOMER_FIELDS,
        format=RecordFormat(),
    )


@pytest.fixture
def warehouse() -> InMemoryWarehouse:
    return InMemoryWarehouse()


@pytest.fixture
def six_dataset_registry(tmp_path: Path) -> DatasetRegistry:
    """Three CRM and three ERP datasets, 1,000 records plus a header each."""
    groups = []
    for group in ("crm", "erp"):
        definitions = []
        for index in range(1, 4):
            name = f"{group}_dataset_{index}"
            source = write_customer_csv(tmp_path / f"source_{group}" / f"{name}.csv", 1000)
            definitions.append(customer_dataset(name, group, source))
        groups.append((group, definitions))
    return DatasetRegistry(groups)
