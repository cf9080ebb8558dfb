"""
Dataset registry for the bronze load.

Holds the fixed catalog of raw datasets, grouped by source system, in the
order the orchestrator processes them. Definitions are supplied at
construction (normally from the JSON catalog named by the configuration) and
never change afterwards.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

DEFAULT_CATALOG_PATH = Path(__file__).parent / "datasets.json"

_URI_PREFIXES = ("s3://", "http://", "https://", "file://")

# Sink and column names are interpolated into SQL, so only plain identifiers pass
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_QUALIFIED_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


class FieldType(str, Enum):
    INTEGER = "integer"
    TEXT = "text"
    DATE = "date"


@dataclass(frozen=True)
class FieldSpec:
    """One column of a raw-layer table. `length` bounds text fields."""

    name: str
    type: FieldType
    length: Optional[int] = None

    def __post_init__(self) -> None:
        if self.type == FieldType.TEXT and (self.length is None or self.length <= 0):
            raise ValueError(f"Text field '{self.name}' needs a positive length")


@dataclass(frozen=True)
class RecordFormat:
    """How raw records are laid out in a source."""

    field_delimiter: str = ","
    record_terminator: str = "\n"
    header_rows: int = 1
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if not self.field_delimiter:
            raise ValueError("field_delimiter must not be empty")
        if not self.record_terminator:
            raise ValueError("record_terminator must not be empty")
        if self.header_rows < 0:
            raise ValueError("header_rows must be >= 0")


@dataclass(frozen=True)
class DatasetDefinition:
    """
    Immutable description of one raw dataset.

    Attributes:
        name: Unique dataset name
        group: Source system group ('crm', 'erp', ...)
        sink: Raw-layer table, schema qualified
        source: Locator of the raw extract (path, s3:// or http(s):// URI)
        fields: Ordered sink columns
        format: Delimiter/terminator/header layout of the source
    """

    name: str
    group: str
    sink: str
    source: str
    fields: Tuple[FieldSpec, ...]
    format: RecordFormat = field(default_factory=RecordFormat)

    def __post_init__(self) -> None:
        if not _QUALIFIED_IDENTIFIER.match(self.sink):
            raise ValueError(f"Dataset '{self.name}': invalid sink identifier {self.sink!r}")
        for spec in self.fields:
            if not _IDENTIFIER.match(spec.name):
                raise ValueError(f"Dataset '{self.name}': invalid field name {spec.name!r}")
        if len(set(self.field_names)) != len(self.fields):
            raise ValueError(f"Dataset '{self.name}': duplicate field names")

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]


def resolve_locator(locator: str, source_root: Optional[str]) -> str:
    """
    Resolve a catalog source locator against the configured source root.

    URIs and absolute paths are returned unchanged.

    Args:
        locator: Locator as written in the catalog
        source_root: Base directory or URI prefix, may be None

    Returns:
        str: Locator usable by the source reader
    """
    if locator.startswith(_URI_PREFIXES) or Path(locator).is_absolute() or not source_root:
        return locator
    if source_root.startswith(_URI_PREFIXES):
        return f"{source_root.rstrip('/')}/{PurePosixPath(locator)}"
    return str(Path(source_root) / locator)


def _qualify(sink: str, default_schema: Optional[str]) -> str:
    if "." in sink or not default_schema:
        return sink
    return f"{default_schema}.{sink}"


def _parse_fields(dataset_name: str, raw_fields: Iterable[Dict[str, Any]]) -> Tuple[FieldSpec, ...]:
    fields = []
    for raw in raw_fields:
        try:
            field_type = FieldType(raw["type"])
        except (KeyError, ValueError):
            raise ValueError(
                f"Dataset '{dataset_name}': field {raw.get('name')!r} has invalid type {raw.get('type')!r}"
            )
        fields.append(FieldSpec(name=raw["name"], type=field_type, length=raw.get("length")))
    if not fields:
        raise ValueError(f"Dataset '{dataset_name}' declares no fields")
    return tuple(fields)


class DatasetRegistry:
    """Ordered, read-only catalog of dataset definitions grouped by source system."""

    def __init__(self, groups: Sequence[Tuple[str, Sequence[DatasetDefinition]]]) -> None:
        self._groups: List[Tuple[str, Tuple[DatasetDefinition, ...]]] = []
        seen = set()
        for group_name, definitions in groups:
            if any(name == group_name for name, _ in self._groups):
                raise ValueError(f"Duplicate source group: {group_name}")
            for definition in definitions:
                if definition.name in seen:
                    raise ValueError(f"Duplicate dataset name: {definition.name}")
                if definition.group != group_name:
                    raise ValueError(
                        f"Dataset '{definition.name}' belongs to group '{definition.group}', "
                        f"not '{group_name}'"
                    )
                seen.add(definition.name)
            self._groups.append((group_name, tuple(definitions)))

    @property
    def groups(self) -> List[str]:
        return [name for name, _ in self._groups]

    def list(self, group: str) -> Tuple[DatasetDefinition, ...]:
        """Return the definitions of one source group in processing order."""
        for name, definitions in self._groups:
            if name == group:
                return definitions
        raise KeyError(f"Unknown source group: {group}")

    def all(self) -> List[DatasetDefinition]:
        return [d for _, definitions in self._groups for d in definitions]

    def get(self, name: str) -> DatasetDefinition:
        for definition in self.all():
            if definition.name == name:
                return definition
        raise KeyError(f"Unknown dataset: {name}")

    def select(self, names: Iterable[str]) -> "DatasetRegistry":
        """
        Restrict the registry to the named datasets, keeping registry order.

        Groups left without datasets are dropped.
        """
        wanted = set(names)
        unknown = wanted - {d.name for d in self.all()}
        if unknown:
            raise KeyError(f"Unknown datasets: {', '.join(sorted(unknown))}")
        return DatasetRegistry(
            [
                (group, [d for d in definitions if d.name in wanted])
                for group, definitions in self._groups
                if any(d.name in wanted for d in definitions)
            ]
        )

    def __len__(self) -> int:
        return sum(len(definitions) for _, definitions in self._groups)

    @classmethod
    def from_dict(
        cls,
        catalog: Dict[str, Any],
        source_root: Optional[str] = None,
        default_schema: Optional[str] = None,
    ) -> "DatasetRegistry":
        """
        Build a registry from a parsed catalog.

        Args:
            catalog: {"groups": [{"name": ..., "format": {...}, "datasets": [...]}]}
            source_root: Base directory/URI for relative source locators
            default_schema: Schema used for sinks given without one

        Returns:
            DatasetRegistry: Registry in catalog order
        """
        groups = []
        for raw_group in catalog.get("groups", []):
            group_name = raw_group["name"]
            group_format = raw_group.get("format", {})
            definitions = []
            for raw in raw_group.get("datasets", []):
                record_format = RecordFormat(**{**group_format, **raw.get("format", {})})
                definitions.append(
                    DatasetDefinition(
                        name=raw["name"],
                        group=group_name,
                        sink=_qualify(raw.get("sink", raw["name"]), default_schema),
                        source=resolve_locator(raw["source"], source_root),
                        fields=_parse_fields(raw["name"], raw.get("fields", [])),
                        format=record_format,
                    )
                )
            groups.append((group_name, definitions))
        return cls(groups)

    @classmethod
    def from_file(
        cls,
        path: Path,
        source_root: Optional[str] = None,
        default_schema: Optional[str] = None,
    ) -> "DatasetRegistry":
        with open(path, "r", encoding="utf-8") as f:
            catalog = json.load(f)
        return cls.from_dict(catalog, source_root=source_root, default_schema=default_schema)
