"""
Unit tests for the dataset registry.
"""

import json

import pytest

from bronze_ingestion.registry import (
    DatasetDefinition,
    DatasetRegistry,
    FieldSpec,
    FieldType,
    RecordFormat,
    resolve_locator,
)

FIELDS = (FieldSpec("id", FieldType.INTEGER), FieldSpec("name", FieldType.TEXT, 20))


def _definition(name, group="crm", sink=None):
    return DatasetDefinition(
        name=name, group=group, sink=sink or f"bronze.{name}", source=f"{name}.csv", fields=FIELDS
    )


class TestDatasetRegistry:
    """Test ordering, lookup and validation of the registry."""

    def test_list_preserves_registry_order(self):
        """Test datasets come back in the order they were supplied."""
        registry = DatasetRegistry(
            [
                ("crm", [_definition("b"), _definition("a")]),
                ("erp", [_definition("c", group="erp")]),
            ]
        )

        assert registry.groups == ["crm", "erp"]
        assert [d.name for d in registry.list("crm")] == ["b", "a"]
        assert [d.name for d in registry.all()] == ["b", "a", "c"]
        assert len(registry) == 3

    def test_duplicate_names_across_groups_rejected(self):
        """Test dataset names must be unique across the whole registry."""
        with pytest.raises(ValueError, match="Duplicate dataset name: a"):
            DatasetRegistry(
                [("crm", [_definition("a")]), ("erp", [_definition("a", group="erp")])]
            )

    def test_group_mismatch_rejected(self):
        """Test a definition must sit in its own group."""
        with pytest.raises(ValueError, match="belongs to group"):
            DatasetRegistry([("crm", [_definition("a", group="erp")])])

    def test_unknown_group_and_dataset(self):
        """Test lookups of unknown names raise KeyError."""
        registry = DatasetRegistry([("crm", [_definition("a")])])

        with pytest.raises(KeyError):
            registry.list("erp")
        with pytest.raises(KeyError):
            registry.get("missing")

    def test_select_keeps_order_and_drops_empty_groups(self):
        """Test restricting the registry to named datasets."""
        registry = DatasetRegistry(
            [
                ("crm", [_definition("a"), _definition("b")]),
                ("erp", [_definition("c", group="erp")]),
            ]
        )

        selected = registry.select(["c", "a"])

        assert selected.groups == ["crm", "erp"]
        assert [d.name for d in selected.all()] == ["a", "c"]
        assert registry.select(["b"]).groups == ["crm"]

        with pytest.raises(KeyError, match="zzz"):
            registry.select(["zzz"])

    def test_definition_is_immutable(self):
        """Test dataset definitions cannot be changed after creation."""
        definition = _definition("a")
        with pytest.raises(Exception):
            definition.sink = "bronze.other"

    def test_invalid_identifiers_rejected(self):
        """Test sink and field names must be plain SQL identifiers."""
        with pytest.raises(ValueError, match="invalid sink identifier"):
            _definition("a", sink="bronze.a; DROP TABLE x")
        with pytest.raises(ValueError, match="invalid field name"):
            DatasetDefinition(
                name="a",
                group="crm",
                sink="bronze.a",
                source="a.csv",
                fields=(FieldSpec("bad name", FieldType.INTEGER),),
            )

    def test_text_field_requires_length(self):
        """Test text fields must declare their bound."""
        with pytest.raises(ValueError, match="positive length"):
            FieldSpec("name", FieldType.TEXT)


class TestRegistryFromCatalog:
    """Test building the registry from a JSON catalog."""

    def test_from_file_applies_group_format_and_schema(self, tmp_path):
        """Test group-level format defaults, per-dataset overrides and sink qualification."""
        catalog = {
            "groups": [
                {
                    "name": "erp",
                    "format": {"field_delimiter": ";", "header_rows": 2},
                    "datasets": [
                        {
                            "name": "loc",
                            "source": "erp/loc.csv",
                            "fields": [{"name": "cid", "type": "text", "length": 50}],
                        },
                        {
                            "name": "cat",
                            "sink": "staging.cat",
                            "source": "s3://bucket/erp/cat.csv",
                            "format": {"header_rows": 0},
                            "fields": [{"name": "id", "type": "integer"}],
                        },
                    ],
                }
            ]
        }
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(catalog))

        registry = DatasetRegistry.from_file(path, source_root=str(tmp_path), default_schema="bronze")

        loc = registry.get("loc")
        assert loc.sink == "bronze.loc"
        assert loc.source == str(tmp_path / "erp" / "loc.csv")
        assert loc.format == RecordFormat(field_delimiter=";", header_rows=2)

        cat = registry.get("cat")
        assert cat.sink == "staging.cat"
        assert cat.source == "s3://bucket/erp/cat.csv"
        assert cat.format.field_delimiter == ";"
        assert cat.format.header_rows == 0

    def test_invalid_field_type(self):
        """Test an unknown field type is reported with the dataset name."""
        catalog = {
            "groups": [
                {
                    "name": "crm",
                    "datasets": [
                        {"name": "x", "source": "x.csv", "fields": [{"name": "a", "type": "float"}]}
                    ],
                }
            ]
        }
        with pytest.raises(ValueError, match="Dataset 'x'"):
            DatasetRegistry.from_dict(catalog)

    def test_dataset_without_fields_rejected(self):
        """Test every dataset must declare its fields."""
        catalog = {"groups": [{"name": "crm", "datasets": [{"name": "x", "source": "x.csv"}]}]}
        with pytest.raises(ValueError, match="declares no fields"):
            DatasetRegistry.from_dict(catalog)


class TestResolveLocator:
    """Test resolution of relative source locators."""

    def test_uri_root(self):
        assert resolve_locator("crm/a.csv", "s3://bucket/raw/") == "s3://bucket/raw/crm/a.csv"
        assert resolve_locator("crm/a.csv", "https://host/x") == "https://host/x/crm/a.csv"

    def test_absolute_and_uri_locators_unchanged(self):
        assert resolve_locator("/abs/a.csv", "/root") == "/abs/a.csv"
        assert resolve_locator("s3://b/k.csv", "/root") == "s3://b/k.csv"

    def test_no_root(self):
        assert resolve_locator("crm/a.csv", None) == "crm/a.csv"
