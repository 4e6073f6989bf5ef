from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from services.dump_anonymizer.catalog import (
    ConstraintRule,
    PatternCatalog,
    load_catalog,
    parse_catalog,
)
from services.dump_anonymizer.errors import CatalogError


def test_parse_catalog_reads_wire_names() -> None:
    catalog = parse_catalog(
        {
            "patterns": [
                {
                    "tableName": "wp_usermeta",
                    "fields": [
                        {
                            "field": "meta_value",
                            "position": 4,
                            "type": "firstName",
                            "constraints": [
                                {"field": "meta_key", "position": 3, "value": "first_name"}
                            ],
                        }
                    ],
                }
            ]
        }
    )

    (pattern,) = catalog.patterns
    assert pattern.table_name == "wp_usermeta"
    (rule,) = pattern.fields
    assert rule.label == "meta_value"
    assert rule.position == 4
    assert rule.type == "firstName"
    assert rule.constraints == (
        ConstraintRule(field="meta_key", position=3, expected_literal="first_name"),
    )


def test_null_constraints_mean_unconstrained() -> None:
    catalog = parse_catalog(
        {
            "patterns": [
                {
                    "tableName": "wp_users",
                    "fields": [
                        {"field": "user_login", "position": 2, "type": "username", "constraints": None}
                    ],
                }
            ]
        }
    )

    assert catalog.patterns[0].fields[0].constraints == ()


def test_numeric_constraint_value_is_compared_as_text() -> None:
    catalog = parse_catalog(
        {
            "patterns": [
                {
                    "tableName": "t",
                    "fields": [
                        {
                            "position": 2,
                            "type": "name",
                            "constraints": [{"position": 1, "value": 7}],
                        }
                    ],
                }
            ]
        }
    )

    assert catalog.patterns[0].fields[0].constraints[0].expected_literal == "7"


def test_load_example_catalog(example_catalog_path: Path) -> None:
    catalog = load_catalog(example_catalog_path)

    assert catalog.table_names == frozenset({"wp_users", "wp_usermeta", "wp_comments"})
    (usermeta,) = catalog.patterns_for("wp_usermeta")
    assert [rule.type for rule in usermeta.fields] == [
        "firstName",
        "lastName",
        "firstName",
        "paragraph",
    ]
    assert [rule.constraints[0].expected_literal for rule in usermeta.fields] == [
        "first_name",
        "last_name",
        "nickname",
        "description",
    ]
    assert "ipv4" in catalog.generator_tags()


def test_patterns_for_keeps_catalog_order() -> None:
    catalog = parse_catalog(
        {
            "patterns": [
                {"tableName": "a", "fields": [{"position": 1, "type": "name"}]},
                {"tableName": "b", "fields": []},
                {"tableName": "a", "fields": [{"position": 2, "type": "email"}]},
            ]
        }
    )

    matches = catalog.patterns_for("a")
    assert [pattern.fields[0].type for pattern in matches] == ["name", "email"]
    assert catalog.patterns_for("missing") == ()


def test_empty_catalog_is_valid() -> None:
    assert parse_catalog({}) == PatternCatalog()
    assert parse_catalog({"patterns": None}).patterns == ()


@pytest.mark.parametrize(
    "document",
    [
        {"patterns": [{"tableName": "t", "fields": [{"position": 0, "type": "name"}]}]},
        {"patterns": [{"tableName": "t", "fields": [{"position": 1, "type": ""}]}]},
        {"patterns": [{"fields": []}]},
        {"patterns": [{"tableName": "t", "fields": [{"position": "first", "type": "name"}]}]},
    ],
)
def test_parse_catalog_rejects_invalid_documents(document: dict) -> None:
    with pytest.raises(CatalogError):
        parse_catalog(document)


def test_load_catalog_missing_file(tmp_path: Path) -> None:
    with pytest.raises(CatalogError, match="Unable to read"):
        load_catalog(tmp_path / "absent.json")


def test_load_catalog_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(CatalogError, match="not valid JSON"):
        load_catalog(path)


def test_load_catalog_requires_object(tmp_path: Path) -> None:
    path = tmp_path / "list.json"
    path.write_text(json.dumps([1, 2, 3]), encoding="utf-8")

    with pytest.raises(CatalogError, match="JSON object"):
        load_catalog(path)


def test_load_catalog_schema_error_names_the_file(tmp_path: Path) -> None:
    path = tmp_path / "bad_position.json"
    path.write_text(
        json.dumps({"patterns": [{"tableName": "t", "fields": [{"position": 0, "type": "name"}]}]}),
        encoding="utf-8",
    )

    with pytest.raises(CatalogError, match="Invalid pattern catalog .*bad_position.json"):
        load_catalog(path)


def test_parse_catalog_error_without_source() -> None:
    with pytest.raises(CatalogError, match="^Invalid pattern catalog: "):
        parse_catalog({"patterns": [{"fields": []}]})


def test_catalog_models_are_frozen(example_catalog_path: Path) -> None:
    catalog = load_catalog(example_catalog_path)

    with pytest.raises(ValidationError):
        catalog.patterns[0].table_name = "other"  # type: ignore[misc]
