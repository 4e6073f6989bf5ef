from __future__ import annotations

from pathlib import Path

import pytest

from services.dump_anonymizer.catalog import PatternCatalog, load_catalog
from services.dump_anonymizer.generators import GeneratorRegistry
from services.dump_anonymizer.sql_engine import SQLEngine

PROJECT_ROOT = Path(__file__).resolve().parents[3]
EXAMPLE_CATALOG = PROJECT_ROOT / "config.example.json"


def make_fake_registry() -> GeneratorRegistry:
    """Registry whose generators return fixed, recognisable values."""

    return GeneratorRegistry(
        {
            "username": lambda _current: "anon_user",
            "password": lambda _current: "anon_pass",
            "email": lambda _current: "anon@example.com",
            "url": lambda _current: "http://example.com/anon",
            "name": lambda _current: "Anon Person",
            "firstName": lambda _current: "FIRST",
            "lastName": lambda _current: "LAST",
            "paragraph": lambda _current: "Anon paragraph.",
            "ipv4": lambda _current: "10.0.0.1",
        }
    )


@pytest.fixture
def fake_registry() -> GeneratorRegistry:
    return make_fake_registry()


@pytest.fixture
def wordpress_catalog() -> PatternCatalog:
    return load_catalog(EXAMPLE_CATALOG)


@pytest.fixture
def engine() -> SQLEngine:
    return SQLEngine("mysql")


@pytest.fixture
def example_catalog_path() -> Path:
    return EXAMPLE_CATALOG
