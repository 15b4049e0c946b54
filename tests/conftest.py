"""
Shared fixtures for dupemark tests.
"""

from pathlib import Path

import pytest

from dupemark.annotations import RecordingSink
from dupemark.config import ComparisonConfig, ConfigStore
from dupemark.dedup import ClassificationEngine, HistoryReplayer, SeenRegistry

from tests.helpers.builders import har_entry, write_har


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


# ============================================================================
# Core fixtures
# ============================================================================


@pytest.fixture
def registry() -> SeenRegistry:
    return SeenRegistry(num_shards=4)


@pytest.fixture
def store(registry: SeenRegistry) -> ConfigStore:
    return ConfigStore(ComparisonConfig(), registry=registry)


@pytest.fixture
def engine(store: ConfigStore, registry: SeenRegistry) -> ClassificationEngine:
    return ClassificationEngine(store, registry)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def replayer(engine: ClassificationEngine, sink: RecordingSink) -> HistoryReplayer:
    return HistoryReplayer(engine, sink)


# ============================================================================
# HAR fixtures
# ============================================================================


@pytest.fixture
def har_file(tmp_path: Path) -> Path:
    """A capture with a unique call, a repeat, a static asset and two JSON posts."""
    json_header = [{"name": "Content-Type", "value": "application/json"}]
    entries = [
        har_entry("GET", "https://shop.example.com/api/users?id=1"),
        har_entry("GET", "https://shop.example.com/api/users?id=1"),
        har_entry("GET", "https://shop.example.com/static/app.js"),
        har_entry(
            "POST",
            "https://shop.example.com/api/cart",
            headers=json_header,
            postData={"mimeType": "application/json", "text": '{"sku":"A1","qty":1}'},
        ),
        har_entry(
            "POST",
            "https://shop.example.com/api/cart",
            headers=json_header,
            postData={"mimeType": "application/json", "text": '{"sku":"B2","qty":3}'},
        ),
    ]
    return write_har(tmp_path / "capture.har", entries)


@pytest.fixture
def har_writer(tmp_path: Path):
    """Write arbitrary HAR entries to a temp file."""

    def _write(entries: list, name: str = "custom.har") -> Path:
        return write_har(tmp_path / name, entries)

    return _write
