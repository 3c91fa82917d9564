"""
Shared test fixtures and configuration for pytest.
"""

import sys
from pathlib import Path
from typing import List

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from semantic_kb.contracts.passage_contracts import PassageRecord  # noqa: E402
from semantic_kb.storage.embedding_store import (  # noqa: E402
    InMemoryEmbeddingStore,
    JsonFileEmbeddingStore,
)


# ============================================================================
# Pytest hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (requires a running Ollama)")


# ============================================================================
# Fixtures
# ============================================================================

def make_record(
    record_id: str,
    embedding: List[float],
    source: str = "test",
    content: str = None,
    metadata: dict = None,
) -> PassageRecord:
    """Build a PassageRecord with sensible defaults."""
    return PassageRecord(
        id=record_id,
        content=content or f"passage {record_id}",
        embedding=embedding,
        source=source,
        metadata=metadata,
    )


@pytest.fixture
def abc_records() -> List[PassageRecord]:
    """Three records with embeddings [1,0], [0,1], [0.9,0.1] tagged A, B, C."""
    return [
        make_record("a", [1.0, 0.0], source="A", content="Alpha passage"),
        make_record("b", [0.0, 1.0], source="B", content="Beta passage"),
        make_record("c", [0.9, 0.1], source="C", content="Gamma passage"),
    ]


@pytest.fixture
def memory_store(abc_records) -> InMemoryEmbeddingStore:
    """In-memory store preloaded with the A/B/C records."""
    return InMemoryEmbeddingStore(abc_records)


@pytest.fixture
def store_path(tmp_path) -> Path:
    """Path for a JSON store that does not exist yet."""
    return tmp_path / "kb" / "embeddings.json"


@pytest.fixture
def file_store(store_path) -> JsonFileEmbeddingStore:
    """Empty JSON file store under tmp_path."""
    return JsonFileEmbeddingStore(store_path)


@pytest.fixture
def record_factory():
    """Factory fixture building PassageRecords."""
    return make_record
