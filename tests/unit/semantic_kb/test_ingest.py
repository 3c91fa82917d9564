"""
Unit tests for ingestion.

Tests for:
- Chunk, embed, append flow
- Single append per ingestion and all-or-nothing failure
- Parallel batch embedding
- Ingest then retrieve
"""

import itertools
import logging
import threading

import pytest

from semantic_kb.contracts.passage_contracts import ChunkingPolicy
from semantic_kb.core.exceptions import (
    DimensionMismatchError,
    EmbeddingUnavailableError,
    InvalidInputError,
)
from semantic_kb.providers.base import Embedder
from semantic_kb.providers.deterministic import HashEmbedder, StaticEmbedder
from semantic_kb.retrieval.chunker import CharacterWindowChunker, SentenceChunker
from semantic_kb.retrieval.ingest import Document, Ingestor
from semantic_kb.retrieval.search import RetrievalEngine
from semantic_kb.storage.embedding_store import InMemoryEmbeddingStore


class CountingStore(InMemoryEmbeddingStore):
    """In-memory store that counts append calls."""
    
    def __init__(self, records=None):
        super().__init__(records)
        self.append_calls = 0
    
    def append(self, new_records):
        self.append_calls += 1
        return super().append(new_records)


class FlakyEmbedder(Embedder):
    """Embedder that fails on one specific text."""
    
    def __init__(self, bad_text):
        self.bad_text = bad_text
    
    def embed(self, text):
        if text == self.bad_text:
            raise TimeoutError("embedding timed out")
        return [1.0, float(len(text))]


class RaggedEmbedder(Embedder):
    """Embedder whose vector length depends on the text."""
    
    def embed(self, text):
        return [1.0] * len(text)


class ThreadRecordingEmbedder(HashEmbedder):
    """HashEmbedder recording which threads served batches."""
    
    def __init__(self):
        super().__init__(dimension=8)
        self.batches = []
        self.threads = set()
        self._lock = threading.Lock()
    
    def embed_batch(self, texts):
        with self._lock:
            self.batches.append(list(texts))
            self.threads.add(threading.get_ident())
        return super().embed_batch(texts)


def _sequential_ids():
    counter = itertools.count()
    return lambda: f"chunk_{next(counter)}"


class TestIngestText:
    """Tests for Ingestor.ingest_text."""
    
    def test_basic_ingest(self):
        """Test passages are chunked, embedded and stored in order."""
        store = CountingStore()
        embedder = StaticEmbedder({"first fact": [1.0, 0.0], "second fact": [0.0, 1.0]})
        ingestor = Ingestor(store, embedder, id_factory=_sequential_ids())
        
        records = ingestor.ingest_text("first fact. second fact.", source="facts.txt")
        
        assert [r.content for r in records] == ["first fact", "second fact"]
        assert [r.id for r in records] == ["chunk_0", "chunk_1"]
        assert [r.embedding for r in records] == [[1.0, 0.0], [0.0, 1.0]]
        assert all(r.source == "facts.txt" for r in records)
        assert store.load_all() == records
        assert store.append_calls == 1
    
    def test_metadata_copied_to_every_passage(self):
        """Test metadata is attached to each record."""
        store = InMemoryEmbeddingStore()
        ingestor = Ingestor(store, HashEmbedder(dimension=4))
        
        records = ingestor.ingest_text("a. b. c", source="s", metadata={"type": "material-spec"})
        
        assert [r.metadata for r in records] == [{"type": "material-spec"}] * 3
    
    def test_default_ids_are_unique(self):
        """Test generated ids are unique and prefixed."""
        store = InMemoryEmbeddingStore()
        ingestor = Ingestor(store, HashEmbedder(dimension=4))
        
        ingestor.ingest_text("a. b. c", source="s")
        ingestor.ingest_text("a. b. c", source="s")
        
        ids = [r.id for r in store.load_all()]
        assert len(ids) == 6
        assert len(set(ids)) == 6
        assert all(i.startswith("chunk_") for i in ids)
    
    def test_empty_text_leaves_store_untouched(self):
        """Test text with no passages does not call the embedder or store."""
        store = CountingStore()
        embedder = StaticEmbedder({})
        
        records = Ingestor(store, embedder).ingest_text(" . .. ", source="empty")
        
        assert records == []
        assert store.append_calls == 0
        assert embedder.calls == []
    
    def test_embedding_failure_writes_nothing(self, memory_store):
        """Test a failing embedding aborts the whole ingestion."""
        ingestor = Ingestor(memory_store, FlakyEmbedder("bad"))
        
        with pytest.raises(EmbeddingUnavailableError) as exc_info:
            ingestor.ingest_text("good. bad. fine", source="s")
        
        assert isinstance(exc_info.value.__cause__, TimeoutError)
        assert len(memory_store.load_all()) == 3
    
    def test_unavailable_error_not_rewrapped(self):
        """Test EmbeddingUnavailableError from the embedder passes through."""
        ingestor = Ingestor(InMemoryEmbeddingStore(), StaticEmbedder({}))
        
        with pytest.raises(EmbeddingUnavailableError) as exc_info:
            ingestor.ingest_text("unknown", source="s")
        
        assert exc_info.value.provider == "static"
    
    def test_empty_vector_rejected(self):
        """Test an embedder returning empty vectors is unusable."""
        ingestor = Ingestor(InMemoryEmbeddingStore(), StaticEmbedder({}, default=[]))
        
        with pytest.raises(EmbeddingUnavailableError):
            ingestor.ingest_text("text", source="s")
    
    @pytest.mark.parametrize("bad", [float("nan"), float("inf")])
    def test_non_finite_embedding_rejected(self, file_store, store_path, bad):
        """Test non-finite embeddings fail ingestion and nothing is written."""
        ingestor = Ingestor(file_store, StaticEmbedder({}, default=[bad, 1.0]))
        
        with pytest.raises(EmbeddingUnavailableError, match="non-finite"):
            ingestor.ingest_text("a. b", source="s")
        
        assert not store_path.exists()
    
    def test_records_do_not_share_metadata(self):
        """Test each record gets its own copy of the document metadata."""
        metadata = {"tags": ["steel"]}
        records = Ingestor(InMemoryEmbeddingStore(), HashEmbedder(dimension=4)).ingest_text(
            "a. b", source="s", metadata=metadata
        )
        
        records[0].metadata["tags"].append("brass")
        
        assert records[1].metadata == {"tags": ["steel"]}
        assert metadata == {"tags": ["steel"]}
    
    def test_ragged_embeddings_rejected(self):
        """Test embeddings of different lengths within a batch fail."""
        store = InMemoryEmbeddingStore()
        
        with pytest.raises(DimensionMismatchError):
            Ingestor(store, RaggedEmbedder()).ingest_text("ab. abc", source="s")
        
        assert store.load_all() == []
    
    def test_dimension_differs_from_store(self, memory_store):
        """Test embeddings not matching the store dimension fail."""
        ingestor = Ingestor(memory_store, HashEmbedder(dimension=3))
        
        with pytest.raises(DimensionMismatchError):
            ingestor.ingest_text("new text", source="s")
        
        assert len(memory_store.load_all()) == 3
    
    def test_invalid_metadata(self):
        """Test unsupported metadata is rejected before embedding."""
        embedder = StaticEmbedder({}, default=[1.0])
        ingestor = Ingestor(InMemoryEmbeddingStore(), embedder)
        
        with pytest.raises(InvalidInputError):
            ingestor.ingest_text("text", source="s", metadata={"when": object()})
        
        assert embedder.calls == []
    
    def test_invalid_source(self):
        """Test a non-string source is rejected."""
        ingestor = Ingestor(InMemoryEmbeddingStore(), HashEmbedder())
        
        with pytest.raises(InvalidInputError):
            ingestor.ingest_text("text", source=None)
    
    def test_custom_chunker(self):
        """Test the chunking strategy is pluggable."""
        store = InMemoryEmbeddingStore()
        chunker = CharacterWindowChunker(chunk_size=10, overlap=0)
        
        records = Ingestor(store, HashEmbedder(dimension=4), chunker=chunker).ingest_text(
            "x" * 25, source="s"
        )
        
        assert [len(r.content) for r in records] == [10, 10, 5]
    
    def test_chunk_cap_applies(self):
        """Test the per-source cap limits stored passages."""
        chunker = SentenceChunker(ChunkingPolicy(max_chunks_per_source=2))
        store = InMemoryEmbeddingStore()
        
        records = Ingestor(store, HashEmbedder(dimension=4), chunker=chunker).ingest_text(
            "a. b. c. d", source="s"
        )
        
        assert [r.content for r in records] == ["a", "b"]
    
    def test_long_source_not_truncated_by_default(self, caplog):
        """Test every passage of a long source is embedded and stored."""
        store = InMemoryEmbeddingStore()
        text = ". ".join(f"sentence {i}" for i in range(1005))
        
        with caplog.at_level(logging.WARNING, logger="semantic_kb"):
            records = Ingestor(store, HashEmbedder(dimension=4)).ingest_text(text, source="doc")
        
        assert len(records) == 1005
        assert len(store.load_all()) == 1005
        assert records[-1].content == "sentence 1004"
        assert caplog.records == []
    
    def test_invalid_batch_settings(self):
        """Test batch_size and max_workers must be positive."""
        with pytest.raises(ValueError, match="batch_size"):
            Ingestor(InMemoryEmbeddingStore(), HashEmbedder(), batch_size=0)
        with pytest.raises(ValueError, match="max_workers"):
            Ingestor(InMemoryEmbeddingStore(), HashEmbedder(), max_workers=0)


class TestIngestDocuments:
    """Tests for Ingestor.ingest_documents."""
    
    def test_multiple_documents_single_append(self):
        """Test several documents land in one append, keeping their sources."""
        store = CountingStore()
        ingestor = Ingestor(store, HashEmbedder(dimension=4))
        
        records = ingestor.ingest_documents([
            Document("one. two", source="d1", metadata={"n": 1}),
            Document("three", source="d2"),
        ])
        
        assert [(r.content, r.source) for r in records] == [
            ("one", "d1"), ("two", "d1"), ("three", "d2"),
        ]
        assert records[0].metadata == {"n": 1}
        assert records[2].metadata is None
        assert store.append_calls == 1
    
    def test_batches_preserve_order(self):
        """Test batching across workers keeps passage order."""
        embedder = ThreadRecordingEmbedder()
        store = InMemoryEmbeddingStore()
        ingestor = Ingestor(store, embedder, batch_size=3, max_workers=4)
        texts = [f"sentence {i}" for i in range(20)]
        
        records = ingestor.ingest_text(". ".join(texts), source="s")
        
        assert [r.content for r in records] == texts
        assert [r.embedding for r in records] == [HashEmbedder(dimension=8).embed(t) for t in texts]
        assert len(embedder.batches) == 7
        assert all(len(batch) <= 3 for batch in embedder.batches)
    
    def test_sequential_when_single_worker(self):
        """Test max_workers=1 embeds on the calling thread."""
        embedder = ThreadRecordingEmbedder()
        ingestor = Ingestor(InMemoryEmbeddingStore(), embedder, batch_size=2, max_workers=1)
        
        ingestor.ingest_text("a. b. c. d. e", source="s")
        
        assert embedder.threads == {threading.get_ident()}
        assert [len(b) for b in embedder.batches] == [2, 2, 1]
    
    def test_parallel_failure_writes_nothing(self):
        """Test a failure in one parallel batch aborts the ingestion."""
        store = CountingStore()
        ingestor = Ingestor(store, FlakyEmbedder("s7"), batch_size=2, max_workers=3)
        
        with pytest.raises(EmbeddingUnavailableError):
            ingestor.ingest_text(". ".join(f"s{i}" for i in range(10)), source="s")
        
        assert store.append_calls == 0


class TestIngestThenRetrieve:
    """Tests for ingestion followed by retrieval."""
    
    def test_retrieves_ingested_passage(self):
        """Test an ingested passage is found by its own text."""
        store = InMemoryEmbeddingStore()
        embedder = HashEmbedder(dimension=32)
        Ingestor(store, embedder).ingest_text(
            "SS304 has 18% chromium. SS316 adds molybdenum. Brass is copper and zinc",
            source="materials",
        )
        
        results = RetrievalEngine(store, embedder).find_relevant("SS316 adds molybdenum", top_k=1)
        
        assert results[0].content == "SS316 adds molybdenum"
        assert results[0].similarity == pytest.approx(1.0)
        assert results[0].source == "materials"
    
    def test_file_store_round_trip(self, file_store):
        """Test ingestion persists to disk and retrieval reads it back."""
        embedder = StaticEmbedder({
            "Alpha": [1.0, 0.0],
            "Beta": [0.0, 1.0],
            "Gamma": [0.9, 0.1],
            "query": [1.0, 0.0],
        })
        Ingestor(file_store, embedder).ingest_text("Alpha. Beta. Gamma", source="abc")
        
        results = RetrievalEngine(file_store, embedder).find_relevant("query", threshold=0.5, top_k=2)
        
        assert [r.content for r in results] == ["Alpha", "Gamma"]
