"""
Unit tests for the deterministic providers.
"""

import pytest

from semantic_kb.core.exceptions import EmbeddingUnavailableError
from semantic_kb.providers.deterministic import EchoGenerator, HashEmbedder, StaticEmbedder


class TestStaticEmbedder:
    """Tests for StaticEmbedder."""
    
    def test_lookup(self):
        """Test known texts return their vectors and calls are recorded."""
        embedder = StaticEmbedder({"steel": [1.0, 0.0]})
        
        assert embedder.embed("steel") == [1.0, 0.0]
        assert embedder.embed_batch(["steel", "steel"]) == [[1.0, 0.0], [1.0, 0.0]]
        assert embedder.calls == ["steel", "steel", "steel"]
    
    def test_returns_copies(self):
        """Test callers cannot mutate the lookup table."""
        embedder = StaticEmbedder({"steel": [1.0, 0.0]})
        embedder.embed("steel").append(5.0)
        
        assert embedder.embed("steel") == [1.0, 0.0]
    
    def test_default(self):
        """Test unknown texts use the default vector."""
        assert StaticEmbedder({}, default=[0.5]).embed("anything") == [0.5]
    
    def test_unknown_without_default(self):
        """Test unknown texts fail without a default."""
        with pytest.raises(EmbeddingUnavailableError):
            StaticEmbedder({}).embed("anything")


class TestHashEmbedder:
    """Tests for HashEmbedder."""
    
    def test_deterministic(self):
        """Test identical texts give identical vectors across instances."""
        assert HashEmbedder(dimension=16).embed("hello") == HashEmbedder(dimension=16).embed("hello")
    
    def test_distinct_texts(self):
        """Test different texts give different vectors."""
        embedder = HashEmbedder(dimension=16)
        assert embedder.embed("hello") != embedder.embed("world")
    
    @pytest.mark.parametrize("dimension", [1, 7, 8, 64, 100])
    def test_dimension_and_range(self, dimension):
        """Test vector length and value range."""
        vector = HashEmbedder(dimension=dimension).embed("text")
        
        assert len(vector) == dimension
        assert all(-1.0 <= value <= 1.0 for value in vector)
    
    def test_invalid_dimension(self):
        """Test dimension must be positive."""
        with pytest.raises(ValueError):
            HashEmbedder(dimension=0)


class TestEchoGenerator:
    """Tests for EchoGenerator."""
    
    def test_records_prompts(self):
        """Test replies are canned and prompts recorded."""
        generator = EchoGenerator(reply="answer", structured_reply={"ok": True})
        
        assert generator.generate_text("p1") == "answer"
        assert generator.generate_structured("p2", {"type": "object"}) == {"ok": True}
        assert generator.prompts == ["p1", "p2"]
