"""
Semantic Knowledge Base

A small, file-backed semantic retrieval layer. Text is split into passages,
each passage is embedded through an injected embedding provider, and the
resulting records are kept in a flat JSON collection. Queries are embedded
the same way and answered by a linear cosine-similarity scan.

Key components:
- contracts/: Passage records, similarity results, chunking and retrieval policies
- core/: Exceptions, logging and configuration
- retrieval/: Chunking, similarity, search, ingestion and grounded answering
- storage/: Embedding store implementations
- providers/: Embedding and text-generation providers (Ollama, test doubles)
- cli/: Command-line entry point
"""

__version__ = "0.1.0"
