"""
Retrieval module.

This module provides:
- Chunking: Split documents into passages
- Similarity: Cosine scoring of embedding vectors
- Search: Rank stored passages against a query
- Ingestion: Chunk, embed and store source text
- Answering: Grounded answers from retrieved passages
"""

from .chunker import ChunkingStrategy, SentenceChunker, CharacterWindowChunker, chunk_text
from .similarity import cosine_similarity
from .search import RetrievalEngine, find_relevant
from .ingest import Document, Ingestor
from .answer import NO_ANSWER, answer_question, build_answer_prompt

__all__ = [
    "ChunkingStrategy",
    "SentenceChunker",
    "CharacterWindowChunker",
    "chunk_text",
    "cosine_similarity",
    "RetrievalEngine",
    "find_relevant",
    "Document",
    "Ingestor",
    "NO_ANSWER",
    "answer_question",
    "build_answer_prompt",
]
