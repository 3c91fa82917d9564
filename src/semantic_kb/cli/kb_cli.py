"""
Knowledge base CLI - ingest, query, ask and inspect.

Configuration comes from an optional YAML file (--config), environment
variables (a .env file in the working directory is loaded first) and the
command-line flags, in increasing precedence.

Exit codes: 0 success, 1 knowledge base error, 2 usage error.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from dotenv import find_dotenv, load_dotenv

from ..contracts.passage_contracts import ChunkingPolicy, RetrievalPolicy
from ..core.config import KBConfig, load_config
from ..core.exceptions import KBError
from ..core.logging import configure_logging
from ..providers.base import Embedder, TextGenerator
from ..providers.ollama_client import OllamaClient, OllamaEmbedder, OllamaTextGenerator
from ..retrieval.answer import answer_question
from ..retrieval.chunker import SentenceChunker
from ..retrieval.ingest import Ingestor
from ..retrieval.search import RetrievalEngine
from ..storage.embedding_store import JsonFileEmbeddingStore, summarize_store


logger = logging.getLogger(__name__)


def make_embedder(config: KBConfig) -> Embedder:
    """Build the embedding provider for this run."""
    return OllamaEmbedder(OllamaClient.from_config(config))


def make_generator(config: KBConfig) -> TextGenerator:
    """Build the text generator for this run."""
    return OllamaTextGenerator(OllamaClient.from_config(config))


def parse_metadata(pairs: Optional[List[str]]) -> Optional[Dict[str, Any]]:
    """
    Parse ``key=value`` pairs into a metadata mapping.
    
    Values that parse as JSON keep their JSON type; anything else is a string.
    
    Raises:
        ValueError: If a pair has no '='
    """
    if not pairs:
        return None
    
    metadata: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Metadata must be key=value, got {pair!r}")
        try:
            metadata[key] = json.loads(raw)
        except json.JSONDecodeError:
            metadata[key] = raw
    return metadata


def cmd_ingest(args: argparse.Namespace, config: KBConfig, out: TextIO) -> int:
    if args.path == "-":
        text = sys.stdin.read()
        source = args.source or "stdin"
    else:
        path = Path(args.path)
        text = path.read_text(encoding="utf-8")
        source = args.source or path.name
    
    chunker = SentenceChunker(ChunkingPolicy(
        delimiter=config.delimiter,
        max_chunks_per_source=config.max_chunks_per_source,
    ))
    ingestor = Ingestor(
        store=JsonFileEmbeddingStore(config.store_path),
        embedder=make_embedder(config),
        chunker=chunker,
        batch_size=config.batch_size,
        max_workers=config.max_workers,
    )
    
    records = ingestor.ingest_text(text, source=source, metadata=parse_metadata(args.meta))
    out.write(f"Ingested {len(records)} passages from {source} into {config.store_path}\n")
    return 0


def _make_engine(config: KBConfig) -> RetrievalEngine:
    return RetrievalEngine(
        store=JsonFileEmbeddingStore(config.store_path),
        embedder=make_embedder(config),
        policy=RetrievalPolicy(threshold=config.threshold, top_k=config.top_k),
    )


def cmd_query(args: argparse.Namespace, config: KBConfig, out: TextIO) -> int:
    results = _make_engine(config).find_relevant(
        args.text, threshold=args.threshold, top_k=args.top_k
    )
    
    if args.json:
        json.dump([result.to_dict() for result in results], out, indent=2, ensure_ascii=False)
        out.write("\n")
        return 0
    
    out.write(f"Found {len(results)} relevant passages\n")
    for i, result in enumerate(results, start=1):
        out.write(f"  {i}. Similarity: {result.similarity:.3f} [{result.source}]\n")
        out.write(f"     {result.content[:100]}\n")
    return 0


def cmd_ask(args: argparse.Namespace, config: KBConfig, out: TextIO) -> int:
    answer = answer_question(
        args.question,
        engine=_make_engine(config),
        generator=make_generator(config),
        threshold=args.threshold,
        top_k=args.top_k,
    )
    out.write(answer + "\n")
    return 0


def cmd_stats(args: argparse.Namespace, config: KBConfig, out: TextIO) -> int:
    summary = summarize_store(JsonFileEmbeddingStore(config.store_path).load_all())
    
    if args.json:
        json.dump(summary.to_dict(), out, indent=2)
        out.write("\n")
        return 0
    
    out.write(f"Store: {config.store_path}\n")
    out.write(f"Records: {summary.record_count}\n")
    out.write(f"Dimension: {summary.dimension if summary.dimension is not None else '-'}\n")
    for source, count in summary.sources.items():
        out.write(f"  {source}: {count}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="semantic-kb",
        description="Semantic knowledge base - file-backed passage retrieval",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Ingest a document, tagging every passage
  semantic-kb ingest docs/material-specs.txt --source material-specs --meta type=material-spec

  # Top 3 passages above 0.6
  semantic-kb query "What is the yield strength of SS316?" --threshold 0.6 --top-k 3

  # Grounded answer
  semantic-kb ask "Which grades contain nickel?"
        """,
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--store", type=str, default=None, help="Embedding store path (overrides config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--structured-logs", action="store_true", help="Emit JSON log lines")
    
    subparsers = parser.add_subparsers(dest="command", required=True)
    
    ingest_parser = subparsers.add_parser("ingest", help="Chunk, embed and store a text file")
    ingest_parser.add_argument("path", help="Text file to ingest, or - for stdin")
    ingest_parser.add_argument("--source", type=str, default=None, help="Source tag (default: file name)")
    ingest_parser.add_argument(
        "--meta", action="append", metavar="KEY=VALUE",
        help="Metadata attached to every passage (repeatable)",
    )
    ingest_parser.set_defaults(handler=cmd_ingest)
    
    query_parser = subparsers.add_parser("query", help="Find passages relevant to a query")
    query_parser.add_argument("text", help="Query text")
    query_parser.add_argument("--threshold", type=float, default=None, help="Minimum similarity, exclusive")
    query_parser.add_argument("--top-k", type=int, default=None, help="Maximum results")
    query_parser.add_argument("--json", action="store_true", help="Print results as JSON")
    query_parser.set_defaults(handler=cmd_query)
    
    ask_parser = subparsers.add_parser("ask", help="Answer a question from the knowledge base")
    ask_parser.add_argument("question", help="Question text")
    ask_parser.add_argument("--threshold", type=float, default=None, help="Minimum similarity, exclusive")
    ask_parser.add_argument("--top-k", type=int, default=None, help="Maximum passages used")
    ask_parser.set_defaults(handler=cmd_ask)
    
    stats_parser = subparsers.add_parser("stats", help="Summarize store contents")
    stats_parser.add_argument("--json", action="store_true", help="Print summary as JSON")
    stats_parser.set_defaults(handler=cmd_stats)
    
    return parser


def main(argv: Optional[List[str]] = None, out: Optional[TextIO] = None) -> int:
    """CLI entry point."""
    out = out or sys.stdout
    parser = build_parser()
    args = parser.parse_args(argv)
    
    load_dotenv(find_dotenv(usecwd=True))
    
    try:
        config = load_config(args.config)
        if args.store:
            config.store_path = args.store
        
        configure_logging(
            level=logging.DEBUG if args.verbose else config.log_level_value,
            structured=args.structured_logs or config.structured_logs,
        )
        
        return args.handler(args, config, out)
    except KBError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
