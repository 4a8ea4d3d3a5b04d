"""
Command line BM25 search over a directory of text documents.

This script:
1. Loads all .txt / .md files from a directory
2. Chunks them with paragraph-aware splitting
3. Ranks chunks against the query with BM25
4. Prints the top results (or JSON with --json)

Usage:
    python search_documents.py docs/ "how do cats sleep" --top-k 3
"""
import sys
import json
import argparse
import logging
from pathlib import Path
from typing import List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.document_loader import DocumentLoader
from services.chunking_engine import ChunkingEngine, ChunkingConfigError
from services.retrieval_engine import RetrievalEngine
from services.bm25_index import query_terms
from models.chunk import ScoredChunk
from config import CHUNK_SIZE, CHUNK_OVERLAP, DEFAULT_TOP_K

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 160


def format_results(results: List[ScoredChunk]) -> str:
    """
    Render ranked chunks as a plain-text report.

    Args:
        results: Ranked chunks

    Returns:
        One block per chunk with rank, score, source and a text preview
    """
    lines = []
    for rank, scored in enumerate(results, start=1):
        chunk = scored.chunk
        preview = " ".join(chunk.text.split())
        if len(preview) > PREVIEW_CHARS:
            preview = preview[:PREVIEW_CHARS] + "..."
        lines.append(
            f"{rank}. [{scored.score:.3f}] {chunk.doc_name} "
            f"(chunk {chunk.id}, char {chunk.start_char})"
        )
        lines.append(f"   terms: {', '.join(scored.term_matches)}")
        lines.append(f"   {preview}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for command line search."""
    parser = argparse.ArgumentParser(
        description="BM25 search over a directory of text documents"
    )
    parser.add_argument("directory", help="Directory containing .txt / .md files")
    parser.add_argument("query", help="Search query")
    parser.add_argument(
        "--top-k",
        type=int,
        default=DEFAULT_TOP_K,
        help=f"Maximum number of results (default: {DEFAULT_TOP_K})"
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=CHUNK_SIZE,
        help=f"Maximum chunk length in characters (default: {CHUNK_SIZE})"
    )
    parser.add_argument(
        "--overlap",
        type=int,
        default=CHUNK_OVERLAP,
        help=f"Window overlap for oversized paragraphs (default: {CHUNK_OVERLAP})"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON"
    )
    args = parser.parse_args(argv)

    if args.top_k < 1:
        parser.error("--top-k must be at least 1")

    try:
        chunking_engine = ChunkingEngine(chunk_size=args.chunk_size, chunk_overlap=args.overlap)
    except ChunkingConfigError as e:
        parser.error(str(e))

    documents = DocumentLoader(docs_directory=args.directory).load_documents()
    if not documents:
        logger.error(f"No documents found in {args.directory}")
        return 1

    chunks = chunking_engine.chunk_documents(documents)
    results = RetrievalEngine().search(chunks, args.query, top_k=args.top_k)

    if args.json:
        print(json.dumps({
            "chunks": [scored.to_dict() for scored in results],
            "totalChunks": len(chunks),
            "queryTerms": query_terms(args.query)
        }, indent=2))
    elif results:
        print(format_results(results))
    else:
        print("No relevant content found.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
