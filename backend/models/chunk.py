"""Chunk data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class Chunk:
    """Represents a contiguous excerpt of one document, the unit of retrieval."""
    id: int  # Unique and consecutive across one chunking call, starting at 0
    text: str
    doc_index: int
    doc_name: str
    start_char: int  # Approximate offset within the trimmed document text

    def to_dict(self) -> Dict[str, Any]:
        """Export to the JSON shape used by the HTTP API."""
        return {
            "id": self.id,
            "text": self.text,
            "docIndex": self.doc_index,
            "docName": self.doc_name,
            "startChar": self.start_char,
        }


@dataclass(frozen=True)
class ScoredChunk:
    """Chunk with BM25 relevance score from retrieval."""
    chunk: Chunk
    score: float  # >= 0.0, 0.0 means no query term matched
    term_matches: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = self.chunk.to_dict()
        data["score"] = self.score
        data["termMatches"] = list(self.term_matches)
        return data
