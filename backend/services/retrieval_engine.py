"""Retrieval engine ranking chunks against a query with Okapi BM25."""
import logging
import math
from typing import List, Sequence

from models.chunk import Chunk, ScoredChunk
from services.bm25_index import BM25Index, build_index, query_terms
from config import BM25_K1, BM25_B, DEFAULT_TOP_K

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Score chunks with BM25 and return the top-K matches."""

    def __init__(self, k1: float = BM25_K1, b: float = BM25_B):
        """
        Initialize the retrieval engine.

        Args:
            k1: Term frequency saturation (higher = more weight on repeats)
            b: Length normalization strength (1.0 = full, 0.0 = none)
        """
        self.k1 = k1
        self.b = b

    def search(
        self,
        chunks: Sequence[Chunk],
        query: str,
        top_k: int = DEFAULT_TOP_K
    ) -> List[ScoredChunk]:
        """
        Rank chunks against query and return the best matches.

        A fresh index is built for every call and discarded afterwards.
        Only chunks with a positive score are returned, highest first;
        equal scores keep their original chunk order.

        Args:
            chunks: Chunks to rank (not modified)
            query: User question
            top_k: Maximum number of chunks to return

        Returns:
            List of scored chunks, empty if nothing matched

        Raises:
            TypeError: If query is not a string, top_k is not an int, or a
                chunk has non-string text
            ValueError: If top_k is smaller than 1
        """
        if not isinstance(query, str):
            raise TypeError(f"query must be a string, got {type(query).__name__}")
        if isinstance(top_k, bool) or not isinstance(top_k, int):
            raise TypeError(f"top_k must be an int, got {type(top_k).__name__}")
        if top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {top_k}")
        for position, chunk in enumerate(chunks):
            if not isinstance(chunk.text, str):
                raise TypeError(f"Chunk at position {position} has non-string text")

        if not chunks:
            logger.debug("No chunks to search")
            return []

        terms = query_terms(query)
        if not terms:
            logger.info("Query has no searchable terms, returning empty results")
            return []

        index = build_index(chunks)
        scored = [
            self._score_chunk(index, position, chunk, terms)
            for position, chunk in enumerate(chunks)
        ]

        # sorted() is stable, so ties keep chunk order
        ranked = sorted(
            (s for s in scored if s.score > 0),
            key=lambda s: s.score,
            reverse=True
        )[:top_k]

        logger.info(
            f"Retrieved {len(ranked)} of {len(chunks)} chunks for terms {terms}"
            + (f" (top score: {ranked[0].score:.3f})" if ranked else "")
        )
        return ranked

    def idf(self, index: BM25Index, term: str) -> float:
        """Smoothed inverse document frequency; never negative."""
        n = index.size
        df = index.document_frequency(term)
        return math.log((n - df + 0.5) / (df + 0.5) + 1)

    def _score_chunk(
        self,
        index: BM25Index,
        position: int,
        chunk: Chunk,
        terms: List[str]
    ) -> ScoredChunk:
        score = 0.0
        matches = []
        length_ratio = index.doc_lengths[position] / index.avgdl if index.avgdl else 0.0

        for term in terms:
            # Unknown terms carry no evidence
            if index.document_frequency(term) == 0:
                continue

            tf = index.term_frequency(position, term)
            if tf == 0:
                continue

            tf_norm = (tf * (self.k1 + 1)) / (tf + self.k1 * (1 - self.b + self.b * length_ratio))
            matches.append(term)
            score += self.idf(index, term) * tf_norm

        return ScoredChunk(chunk=chunk, score=score, term_matches=matches)


def bm25_search(
    chunks: Sequence[Chunk],
    query: str,
    top_k: int = DEFAULT_TOP_K
) -> List[ScoredChunk]:
    """Search chunks with the default BM25 parameters."""
    return RetrievalEngine().search(chunks, query, top_k=top_k)
