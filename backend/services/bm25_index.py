"""In-memory inverted index for Okapi BM25 scoring."""
import logging
import re
from collections import Counter
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Sequence, Tuple

from models.chunk import Chunk
from config import MIN_TOKEN_LENGTH

logger = logging.getLogger(__name__)

NON_ALPHANUMERIC = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str) -> List[str]:
    """
    Split text into lower-case alphanumeric terms.

    Anything outside ``[a-z0-9]`` and whitespace becomes a space, and terms
    shorter than three characters are dropped. Chunk text and queries must
    both go through this function or terms will not line up.
    """
    cleaned = NON_ALPHANUMERIC.sub(" ", text.lower())
    return [token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH]


def query_terms(query: str) -> List[str]:
    """Distinct query terms in first-occurrence order."""
    return list(dict.fromkeys(tokenize(query)))


@dataclass(frozen=True)
class BM25Index:
    """Read-only term statistics for one chunk sequence."""
    term_freqs: Tuple[Mapping[str, int], ...]  # term_freqs[i][term] = count in chunk i
    doc_freqs: Mapping[str, int]  # doc_freqs[term] = number of chunks containing term
    doc_lengths: Tuple[int, ...]  # token count per chunk
    avgdl: float

    @property
    def size(self) -> int:
        return len(self.doc_lengths)

    def term_frequency(self, chunk_position: int, term: str) -> int:
        return self.term_freqs[chunk_position].get(term, 0)

    def document_frequency(self, term: str) -> int:
        return self.doc_freqs.get(term, 0)


def build_index(chunks: Sequence[Chunk]) -> BM25Index:
    """
    Build term frequencies, document frequencies and lengths for chunks.

    Args:
        chunks: Chunk sequence; positions in the index follow this order

    Returns:
        BM25Index for the sequence (avgdl is 0.0 for an empty sequence)
    """
    term_freqs = []
    doc_freqs: Counter = Counter()
    doc_lengths = []

    for chunk in chunks:
        tokens = tokenize(chunk.text)
        counts = Counter(tokens)
        term_freqs.append(MappingProxyType(dict(counts)))
        doc_freqs.update(counts.keys())
        doc_lengths.append(len(tokens))

    avgdl = sum(doc_lengths) / len(doc_lengths) if doc_lengths else 0.0

    logger.debug(
        f"Built BM25 index: {len(doc_lengths)} chunks, {len(doc_freqs)} terms, avgdl={avgdl:.2f}"
    )

    return BM25Index(
        term_freqs=tuple(term_freqs),
        doc_freqs=MappingProxyType(dict(doc_freqs)),
        doc_lengths=tuple(doc_lengths),
        avgdl=avgdl,
    )
