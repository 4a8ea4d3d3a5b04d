"""Paragraph-aware chunking engine with a character-window fallback."""
import logging
import re
from typing import Any, List, Mapping, Sequence, Tuple, Union

from models.document import DocumentInput
from models.chunk import Chunk
from config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)

PARAGRAPH_BREAK = re.compile(r"\n{2,}")
PARAGRAPH_JOINER = "\n\n"

DocumentLike = Union[DocumentInput, Mapping[str, Any]]


class ChunkingConfigError(ValueError):
    """Raised when chunk size and overlap cannot produce an advancing window."""


class ChunkingEngine:
    """Segments documents into ordered, overlapping chunks."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Target maximum chunk length in characters
            chunk_overlap: Characters shared by consecutive windows when a
                paragraph is too long and has to be split by characters

        Raises:
            ChunkingConfigError: If the window step would be zero or negative
        """
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
            raise TypeError(f"chunk_size must be an int, got {type(chunk_size).__name__}")
        if isinstance(chunk_overlap, bool) or not isinstance(chunk_overlap, int):
            raise TypeError(f"chunk_overlap must be an int, got {type(chunk_overlap).__name__}")
        if chunk_size <= 0:
            raise ChunkingConfigError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0:
            raise ChunkingConfigError(f"overlap must not be negative, got {chunk_overlap}")
        if chunk_overlap >= chunk_size:
            raise ChunkingConfigError(
                f"overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
            )

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    @property
    def step(self) -> int:
        """Distance between the starts of consecutive fallback windows."""
        return self.chunk_size - self.chunk_overlap

    def chunk_documents(self, documents: Sequence[DocumentLike]) -> List[Chunk]:
        """
        Chunk documents in order, numbering chunks across the whole call.

        Paragraphs (separated by blank lines) are greedily merged while the
        result fits in ``chunk_size``. A paragraph longer than ``chunk_size``
        is cut into fixed windows that overlap by ``chunk_overlap`` characters.

        Args:
            documents: Documents as DocumentInput or ``{"name", "text"}`` mappings

        Returns:
            List of Chunk objects in document-then-position order

        Raises:
            TypeError: If a document's name or text is not a string
        """
        # Validate every document before emitting anything
        docs = [_coerce_document(doc, position) for position, doc in enumerate(documents)]

        all_chunks: List[Chunk] = []
        for doc_index, document in enumerate(docs):
            doc_chunks = self._chunk_text(document, doc_index, first_id=len(all_chunks))
            logger.debug(f"Chunked document {doc_index} ({document.name!r}) into {len(doc_chunks)} chunks")
            all_chunks.extend(doc_chunks)

        logger.info(f"Created {len(all_chunks)} chunks from {len(docs)} documents")
        return all_chunks

    def _chunk_text(self, document: DocumentInput, doc_index: int, first_id: int) -> List[Chunk]:
        """
        Chunk a single document's text.

        Args:
            document: Source document
            doc_index: Position of the document in the input sequence
            first_id: Id assigned to the first chunk emitted here

        Returns:
            List of chunks for this document
        """
        text = document.text.strip()
        if not text:
            return []

        chunks: List[Chunk] = []

        def emit(chunk_text: str, start_char: int) -> None:
            chunks.append(Chunk(
                id=first_id + len(chunks),
                text=chunk_text,
                doc_index=doc_index,
                doc_name=document.name,
                start_char=start_char,
            ))

        paragraphs = [p.strip() for p in PARAGRAPH_BREAK.split(text)]
        paragraphs = [p for p in paragraphs if p]

        buffer = ""
        buffer_start = 0
        char_pos = 0

        for para in paragraphs:
            if buffer:
                candidate_length = len(buffer) + len(PARAGRAPH_JOINER) + len(para)
            else:
                candidate_length = len(para)

            if candidate_length <= self.chunk_size:
                if buffer:
                    buffer += PARAGRAPH_JOINER + para
                else:
                    buffer_start = char_pos
                    buffer = para
            else:
                if buffer:
                    emit(buffer, buffer_start)
                    buffer = ""

                if len(para) > self.chunk_size:
                    for offset, window in self._split_windows(para):
                        emit(window, char_pos + offset)
                    buffer_start = char_pos + len(para)
                else:
                    buffer_start = char_pos
                    buffer = para

            char_pos += len(para) + len(PARAGRAPH_JOINER)

        if buffer:
            emit(buffer, buffer_start)

        return chunks

    def _split_windows(self, paragraph: str) -> List[Tuple[int, str]]:
        """
        Split an oversized paragraph into fixed-size character windows.

        Windows start every ``step`` characters and stop as soon as one
        reaches the end of the paragraph, so the last window may be shorter.
        Whitespace-only windows are dropped.

        Returns:
            List of (offset, window_text) tuples
        """
        windows = []
        pos = 0
        while pos < len(paragraph):
            window = paragraph[pos:pos + self.chunk_size]
            if window.strip():
                windows.append((pos, window))
            if pos + self.chunk_size >= len(paragraph):
                break
            pos += self.step
        return windows


def _coerce_document(document: DocumentLike, position: int) -> DocumentInput:
    """Normalize a caller-supplied document and check its field types."""
    if isinstance(document, DocumentInput):
        name, text = document.name, document.text
    elif isinstance(document, Mapping):
        name, text = document.get("name"), document.get("text")
    else:
        raise TypeError(
            f"Document {position} must be a DocumentInput or mapping, got {type(document).__name__}"
        )

    if not isinstance(name, str):
        raise TypeError(f"Document {position} name must be a string, got {type(name).__name__}")
    if not isinstance(text, str):
        raise TypeError(f"Document {position} text must be a string, got {type(text).__name__}")

    if isinstance(document, DocumentInput):
        return document
    return DocumentInput(name=name, text=text)


def chunk_documents(
    documents: Sequence[DocumentLike],
    chunk_size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[Chunk]:
    """Chunk documents with a one-off ChunkingEngine."""
    return ChunkingEngine(chunk_size=chunk_size, chunk_overlap=overlap).chunk_documents(documents)
