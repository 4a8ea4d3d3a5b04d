"""Pydantic schemas for API requests and responses."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from config import DEFAULT_TOP_K, MAX_TOP_K
from models.chunk import Chunk, ScoredChunk
from models.document import DocumentInput


class DocumentPayload(BaseModel):
    """A document as sent by the browser: display name and raw text."""

    name: str = Field(..., description="Display label, not required to be unique")
    text: str = Field(..., description="Raw document text")

    def to_document(self) -> DocumentInput:
        return DocumentInput(name=self.name, text=self.text)


class ChunkPayload(BaseModel):
    """Schema for a chunk in API responses."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    text: str
    doc_index: int = Field(..., alias="docIndex")
    doc_name: str = Field(..., alias="docName")
    start_char: int = Field(..., alias="startChar")

    @classmethod
    def from_chunk(cls, chunk: Chunk) -> "ChunkPayload":
        return cls.model_validate(chunk.to_dict())


class ScoredChunkPayload(ChunkPayload):
    """Schema for a scored chunk with matched query terms."""

    score: float = Field(..., ge=0.0, description="BM25 relevance score")
    term_matches: List[str] = Field(default_factory=list, alias="termMatches")

    @classmethod
    def from_scored_chunk(cls, scored: ScoredChunk) -> "ScoredChunkPayload":
        return cls.model_validate(scored.to_dict())

    def to_scored_chunk(self) -> ScoredChunk:
        chunk = Chunk(
            id=self.id,
            text=self.text,
            doc_index=self.doc_index,
            doc_name=self.doc_name,
            start_char=self.start_char,
        )
        return ScoredChunk(chunk=chunk, score=self.score, term_matches=list(self.term_matches))


class ChunkRequest(BaseModel):
    """Request schema for chunking documents."""

    model_config = ConfigDict(populate_by_name=True)

    docs: List[DocumentPayload] = Field(default_factory=list)
    chunk_size: Optional[int] = Field(None, alias="chunkSize", description="Maximum chunk length in characters")
    overlap: Optional[int] = Field(None, description="Character overlap for the window fallback")


class ChunkResponse(BaseModel):
    """Response schema for chunking documents."""

    model_config = ConfigDict(populate_by_name=True)

    chunks: List[ChunkPayload]
    total_chunks: int = Field(..., alias="totalChunks")


class SearchRequest(BaseModel):
    """Request schema for BM25 search over supplied documents."""

    model_config = ConfigDict(populate_by_name=True)

    docs: List[DocumentPayload] = Field(default_factory=list)
    query: str = Field(default="", description="User's question")
    top_k: int = Field(DEFAULT_TOP_K, ge=1, le=MAX_TOP_K, alias="topK")


class SearchStats(BaseModel):
    """Corpus and query statistics shown next to the results."""

    model_config = ConfigDict(populate_by_name=True)

    doc_count: int = Field(..., alias="docCount")
    total_words: int = Field(..., alias="totalWords")
    chunk_count: int = Field(..., alias="chunkCount")
    retrieved_count: int = Field(..., alias="retrievedCount")
    query_terms: List[str] = Field(..., alias="queryTerms")


class SearchResponse(BaseModel):
    """Response schema for BM25 search."""

    model_config = ConfigDict(populate_by_name=True)

    chunks: List[ScoredChunkPayload]
    total_chunks: int = Field(..., alias="totalChunks")
    stats: SearchStats


class AnswerRequest(BaseModel):
    """Request schema for grounded answer generation."""

    chunks: List[ScoredChunkPayload] = Field(default_factory=list)
    query: str = Field(default="")
