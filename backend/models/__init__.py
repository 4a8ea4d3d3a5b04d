"""Data models for the Lexical RAG demo service."""
from .document import DocumentInput
from .chunk import Chunk, ScoredChunk
from .api import (
    DocumentPayload,
    ChunkPayload,
    ChunkRequest,
    ChunkResponse,
    SearchRequest,
    SearchResponse,
    SearchStats,
    ScoredChunkPayload,
    AnswerRequest,
)

__all__ = [
    "DocumentInput",
    "Chunk",
    "ScoredChunk",
    "DocumentPayload",
    "ChunkPayload",
    "ChunkRequest",
    "ChunkResponse",
    "SearchRequest",
    "SearchResponse",
    "SearchStats",
    "ScoredChunkPayload",
    "AnswerRequest",
]
