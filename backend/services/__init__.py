"""Services for the Lexical RAG demo."""
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine, ChunkingConfigError, chunk_documents
from .bm25_index import BM25Index, build_index, tokenize, query_terms
from .retrieval_engine import RetrievalEngine, bm25_search
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .output_evaluator import OutputEvaluator

__all__ = ['DocumentLoader', 'ChunkingEngine', 'ChunkingConfigError', 'chunk_documents', 'BM25Index', 'build_index', 'tokenize', 'query_terms', 'RetrievalEngine', 'bm25_search', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'OutputEvaluator']
