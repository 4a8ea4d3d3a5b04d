"""Main entry point for the Lexical RAG demo API."""
import json
import logging
import time
from typing import Optional
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from config import PORT, LOG_LEVEL, LOG_FORMAT, CORS_ORIGINS, CHUNK_SIZE, CHUNK_OVERLAP
from logger import setup_logging
from models.api import (
    AnswerRequest,
    ChunkPayload,
    ChunkRequest,
    ChunkResponse,
    ScoredChunkPayload,
    SearchRequest,
    SearchResponse,
    SearchStats,
)
from services.bm25_index import query_terms
from services.chunking_engine import ChunkingEngine, ChunkingConfigError
from services.retrieval_engine import RetrievalEngine
from services.llm_client import LLMClient, LLMClientError
from services.output_evaluator import OutputEvaluator

if LOG_FORMAT == "json":
    setup_logging(LOG_LEVEL)

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Lexical RAG Demo",
    description="BM25 retrieval over pasted documents with grounded, cited answers",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-wide collaborators, owned by startup/shutdown
llm_client: Optional[LLMClient] = None
output_evaluator: OutputEvaluator = OutputEvaluator()


@app.on_event("startup")
async def startup_event():
    """Initialize the generation client on startup."""
    global llm_client

    logger.info("Initializing Lexical RAG Demo services...")

    try:
        llm_client = LLMClient()
        logger.info("Initialized LLMClient")
    except ValueError as e:
        # Search keeps working without a key; /rag/answer reports 503
        logger.warning(f"Answer generation disabled: {e}")
        llm_client = None


@app.on_event("shutdown")
async def shutdown_event():
    """Release the generation client's HTTP connections."""
    global llm_client

    if llm_client is not None:
        llm_client.client.close()
        llm_client = None
        logger.info("Closed LLMClient")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Lexical RAG Demo API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "lexical-rag-demo",
        "version": "1.0.0",
        "generation_configured": llm_client is not None
    }


@app.post("/rag/chunk", response_model=ChunkResponse)
def chunk_endpoint(request: ChunkRequest) -> ChunkResponse:
    """
    Split documents into chunks without scoring them.

    Args:
        request: ChunkRequest with documents and optional size parameters

    Returns:
        ChunkResponse with chunks in document-then-position order

    Raises:
        HTTPException: 400 for missing documents or invalid size parameters
    """
    if not request.docs:
        raise HTTPException(status_code=400, detail="No documents provided")

    chunk_size = request.chunk_size if request.chunk_size is not None else CHUNK_SIZE
    overlap = request.overlap if request.overlap is not None else CHUNK_OVERLAP

    try:
        engine = ChunkingEngine(chunk_size=chunk_size, chunk_overlap=overlap)
    except ChunkingConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))

    chunks = engine.chunk_documents([doc.to_document() for doc in request.docs])

    return ChunkResponse(
        chunks=[ChunkPayload.from_chunk(chunk) for chunk in chunks],
        total_chunks=len(chunks)
    )


@app.post("/rag/search", response_model=SearchResponse)
def search_endpoint(request: SearchRequest) -> SearchResponse:
    """
    Chunk the supplied documents and rank the chunks against the query.

    The chunks and index live only for this request.

    Args:
        request: SearchRequest with documents, query and optional topK

    Returns:
        SearchResponse with ranked chunks and corpus statistics

    Raises:
        HTTPException: 400 for missing documents or query
    """
    start_time = time.time()

    if not request.docs:
        raise HTTPException(status_code=400, detail="No documents provided")

    if not request.query.strip():
        raise HTTPException(status_code=400, detail="No query provided")

    logger.info(f"Processing search: {request.query[:100]}...")

    documents = [doc.to_document() for doc in request.docs]
    chunks = ChunkingEngine().chunk_documents(documents)
    scored_chunks = RetrievalEngine().search(chunks, request.query, top_k=request.top_k)

    stats = SearchStats(
        doc_count=len(documents),
        total_words=sum(len(doc.text.split()) for doc in documents),
        chunk_count=len(chunks),
        retrieved_count=len(scored_chunks),
        query_terms=query_terms(request.query)
    )

    latency_ms = int((time.time() - start_time) * 1000)
    logger.info(
        f"Search returned {len(scored_chunks)} of {len(chunks)} chunks in {latency_ms}ms",
        extra={"extra": {"chunk_count": len(chunks), "retrieved_count": len(scored_chunks)}}
    )

    return SearchResponse(
        chunks=[ScoredChunkPayload.from_scored_chunk(sc) for sc in scored_chunks],
        total_chunks=len(chunks),
        stats=stats
    )


@app.post("/rag/answer")
async def answer_endpoint(request: AnswerRequest):
    """
    Stream a grounded answer for the query from retrieved chunks.

    Streams Server-Sent Events:
    - data: {"text": "..."} for each token
    - data: {"type": "metadata", "data": {...}} once generation finishes
    - data: {"error": "..."} if generation fails
    - data: [DONE] always last

    Args:
        request: AnswerRequest with scored chunks and the query

    Returns:
        StreamingResponse in text/event-stream format

    Raises:
        HTTPException: 400 for missing chunks or query, 503 if generation is not configured
    """
    if not request.chunks:
        raise HTTPException(status_code=400, detail="No chunks provided")

    if not request.query.strip():
        raise HTTPException(status_code=400, detail="No query provided")

    client = llm_client
    if client is None:
        raise HTTPException(status_code=503, detail="Answer generation is not configured")

    sources = [payload.to_scored_chunk() for payload in request.chunks]
    system_prompt, user_message = LLMClient.build_prompt(request.query, sources)

    logger.info(f"Generating answer from {len(sources)} chunks: {request.query[:100]}...")

    def generate_stream():
        """Generator function for streaming response."""
        accumulated_text = ""
        llm_metadata = {}

        try:
            for event in client.generate_stream(system_prompt, user_message):
                if event["type"] == "token":
                    accumulated_text += event["content"]
                    yield f"data: {json.dumps({'text': event['content']})}\n\n"
                elif event["type"] == "metadata":
                    llm_metadata = event["data"]

            evaluator_flags = output_evaluator.evaluate(accumulated_text, sources)
            if evaluator_flags:
                logger.info(f"Answer flagged: {evaluator_flags}")

            final_metadata = {
                "type": "metadata",
                "data": {
                    **llm_metadata,
                    "sources": len(sources),
                    "evaluator_flags": evaluator_flags
                }
            }
            yield f"data: {json.dumps(final_metadata)}\n\n"

        except LLMClientError as e:
            logger.error(f"LLM client error during streaming: {e.error.message}")
            yield f"data: {json.dumps({'error': e.error.message, 'code': e.error.code})}\n\n"
        except Exception as e:
            logger.error(f"Unexpected error during streaming: {e}", exc_info=True)
            yield f"data: {json.dumps({'error': 'Stream error', 'code': 'UNKNOWN_ERROR'})}\n\n"

        yield "data: [DONE]\n\n"

    return StreamingResponse(
        generate_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"  # Disable buffering in nginx
        }
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Lexical RAG Demo API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
