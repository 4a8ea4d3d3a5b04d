"""Integration tests for the /rag endpoints."""
import pytest
import json
from fastapi.testclient import TestClient
from unittest.mock import Mock
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from services.llm_client import LLMClientError, LLMError

FOOD_DOCS = [
    {"name": "dogs.txt", "text": "dog food recipes"},
    {"name": "cats.txt", "text": "cat food recipes"},
]


@pytest.fixture
def client():
    """Create a test client without running startup hooks."""
    import main

    main.llm_client = None
    yield TestClient(app=main.app)
    main.llm_client = None


@pytest.fixture
def mock_llm(client):
    """Install a mocked generation client."""
    import main

    main.llm_client = Mock()
    main.llm_client.generate_stream.return_value = iter([
        {"type": "token", "content": "Dogs eat "},
        {"type": "token", "content": "food [Source 1]."},
        {"type": "metadata", "data": {
            "model_used": "llama-3.1-8b-instant",
            "tokens_input": 120,
            "tokens_output": 6,
            "latency_ms": 42
        }},
    ])
    return main.llm_client


def parse_events(body: str):
    """Split an SSE body into decoded data payloads."""
    events = []
    for block in body.split("\n\n"):
        if not block.startswith("data: "):
            continue
        payload = block[len("data: "):]
        events.append(payload if payload == "[DONE]" else json.loads(payload))
    return events


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["generation_configured"] is False


def test_search_endpoint_basic(client):
    """Test ranked chunks, camelCase keys and corpus statistics."""
    response = client.post("/rag/search", json={"docs": FOOD_DOCS, "query": "Food?"})

    assert response.status_code == 200
    data = response.json()

    assert data["totalChunks"] == 2
    assert [c["docName"] for c in data["chunks"]] == ["dogs.txt", "cats.txt"]
    first = data["chunks"][0]
    assert first["id"] == 0
    assert first["docIndex"] == 0
    assert first["startChar"] == 0
    assert first["text"] == "dog food recipes"
    assert first["termMatches"] == ["food"]
    assert first["score"] > 0
    assert data["chunks"][1]["score"] == first["score"]

    assert data["stats"] == {
        "docCount": 2,
        "totalWords": 6,
        "chunkCount": 2,
        "retrievedCount": 2,
        "queryTerms": ["food"],
    }


def test_search_endpoint_top_k(client):
    docs = [{"name": f"d{i}", "text": f"food number {i}"} for i in range(8)]

    response = client.post("/rag/search", json={"docs": docs, "query": "food", "topK": 2})

    assert response.status_code == 200
    assert len(response.json()["chunks"]) == 2
    assert response.json()["stats"]["chunkCount"] == 8


def test_search_endpoint_no_matches(client):
    response = client.post("/rag/search", json={"docs": FOOD_DOCS, "query": "is a an"})

    assert response.status_code == 200
    assert response.json()["chunks"] == []
    assert response.json()["stats"]["queryTerms"] == []


def test_search_endpoint_missing_documents(client):
    response = client.post("/rag/search", json={"docs": [], "query": "food"})

    assert response.status_code == 400
    assert response.json()["detail"] == "No documents provided"


def test_search_endpoint_missing_query(client):
    response = client.post("/rag/search", json={"docs": FOOD_DOCS, "query": "   "})

    assert response.status_code == 400
    assert response.json()["detail"] == "No query provided"


def test_search_endpoint_invalid_top_k(client):
    response = client.post("/rag/search", json={"docs": FOOD_DOCS, "query": "food", "topK": 0})

    # Pydantic validation returns 422 for validation errors
    assert response.status_code == 422


def test_search_endpoint_malformed_document(client):
    response = client.post("/rag/search", json={"docs": [{"name": "x", "text": 42}], "query": "food"})

    assert response.status_code == 422


def test_chunk_endpoint(client):
    text = "first paragraph\n\n" + "x" * 50
    response = client.post(
        "/rag/chunk",
        json={"docs": [{"name": "a", "text": text}], "chunkSize": 20, "overlap": 5}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["totalChunks"] == len(data["chunks"])
    assert data["chunks"][0]["text"] == "first paragraph"
    assert all(len(c["text"]) <= 20 for c in data["chunks"])
    assert [c["id"] for c in data["chunks"]] == list(range(data["totalChunks"]))


def test_chunk_endpoint_rejects_non_advancing_window(client):
    response = client.post(
        "/rag/chunk",
        json={"docs": FOOD_DOCS, "chunkSize": 100, "overlap": 100}
    )

    assert response.status_code == 400
    assert "overlap" in response.json()["detail"]


def test_chunk_endpoint_missing_documents(client):
    response = client.post("/rag/chunk", json={})

    assert response.status_code == 400


def test_answer_endpoint_streams_tokens(client, mock_llm):
    """Test tokens, final metadata and the [DONE] marker are streamed."""
    search = client.post("/rag/search", json={"docs": FOOD_DOCS, "query": "food"}).json()

    response = client.post("/rag/answer", json={"chunks": search["chunks"], "query": "What do dogs eat?"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = parse_events(response.text)

    assert events[0] == {"text": "Dogs eat "}
    assert events[1] == {"text": "food [Source 1]."}
    assert events[2]["type"] == "metadata"
    assert events[2]["data"]["tokens_input"] == 120
    assert events[2]["data"]["sources"] == 2
    assert events[2]["data"]["evaluator_flags"] == []
    assert events[-1] == "[DONE]"

    system_prompt, user_message = mock_llm.generate_stream.call_args.args
    assert "[Source 1: dogs.txt" in user_message
    assert "Question: What do dogs eat?" in user_message


def test_answer_endpoint_reports_stream_errors(client, mock_llm):
    mock_llm.generate_stream.side_effect = LLMClientError(LLMError(
        code="RATE_LIMIT_ERROR",
        message="Rate limit exceeded. Please try again in a few moments.",
        details={}
    ))
    chunk = {
        "id": 0, "text": "dog food", "docIndex": 0, "docName": "dogs.txt",
        "startChar": 0, "score": 0.5, "termMatches": ["food"]
    }

    response = client.post("/rag/answer", json={"chunks": [chunk], "query": "food?"})

    assert response.status_code == 200
    events = parse_events(response.text)
    assert events[0]["code"] == "RATE_LIMIT_ERROR"
    assert "Rate limit" in events[0]["error"]
    assert events[-1] == "[DONE]"


def test_answer_endpoint_without_chunks(client, mock_llm):
    response = client.post("/rag/answer", json={"chunks": [], "query": "food?"})

    assert response.status_code == 400
    assert response.json()["detail"] == "No chunks provided"


def test_answer_endpoint_without_generation_client(client):
    chunk = {
        "id": 0, "text": "dog food", "docIndex": 0, "docName": "dogs.txt",
        "startChar": 0, "score": 0.5, "termMatches": []
    }

    response = client.post("/rag/answer", json={"chunks": [chunk], "query": "food?"})

    assert response.status_code == 503


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
