"""Offline mock backend for ``--mock`` runs.

Serves canned retrieval documents through an ``httpx.MockTransport`` so the
full client stack (headers, parsing, telemetry) runs without network access
or credentials.
"""

import json

import httpx

MOCK_BASE_URI = "https://mock.rage.invalid/v1"
MOCK_ORG_ID = "mock-org"
MOCK_PIPELINE_ID = "mock-pipeline"
MOCK_API_KEY = "mock-api-key"

MOCK_DOCUMENTS = [
    {
        "id": "doc_1",
        "text": "This is a mock response for testing RAGE queries. The system is working correctly.",
        "similarity": 0.91,
        "relevancy": 0.95,
        "source_display_name": "test-document-1.txt",
        "filename": "test-document-1.txt",
        "chunk_id": "1",
        "total_chunks": 3,
        "origin": "mock",
    },
    {
        "id": "doc_2",
        "text": "Another mock result with relevant context for the query. This demonstrates multiple results.",
        "similarity": 0.84,
        "relevancy": 0.87,
        "source_display_name": "test-document-2.txt",
        "filename": "test-document-2.txt",
        "chunk_id": "2",
        "total_chunks": 3,
        "origin": "mock",
    },
]


def _handle(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content or b"{}")
    num_results = int(body.get("numResults", len(MOCK_DOCUMENTS)))
    documents = MOCK_DOCUMENTS[:num_results]
    return httpx.Response(
        200,
        json={
            "question": body.get("question"),
            "documents": documents,
            "total": len(MOCK_DOCUMENTS),
            "processing_time_ms": 150,
            "average_relevancy": 0.91,
        },
    )


def mock_transport() -> httpx.MockTransport:
    """Transport answering every retrieval request with the mock documents."""
    return httpx.MockTransport(_handle)
