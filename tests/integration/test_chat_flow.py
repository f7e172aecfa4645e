"""
Live Chat Flow Tests

End-to-end tests against a running stack (API, PostgreSQL, Ollama,
OpenAI): upload reference material → ask → verify → clean up.

Run with: pytest tests/integration -m live
"""

from __future__ import annotations

import uuid

import pytest

REFERENCE_TEXT = (
    "The water cycle describes how water evaporates from oceans. "
    "Vapour condenses into clouds. Precipitation returns water to the ground. "
    "Rivers carry the water back to the sea."
)


@pytest.mark.live
def test_reference_document_lifecycle(api_client):
    """Upload → fetch → search → re-upload → delete."""
    name = f"water_cycle_{uuid.uuid4().hex[:8]}.txt"
    res = api_client.post(
        "/documents",
        files={"file": (name, REFERENCE_TEXT.encode(), "text/plain")},
        data={"is_reference": "true"},
    )
    assert res.status_code == 200
    doc_id = res.json()["id"]

    res_get = api_client.get(f"/documents/{doc_id}")
    assert res_get.status_code == 200
    assert res_get.json()["content"] == REFERENCE_TEXT

    res_search = api_client.get("/documents/search", params={"query": name[:20]})
    assert doc_id in [hit["id"] for hit in res_search.json()]

    res_again = api_client.post(
        "/documents",
        files={"file": (name, b"Replaced text.", "text/plain")},
        data={"is_reference": "true", "document_id": doc_id},
    )
    assert res_again.json()["id"] == doc_id
    assert res_again.json()["chunks"] == 1

    assert api_client.delete(f"/documents/{doc_id}").status_code == 204
    assert api_client.get(f"/documents/{doc_id}").status_code == 404


@pytest.mark.live
def test_chat_uses_reference_context(api_client):
    """A question about an uploaded reference document cites it as a source."""
    name = f"water_cycle_{uuid.uuid4().hex[:8]}.txt"
    doc_id = api_client.post(
        "/documents",
        files={"file": (name, REFERENCE_TEXT.encode(), "text/plain")},
        data={"is_reference": "true"},
    ).json()["id"]

    try:
        res = api_client.post("/chat", data={"query": "How does precipitation work?"})
        assert res.status_code == 200
        data = res.json()
        assert data["response"]
        assert any(source["filename"] == name for source in data["sources"])

        history = api_client.get("/conversations", params={"limit": 1}).json()
        assert history[0]["id"] == data["id"]
    finally:
        api_client.delete(f"/documents/{doc_id}")


@pytest.mark.live
def test_chat_with_document_attachment(api_client):
    res = api_client.post(
        "/chat",
        data={"query": "Summarise the attached notes", "include_context": "false"},
        files={"file": ("notes.md", b"# Notes\n\nPlants need light.", "text/markdown")},
    )
    assert res.status_code == 200
    assert res.json()["has_image"] is False
