"""
LLM Service Unit Tests

Tests for the Ollama answer client with an in-process httpx transport.
No network calls — runs without Ollama.
"""

from __future__ import annotations

import json

import httpx
import pytest

from lectern.services.llm import CONTEXT_HEADER, SYSTEM_PROMPT, LLMService


def _service(handler) -> LLMService:
    return LLMService(
        base_url="http://ollama.test",
        model="llava",
        max_tokens=256,
        temperature=0.2,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_generate_response_payload_and_parsing():
    """Context and images are forwarded; eval_count becomes output_tokens."""
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "Here is a plan.", "eval_count": 42})

    service = _service(handler)
    response = await service.generate_response(
        "Plan a lesson",
        ["[Source: maths.txt, part 1 of 1]\nFractions."],
        images=["aGVsbG8="],
    )

    assert response.content == "Here is a plan."
    assert response.output_tokens == 42
    assert response.is_mocked is False

    body = seen["body"]
    assert seen["path"] == "/api/generate"
    assert body["model"] == "llava"
    assert body["prompt"] == "Plan a lesson"
    assert body["stream"] is False
    assert body["images"] == ["aGVsbG8="]
    assert body["options"] == {"temperature": 0.2, "num_predict": 256}
    assert body["system"].startswith(SYSTEM_PROMPT)
    assert CONTEXT_HEADER in body["system"]
    assert "Fractions." in body["system"]


@pytest.mark.asyncio
async def test_no_context_sends_plain_system_prompt():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "ok"})

    response = await _service(handler).generate_response("Hi", [])

    assert seen["body"]["system"] == SYSTEM_PROMPT
    assert "images" not in seen["body"]
    assert response.output_tokens == 0


@pytest.mark.asyncio
async def test_connection_failure_returns_mock():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    response = await _service(handler).generate_response("Hi", ["Some context section"])

    assert response.is_mocked is True
    assert "Some context section" in response.content
    assert "Total context sections: 1" in response.content


@pytest.mark.asyncio
async def test_error_status_returns_mock():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="model not loaded")

    response = await _service(handler).generate_response("Hi", [])

    assert response.is_mocked is True
    assert "(no context retrieved)" in response.content


@pytest.mark.asyncio
async def test_health_check():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/tags"
        return httpx.Response(200, json={"models": []})

    assert await _service(handler).health_check() is True



@pytest.mark.asyncio
async def test_health_check_unreachable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert await _service(handler).health_check() is False
