"""
Answer Model Client

Writes the chat reply through Ollama's ``/api/generate`` endpoint from
the user query, the assembled context sections and any images.

Behavior:
    - One non-streaming request per answer, over an async httpx client.
    - If Ollama cannot be reached or answers with an error status, the
      caller still gets a reply: a placeholder flagged ``is_mocked``.
    - Images are sent as base64 strings for multimodal models (llava).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Final

import httpx

logger = logging.getLogger(__name__)

# Layout rules for every answer; context sections are appended per request
SYSTEM_PROMPT: Final[
    str
] = """You are a helpful AI assistant. Please format your responses with proper structure:

1. Use clear paragraphs with line breaks between them
2. For lists, use proper numbering or bullet points
3. Start each main point on a new line
4. Use appropriate spacing for readability
5. Keep responses clear and well-organized

When providing structured information like lesson plans or step-by-step instructions, format them with:
- Clear headings
- Numbered steps
- Bullet points for sub-items
- Line breaks between sections"""

CONTEXT_HEADER: Final[str] = (
    "Use the following reference material when it is relevant to the question:"
)

PREVIEW_CHARS: Final[int] = 50


@dataclass
class LLMResponse:
    """
    A generated (or placeholder) answer.

    Attributes:
        content: Answer text shown to the user.
        is_mocked: Set when Ollama was unavailable and ``content`` is a placeholder.
        output_tokens: Ollama ``eval_count``; 0 for placeholders.
    """

    content: str
    is_mocked: bool
    output_tokens: int = 0


class LLMService:
    """
    Ollama-backed answer generation.

    Usage::

        llm = LLMService(base_url="http://localhost:11434", model="llava")
        reply = await llm.generate_response(
            "Draft a lesson plan on fractions",
            ["[Source: maths.pdf, part 1 of 3]\\n..."],
            images=[base64_png],
        )

    Args:
        base_url: Ollama server root.
        model: Ollama model tag.
        timeout: Per-request timeout in seconds.
        max_tokens: Generation cap, sent as ``num_predict``.
        temperature: Sampling temperature.
        transport: httpx transport override (tests use MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = 120.0,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._transport = transport

    async def generate_response(
        self,
        query: str,
        context_chunks: list[str],
        images: list[str] | None = None,
    ) -> LLMResponse:
        """
        Answer ``query`` with the given context sections and images.

        Never raises for transport problems: connection failures, timeouts
        and error statuses all produce a placeholder with ``is_mocked=True``.
        """
        payload: dict[str, Any] = {
            "model": self._model,
            "system": self._build_system(context_chunks),
            "prompt": query,
            "stream": False,
            "options": {
                "temperature": self._temperature,
                "num_predict": self._max_tokens,
            },
        }
        if images:
            payload["images"] = images

        try:
            return await self._generate(payload)
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Ollama returned %d: %s", exc.response.status_code, exc.response.text
            )
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            logger.warning("Ollama unavailable (%s): %s", type(exc).__name__, exc)
        return self._placeholder(context_chunks)

    async def _generate(self, payload: dict[str, Any]) -> LLMResponse:
        async with self._client() as client:
            response = await client.post("/api/generate", json=payload)
            response.raise_for_status()
            data = response.json()

        content = data.get("response", "")
        output_tokens = int(data.get("eval_count", 0))
        logger.info(
            "Answer generated (model=%s, chars=%d, tokens=%d)",
            self._model,
            len(content),
            output_tokens,
        )
        return LLMResponse(content=content, is_mocked=False, output_tokens=output_tokens)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    @staticmethod
    def _build_system(context_chunks: list[str]) -> str:
        if not context_chunks:
            return SYSTEM_PROMPT
        return "\n\n".join([SYSTEM_PROMPT, CONTEXT_HEADER, *context_chunks])

    @staticmethod
    def _placeholder(context_chunks: list[str]) -> LLMResponse:
        """Stand-in reply that still shows which context was assembled."""
        if context_chunks:
            first = context_chunks[0].replace("\n", " ")
            suffix = "..." if len(first) > PREVIEW_CHARS else ""
            preview = f'"{first[:PREVIEW_CHARS]}{suffix}"'
        else:
            preview = "(no context retrieved)"

        content = (
            "⚠️ **The answer model is not reachable right now.**\n\n"
            f"Context preview: {preview}\n\n"
            f"Total context sections: {len(context_chunks)}"
        )
        return LLMResponse(content=content, is_mocked=True)

    async def health_check(self) -> bool:
        """True when Ollama lists its models (``GET /api/tags``)."""
        try:
            async with self._client() as client:
                response = await client.get("/api/tags", timeout=5.0)
        except httpx.TransportError:
            return False
        return response.status_code == 200
