"""
Relevance Oracle

OpenAI chat-completions adapter that picks relevant chunk ids from an
enumerated selection prompt. The reply format (ids between two literal
markers) is private to this module, so a structured-output oracle can
replace it without touching the selection algorithm.
"""

from __future__ import annotations

import logging
from typing import Final

from openai import AsyncOpenAI, OpenAIError

from lectern.core.exceptions import SelectionError

logger = logging.getLogger(__name__)

START_MARKER: Final[str] = "CHUNKS_START"
END_MARKER: Final[str] = "CHUNKS_END"

SYSTEM_PROMPT: Final[str] = (
    "You are a precise document chunk selector. "
    "Return only the IDs of the most relevant chunks, nothing else."
)

RESPONSE_FORMAT: Final[str] = f"""Return your selection as:
{START_MARKER}
[chunk_id_1]
[chunk_id_2]
{END_MARKER}"""


def parse_selection(text: str) -> list[str]:
    """
    Extract chunk ids listed between the two markers.

    Returns an empty list (and logs a warning) when either marker is
    missing or out of order; this is a degraded path, never an error.
    """
    start = text.find(START_MARKER)
    end = text.find(END_MARKER, start + len(START_MARKER)) if start != -1 else -1

    if start == -1 or end == -1:
        logger.warning("Selector response not properly formatted: %r", text[:200])
        return []

    body = text[start + len(START_MARKER) : end]
    ids: list[str] = []
    for line in body.splitlines():
        candidate = line.strip().strip("[]").strip()
        if candidate:
            ids.append(candidate)
    return ids


class OpenAISelectionOracle:
    """
    Selection oracle backed by an OpenAI chat model at temperature 0.

    Usage::

        oracle = OpenAISelectionOracle(api_key="sk-...", model="gpt-3.5-turbo-16k")
        ids = await oracle.select_ids(prompt)

    Args:
        api_key: OpenAI API key.
        model: Chat model name.
        timeout: Transport timeout in seconds (unbounded latency would
            otherwise stall the request).
        client: Pre-built client (tests).
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo-16k",
        timeout: float = 60.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._model = model
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )

    async def select_ids(self, prompt: str) -> list[str]:
        """
        Ask the model for relevant chunk ids.

        Raises:
            SelectionError: If the API call fails (network, auth, quota).
        """
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": f"{prompt}\n\n{RESPONSE_FORMAT}"},
                ],
                temperature=0.0,
            )
        except OpenAIError as exc:
            logger.error("Selection oracle request failed: %s", exc)
            raise SelectionError(f"Selection oracle unavailable: {exc}") from exc

        content = response.choices[0].message.content or ""
        return parse_selection(content)
