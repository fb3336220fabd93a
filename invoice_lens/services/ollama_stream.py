"""
Streaming transport for an Ollama-compatible model endpoint.

Responses arrive as newline-delimited JSON objects, each optionally
carrying a text fragment (``message.content`` on /api/chat, ``response``
on /api/generate). Lines that do not decode are skipped; they never
abort the read.
"""

import json
from typing import Any, AsyncIterator, Sequence

import httpx
from loguru import logger

from ..core.config import settings
from ..core.errors import TransportError

CHAT_FRAGMENT_PATH = ("message", "content")
GENERATE_FRAGMENT_PATH = ("response",)


def fragment_at(payload: Any, path: Sequence[str]) -> str | None:
    """Follow ``path`` through nested dicts; return the string found there or None."""
    value = payload
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value if isinstance(value, str) and value else None


class OllamaStream:
    """
    Issues one streamed POST per call.

    A fresh ``httpx.AsyncClient`` is opened for every request; nothing is
    pooled or rate limited.
    """

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.ollama_timeout_seconds

    async def iter_fragments(
        self, path: str, payload: dict, fragment_path: Sequence[str]
    ) -> AsyncIterator[str]:
        """
        POST ``payload`` to ``path`` and yield text fragments as they arrive.

        Raises:
            TransportError: connection failure or non-2xx status.
        """
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                async with client.stream("POST", url, json=payload) as response:
                    if response.status_code >= 400:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        logger.error(
                            "Model endpoint returned an error",
                            url=url,
                            status=response.status_code,
                        )
                        raise TransportError(
                            f"HTTP error! status: {response.status_code}",
                            status=response.status_code,
                            body=body,
                        )

                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        try:
                            chunk = json.loads(line)
                        except json.JSONDecodeError:
                            logger.warning("Skipping undecodable stream line", line=line[:200])
                            continue
                        fragment = fragment_at(chunk, fragment_path)
                        if fragment:
                            yield fragment
        except httpx.HTTPError as e:
            logger.error(f"Model endpoint request failed: {e!r}")
            raise TransportError(f"Request to model endpoint failed: {e}") from e
