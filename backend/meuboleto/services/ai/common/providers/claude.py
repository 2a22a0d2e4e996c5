"""Anthropic / Claude provider."""

from __future__ import annotations

import logging
import time

import httpx

from meuboleto.core.errors import RemoteRequestError

from .base import BaseProvider, DocumentPayload, ProviderResult

logger = logging.getLogger(__name__)


class ClaudeProvider(BaseProvider):
    name = "claude"
    display_name = "Claude"

    def __init__(self, api_key: str, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._api_key = api_key
        self._transport = transport

    def _content(self, document: DocumentPayload, prompt: str) -> list[dict]:
        source = {
            "type": "base64",
            "media_type": document.media_type,
            "data": document.to_base64(),
        }
        block_type = "document" if document.is_pdf else "image"
        return [
            {"type": block_type, "source": source},
            {"type": "text", "text": prompt},
        ]

    async def submit_for_extraction(
        self,
        document: DocumentPayload,
        prompt: str,
        *,
        model: str = "",
        temperature: float = 0.1,
        max_tokens: int = 1000,
        timeout_seconds: float = 60.0,
    ) -> ProviderResult:
        model = model or "claude-3-5-sonnet-20241022"
        t0 = time.monotonic()

        data = await self._post(
            "https://api.anthropic.com/v1/messages",
            headers={
                "x-api-key": self._api_key,
                "anthropic-version": "2023-06-01",
                "content-type": "application/json",
            },
            payload={
                "model": model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "messages": [{"role": "user", "content": self._content(document, prompt)}],
            },
            timeout_seconds=timeout_seconds,
            transport=self._transport,
        )

        elapsed = (time.monotonic() - t0) * 1000
        text = "".join(
            block.get("text", "")
            for block in data.get("content") or []
            if isinstance(block, dict) and block.get("type") == "text"
        )
        if not text:
            raise RemoteRequestError("Resposta vazia da API Claude", service=self.name)
        usage = data.get("usage", {})

        return ProviderResult(
            raw_text=text,
            model=model,
            provider=self.name,
            prompt_tokens=usage.get("input_tokens", 0),
            completion_tokens=usage.get("output_tokens", 0),
            latency_ms=round(elapsed, 2),
        )
