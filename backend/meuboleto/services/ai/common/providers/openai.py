"""OpenAI provider."""

from __future__ import annotations

import logging
import time

import httpx

from meuboleto.core.errors import RemoteRequestError

from .base import BaseProvider, DocumentPayload, ProviderResult

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    name = "openai"
    display_name = "OpenAI"

    def __init__(self, api_key: str, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._api_key = api_key
        self._transport = transport

    def _content(self, document: DocumentPayload, prompt: str) -> list[dict]:
        if document.is_pdf:
            return [
                {"type": "text", "text": prompt},
                {"type": "text", "text": f"Dados do PDF em base64: {document.to_base64()}"},
            ]
        return [
            {"type": "text", "text": prompt},
            {
                "type": "image_url",
                "image_url": {"url": f"data:{document.media_type};base64,{document.to_base64()}"},
            },
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
        model = model or "gpt-4o"
        t0 = time.monotonic()

        data = await self._post(
            "https://api.openai.com/v1/chat/completions",
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
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
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text:
            raise RemoteRequestError("Resposta vazia da API OpenAI", service=self.name)
        usage = data.get("usage", {})

        return ProviderResult(
            raw_text=text,
            model=model,
            provider=self.name,
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            latency_ms=round(elapsed, 2),
        )
