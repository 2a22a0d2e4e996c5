"""Google Gemini provider."""

from __future__ import annotations

import logging
import time

import httpx

from meuboleto.core.errors import RemoteRequestError

from .base import BaseProvider, DocumentPayload, ProviderResult

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiProvider(BaseProvider):
    name = "gemini"
    display_name = "Gemini"

    def __init__(self, api_key: str, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._api_key = api_key
        self._transport = transport

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
        model = model or "gemini-1.5-flash"
        t0 = time.monotonic()

        # Gemini reads PDFs natively through inline_data, same envelope as images.
        parts = [
            {"text": prompt},
            {"inline_data": {"mime_type": document.media_type, "data": document.to_base64()}},
        ]
        data = await self._post(
            f"{GEMINI_BASE_URL}/{model}:generateContent",
            headers={"Content-Type": "application/json"},
            params={"key": self._api_key},
            payload={
                "contents": [{"parts": parts}],
                "generationConfig": {
                    "temperature": temperature,
                    "maxOutputTokens": max_tokens,
                },
            },
            timeout_seconds=timeout_seconds,
            transport=self._transport,
        )

        elapsed = (time.monotonic() - t0) * 1000
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text:
            raise RemoteRequestError("Resposta vazia da API Gemini", service=self.name)
        usage = data.get("usageMetadata", {})

        return ProviderResult(
            raw_text=text,
            model=model,
            provider=self.name,
            prompt_tokens=usage.get("promptTokenCount", 0),
            completion_tokens=usage.get("candidatesTokenCount", 0),
            latency_ms=round(elapsed, 2),
        )
