"""Mock provider with deterministic responses for tests and local development."""

from __future__ import annotations

import json
import time
from datetime import date, timedelta

from .base import BaseProvider, DocumentPayload, ProviderResult


class MockProvider(BaseProvider):
    name = "mock"
    display_name = "Mock"

    def __init__(self, reply: str | None = None) -> None:
        self._reply = reply

    def _default_reply(self, document: DocumentPayload) -> str:
        stem = (document.filename or "documento").rsplit(".", 1)[0]
        due = date.today() + timedelta(days=10)
        return json.dumps(
            {
                "beneficiary": f"Boleto {stem}",
                "amount": 100.0,
                "dueDate": due.isoformat(),
                "category": "Outros",
                "confidence": 1.0,
                "summary": "Resposta simulada",
            }
        )

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
        t0 = time.monotonic()
        text = self._reply if self._reply is not None else self._default_reply(document)
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=model or "mock-v1",
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
