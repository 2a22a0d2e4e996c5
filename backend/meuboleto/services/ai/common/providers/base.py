"""Abstract base for all AI providers."""

from __future__ import annotations

import abc
import base64
from dataclasses import dataclass

import httpx

from meuboleto.core.errors import RemoteRequestError


@dataclass(frozen=True)
class DocumentPayload:
    """The uploaded (or converted) file as it is sent to a provider."""

    content: bytes
    media_type: str
    filename: str = ""

    @property
    def is_pdf(self) -> bool:
        return self.media_type == "application/pdf"

    def to_base64(self) -> str:
        return base64.b64encode(self.content).decode("ascii")


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:200] or "Erro desconhecido"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or "Erro desconhecido")
    if isinstance(error, str):
        return error
    return "Erro desconhecido"


class BaseProvider(abc.ABC):
    """Contract that every AI provider must implement."""

    name: str = "base"
    display_name: str = "Base"

    @abc.abstractmethod
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
        """Send *prompt* plus *document* and return a ``ProviderResult``."""

    async def _post(
        self,
        url: str,
        *,
        headers: dict[str, str],
        payload: dict,
        timeout_seconds: float,
        params: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> dict:
        """POST *payload* and return the decoded body, or raise ``RemoteRequestError``."""
        try:
            async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
                resp = await client.post(url, headers=headers, params=params, json=payload)
        except httpx.HTTPError as exc:
            raise RemoteRequestError(
                f"Falha de comunicação com a API {self.display_name}: {exc.__class__.__name__}",
                service=self.name,
            ) from exc

        if resp.status_code >= 400:
            raise RemoteRequestError(
                f"Erro da API {self.display_name}: {_error_message(resp)}",
                service=self.name,
                upstream_status=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteRequestError(
                f"Resposta inválida da API {self.display_name}",
                service=self.name,
                upstream_status=resp.status_code,
            ) from exc
