"""Provider factory: maps a provider name and credential to an instance."""

from __future__ import annotations

import logging

from meuboleto.core.config import get_settings

from .base import BaseProvider, DocumentPayload, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = ["get_provider", "BaseProvider", "DocumentPayload", "ProviderResult", "MockProvider"]


def get_provider(provider_name: str, api_key: str = "") -> BaseProvider | None:
    """Return a provider instance for *provider_name*, or ``None``.

    ``None`` means the provider cannot be used: it is not in the allowlist,
    it is unknown, or it has no credential. The intake pipeline then falls
    back to manual entry instead of calling anything.
    """
    settings = get_settings()
    name = (provider_name or "").lower().strip()

    if name not in settings.ai_allowed_providers:
        logger.warning("Provider %r not in allowlist", name)
        return None

    if name == "mock":
        return MockProvider()

    if not api_key:
        logger.info("No API key for provider %r", name)
        return None

    if name == "openai":
        from .openai import OpenAIProvider

        return OpenAIProvider(api_key=api_key)

    if name == "gemini":
        from .gemini import GeminiProvider

        return GeminiProvider(api_key=api_key)

    if name == "claude":
        from .claude import ClaudeProvider

        return ClaudeProvider(api_key=api_key)

    logger.warning("Unknown provider %r", name)
    return None
