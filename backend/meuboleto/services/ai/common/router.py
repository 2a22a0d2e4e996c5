"""AI router. Resolves provider, credential and model for a user."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from meuboleto.core.config import get_settings
from meuboleto.schemas.settings import UserPreferences

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedConfig:
    """Final resolved provider + model after the preference chain."""

    provider: BaseProvider
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: float
    credential_source: str


def resolve(preferences: UserPreferences, *, override_model: Optional[str] = None) -> Optional[ResolvedConfig]:
    """Resolve provider + model for one analysis.

    Resolution chain:
      1. Provider: the user's stored ``ai_provider``, else ``AI_DEFAULT_PROVIDER``.
      2. Credential: the user's stored ``ai_api_key``, else the server-level key
         for that provider.
      3. Model: ``override_model`` when it is in the provider allowlist, else the
         first allowed model.

    Returns ``None`` when no usable credential exists; callers treat that as
    "no AI configured" and go to manual entry.
    """
    settings = get_settings()

    provider_name = (preferences.ai_provider or settings.ai_default_provider or "").lower().strip()

    api_key = (preferences.ai_api_key or "").strip()
    credential_source = "user"
    if not api_key:
        api_key = settings.server_api_key(provider_name)
        credential_source = "server"
    if provider_name == "mock":
        credential_source = "none"

    provider = get_provider(provider_name, api_key)
    if provider is None:
        return None

    allowed_models = settings.ai_allowed_models.get(provider_name, [])
    model = (override_model or "").strip()
    if allowed_models and model and model not in allowed_models:
        logger.warning(
            "Model %r not in allowlist for %r, using first allowed: %r",
            model,
            provider_name,
            allowed_models[0],
        )
        model = allowed_models[0]
    if allowed_models and not model:
        model = allowed_models[0]

    return ResolvedConfig(
        provider=provider,
        model=model,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        timeout_seconds=settings.ai_timeout_seconds,
        credential_source=credential_source,
    )
