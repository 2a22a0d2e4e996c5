import os

import pytest

from meuboleto.core.config import get_settings

# Keep the suite independent from a developer's shell: no real credentials,
# no database, mock provider allowed.
for _name in (
    "DATABASE_URL",
    "SUPABASE_URL",
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "ANTHROPIC_API_KEY",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_WHATSAPP_FROM",
    "SMTP_HOST",
    "SMTP_FROM_EMAIL",
):
    os.environ[_name] = ""
os.environ["AI_ALLOWED_PROVIDERS"] = "openai,gemini,claude,mock"
os.environ["INTAKE_RASTERIZE_PDF"] = "false"
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret-for-meuboleto-suite-0123456789")


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Some tests mutate env vars and clear the settings cache. Ensure we don't leak
    # a cached Settings instance across tests.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    from meuboleto.utils.rate_limit import rate_limiter

    rate_limiter.reset()
    yield
    rate_limiter.reset()
