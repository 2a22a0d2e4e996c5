from functools import lru_cache
import json
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_list_value(value: str) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except ValueError:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


# Provider -> models accepted by the analysis endpoint. First entry is the default.
DEFAULT_AI_MODELS: dict[str, list[str]] = {
    "openai": ["gpt-4o", "gpt-4o-mini"],
    "gemini": ["gemini-1.5-flash", "gemini-1.5-pro"],
    "claude": ["claude-3-5-sonnet-20241022", "claude-3-5-haiku-20241022"],
    "mock": ["mock-v1"],
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_jwt_audience: str = "authenticated"
    password_reset_redirect_url: str = ""
    database_url: str = ""

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    expose_error_details: bool = False

    # --- AI analysis ---
    ai_allowed_providers_raw: str = Field(
        default="openai,gemini,claude",
        validation_alias=AliasChoices("AI_ALLOWED_PROVIDERS"),
    )
    ai_default_provider: str = "openai"
    ai_timeout_seconds: float = 60.0
    ai_max_tokens: int = 1000
    ai_temperature: float = 0.1
    ai_debug_store_raw: bool = False
    openai_api_key: str = ""
    gemini_api_key: str = ""
    anthropic_api_key: str = ""
    openai_model: str = ""
    gemini_model: str = ""
    claude_model: str = ""

    # --- Intake ---
    intake_max_upload_bytes: int = 10 * 1024 * 1024
    intake_rasterize_pdf: bool = False
    intake_min_render_width: int = 200
    intake_min_render_height: int = 200

    # --- Notifications ---
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_whatsapp_from: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_from_email: str = ""

    pii_redaction_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("PII_REDACTION_ENABLED"),
    )
    pii_redaction_fields: list[str] = Field(
        default_factory=lambda: [
            "phone",
            "email",
            "ai_api_key",
            "barcode",
        ],
        validation_alias=AliasChoices("PII_REDACTION_FIELDS"),
    )

    rate_limit_analyze_enabled: bool = True
    rate_limit_analyze_per_min: int = 10
    trusted_proxy_cidrs: list[str] = Field(default_factory=list)

    security_headers_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("SECURITY_HEADERS_ENABLED", "SECURE_HEADERS_ENABLED"),
    )

    cors_allow_origins: list[str] = Field(default_factory=list)
    cors_allow_methods: list[str] = Field(default_factory=lambda: [
        "GET",
        "POST",
        "PUT",
        "PATCH",
        "DELETE",
        "OPTIONS",
    ])
    cors_allow_headers: list[str] = Field(default_factory=lambda: [
        "Authorization",
        "Content-Type",
        "Accept",
    ])

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        "pii_redaction_fields",
        "trusted_proxy_cidrs",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            if value.strip() == "":
                return []
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def ai_allowed_providers(self) -> list[str]:
        return [item.lower() for item in _parse_list_value(self.ai_allowed_providers_raw)]

    @property
    def ai_allowed_models(self) -> dict[str, list[str]]:
        overrides = {
            "openai": self.openai_model,
            "gemini": self.gemini_model,
            "claude": self.claude_model,
        }
        models: dict[str, list[str]] = {}
        for provider, defaults in DEFAULT_AI_MODELS.items():
            configured = overrides.get(provider, "").strip()
            if configured and configured not in defaults:
                models[provider] = [configured, *defaults]
            elif configured:
                models[provider] = [configured, *[m for m in defaults if m != configured]]
            else:
                models[provider] = list(defaults)
        return models

    def server_api_key(self, provider: str) -> str:
        return {
            "openai": self.openai_api_key,
            "gemini": self.gemini_api_key,
            "claude": self.anthropic_api_key,
        }.get(provider, "")


@lru_cache

def get_settings() -> Settings:
    return Settings()
