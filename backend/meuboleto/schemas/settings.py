import re
import uuid
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

AI_PROVIDER_CHOICES = ("openai", "gemini", "claude", "mock")
REMINDER_DAY_CHOICES = (1, 2, 3, 4, 5)


def _new_id() -> str:
    return uuid.uuid4().hex


class EmailRecipient(BaseModel):
    id: str = Field(default_factory=_new_id)
    email: EmailStr


class WhatsAppContact(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str = Field(..., min_length=1, max_length=120)
    phone: str

    @field_validator("phone")
    @classmethod
    def _phone_digits(cls, value: str) -> str:
        digits = re.sub(r"\D", "", value or "")
        if len(digits) < 10 or len(digits) > 11:
            raise ValueError("Telefone deve ter DDD + número (10 ou 11 dígitos)")
        return digits


class UserPreferences(BaseModel):
    """Per-user settings blob, injected into intake and reminders."""

    notifications_enabled: bool = True
    email_recipients: list[EmailRecipient] = Field(default_factory=list)
    whatsapp_contacts: list[WhatsAppContact] = Field(default_factory=list)
    ai_api_key: str = ""
    ai_provider: str = "openai"
    reminder_days_before: list[int] = Field(default_factory=lambda: [1])
    payment_notifications_enabled: bool = True
    convert_pdf_to_image: Optional[bool] = None

    @field_validator("ai_provider", mode="before")
    @classmethod
    def _provider(cls, value):
        name = str(value or "openai").strip().lower()
        if name not in AI_PROVIDER_CHOICES:
            raise ValueError(f"Provedor de IA não suportado: {value}")
        return name

    @field_validator("reminder_days_before", mode="before")
    @classmethod
    def _reminder_days(cls, value):
        # Older blobs stored a single number.
        if value is None:
            return [1]
        if isinstance(value, int):
            value = [value]
        days = sorted({int(v) for v in value})
        for day in days:
            if day not in REMINDER_DAY_CHOICES:
                raise ValueError("Lembretes aceitam de 1 a 5 dias")
        return days

    @field_validator("email_recipients")
    @classmethod
    def _unique_emails(cls, value: list[EmailRecipient]) -> list[EmailRecipient]:
        seen: set[str] = set()
        for recipient in value:
            key = str(recipient.email).lower()
            if key in seen:
                raise ValueError(f"E-mail duplicado: {recipient.email}")
            seen.add(key)
        return value


class UserPreferencesOut(UserPreferences):
    ai_api_key_set: bool = False


def mask_preferences(preferences: UserPreferences) -> UserPreferencesOut:
    data = preferences.model_dump()
    key = data.pop("ai_api_key", "")
    masked = f"***{key[-4:]}" if len(key) > 8 else ("***" if key else "")
    return UserPreferencesOut(**data, ai_api_key=masked, ai_api_key_set=bool(key))
