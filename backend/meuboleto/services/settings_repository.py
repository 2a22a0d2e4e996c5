"""Read/write access to the per-user settings blob."""

from __future__ import annotations

import abc
import logging
import uuid

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from meuboleto.models.bill import UserSettingsRecord
from meuboleto.schemas.settings import UserPreferences

logger = logging.getLogger(__name__)


class SettingsRepository(abc.ABC):
    @abc.abstractmethod
    def load(self, user_id: str) -> UserPreferences:
        """Return stored preferences, or defaults when nothing is stored."""

    @abc.abstractmethod
    def save(self, user_id: str, preferences: UserPreferences) -> UserPreferences:
        """Persist *preferences* and return them."""


class InMemorySettingsRepository(SettingsRepository):
    def __init__(self) -> None:
        self._items: dict[str, dict] = {}

    def load(self, user_id: str) -> UserPreferences:
        raw = self._items.get(str(user_id))
        return UserPreferences(**raw) if raw else UserPreferences()

    def save(self, user_id: str, preferences: UserPreferences) -> UserPreferences:
        self._items[str(user_id)] = preferences.model_dump(mode="json")
        return preferences


def _key(user_id: str) -> uuid.UUID:
    return user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))


class SqlSettingsRepository(SettingsRepository):
    def __init__(self, db: Session) -> None:
        self._db = db

    def load(self, user_id: str) -> UserPreferences:
        record = self._db.get(UserSettingsRecord, _key(user_id))
        if record is None or not record.preferences:
            return UserPreferences()
        try:
            return UserPreferences(**record.preferences)
        except PydanticValidationError:
            # A blob written by an older client; start over from defaults.
            logger.warning("Stored settings for user=%s are invalid, using defaults", user_id)
            return UserPreferences()

    def save(self, user_id: str, preferences: UserPreferences) -> UserPreferences:
        record = self._db.get(UserSettingsRecord, _key(user_id))
        payload = preferences.model_dump(mode="json")
        if record is None:
            record = UserSettingsRecord(user_id=_key(user_id), preferences=payload)
            self._db.add(record)
        else:
            record.preferences = payload
        self._db.flush()
        return preferences
