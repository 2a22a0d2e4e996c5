from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from meuboleto.core.auth import CurrentUser, get_current_user
from meuboleto.core.dependencies import get_db
from meuboleto.schemas.settings import UserPreferences, UserPreferencesOut, mask_preferences
from meuboleto.services.audit_service import create_audit_log
from meuboleto.services.settings_repository import SqlSettingsRepository
from meuboleto.utils.rate_limit import get_client_ip, get_user_agent

router = APIRouter()

MASK_PREFIX = "***"


@router.get("/settings", response_model=UserPreferencesOut)
def read_settings(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return mask_preferences(SqlSettingsRepository(db).load(current_user.id))


@router.put("/settings", response_model=UserPreferencesOut)
def write_settings(
    payload: UserPreferences,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = SqlSettingsRepository(db)
    stored = repo.load(current_user.id)
    if payload.ai_api_key.startswith(MASK_PREFIX):
        # The dashboard echoes the masked key back when the user did not change it.
        payload = payload.model_copy(update={"ai_api_key": stored.ai_api_key})

    saved = repo.save(current_user.id, payload)
    create_audit_log(
        db,
        entity_type="user_settings",
        entity_id=current_user.id,
        action="SETTINGS_UPDATED",
        old_value=stored.model_dump(mode="json"),
        new_value=saved.model_dump(mode="json"),
        actor_id=current_user.id,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    db.commit()
    return mask_preferences(saved)
