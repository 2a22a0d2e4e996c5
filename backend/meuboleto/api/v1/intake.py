"""Document intake: upload a bill file and get an extraction proposal back."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from meuboleto.core.auth import CurrentUser, get_current_user
from meuboleto.core.config import get_settings
from meuboleto.core.dependencies import get_db
from meuboleto.core.errors import UnsupportedFormatError
from meuboleto.schemas.intake import AnalyzeResponse, CandidateOut, IntakeError
from meuboleto.services.intake_service import IntakeResult, UploadedFile, run_intake
from meuboleto.services.settings_repository import SqlSettingsRepository
from meuboleto.utils.rate_limit import enforce_analyze_limit

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(result: IntakeResult) -> AnalyzeResponse:
    candidate = None
    if result.candidate is not None:
        candidate = CandidateOut(**result.candidate.model_dump(exclude={"raw_extraction"}))
    error = None
    if result.error is not None:
        error = IntakeError(
            code=result.error.code,
            detail=result.error.message,
            missing_fields=result.error.extra.get("missing_fields", []),
        )
    return AnalyzeResponse(
        state=result.state.value,
        filename=result.filename,
        candidate=candidate,
        manual_seed=result.manual_seed,
        error=error,
        conversion=result.conversion,
        provider=result.provider,
        model=result.model,
        history=[state.value for state in result.history],
    )


@router.post("/intake/analyze", response_model=AnalyzeResponse)
async def analyze_document(
    file: UploadFile = File(...),
    model: Optional[str] = Form(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Analyze one uploaded bill. Nothing is saved; confirm via ``POST /bills``."""
    settings = get_settings()
    limit = settings.intake_max_upload_bytes
    # Read one byte past the limit so oversized uploads are rejected without buffering them whole.
    content = await file.read(limit + 1)
    if len(content) > limit:
        raise UnsupportedFormatError(
            f"Arquivo excede o limite de {limit // (1024 * 1024)}MB",
            too_large=True,
            extra={"max_bytes": limit},
        )

    enforce_analyze_limit(current_user.id)
    preferences = SqlSettingsRepository(db).load(current_user.id)
    upload = UploadedFile(
        filename=file.filename or "documento",
        content_type=file.content_type or "",
        content=content,
    )
    result = await run_intake(
        upload,
        preferences,
        db=db,
        actor_id=current_user.id,
        override_model=model,
    )
    db.commit()
    return _to_response(result)
