"""Document intake: upload -> (optional PDF conversion) -> AI extraction -> proposal.

One pipeline run handles one file, in order, with a single attempt. The result
is always a state plus whatever the user needs next: a candidate to confirm, or
a manual-entry form seeded with a beneficiary guess from the filename. The
pipeline never creates a bill on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Optional

from sqlalchemy.orm import Session

from meuboleto.core.config import get_settings
from meuboleto.core.errors import (
    AIParseError,
    IncompleteExtractionError,
    MeuBoletoError,
    RemoteRequestError,
    UnsupportedFormatError,
)
from meuboleto.core.image_processing import ConversionResult, convert_pdf_to_jpeg
from meuboleto.schemas.settings import UserPreferences
from meuboleto.services.ai.bill_extract.contracts import BillCandidate
from meuboleto.services.ai.bill_extract.service import extract_bill
from meuboleto.services.ai.common.providers import DocumentPayload
from meuboleto.services.ai.common.router import resolve

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

ACCEPTED_TYPES = {
    "application/pdf": "pdf",
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/png": "png",
}
_EXTENSION_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}


class IntakeState(StrEnum):
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    AWAITING_MANUAL_ENTRY = "awaiting_manual_entry"
    ANALYZING = "analyzing"
    ANALYSIS_COMPLETE = "analysis_complete"
    ANALYSIS_FAILED = "analysis_failed"


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class IntakeResult:
    state: IntakeState
    filename: str
    candidate: Optional[BillCandidate] = None
    manual_seed: dict[str, Any] = field(default_factory=dict)
    error: Optional[MeuBoletoError] = None
    conversion: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    history: list[IntakeState] = field(default_factory=list)


def manual_seed_for(filename: str) -> dict[str, Any]:
    """Beneficiary guess derived from the uploaded filename."""
    stem = Path(filename or "").stem.split(".")[0].strip()
    return {"beneficiary": f"Boleto {stem or 'Importado'}"}


def resolve_media_type(filename: str, content_type: Optional[str]) -> Optional[str]:
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype in ACCEPTED_TYPES:
        return "image/jpeg" if ctype == "image/jpg" else ctype
    if ctype in ("", "application/octet-stream"):
        return _EXTENSION_TYPES.get(Path(filename or "").suffix.lower())
    return None


def validate_upload(
    filename: str,
    content_type: Optional[str],
    size: int,
    *,
    max_bytes: Optional[int] = None,
) -> str:
    """Return the normalized media type or raise ``UnsupportedFormatError``.

    Runs before any network call.
    """
    limit = max_bytes if max_bytes is not None else MAX_UPLOAD_BYTES
    if size <= 0:
        raise UnsupportedFormatError("Arquivo vazio")
    if size > limit:
        raise UnsupportedFormatError(
            f"Arquivo excede o limite de {limit // (1024 * 1024)}MB",
            too_large=True,
            extra={"max_bytes": limit, "size": size},
        )
    media_type = resolve_media_type(filename, content_type)
    if media_type is None:
        raise UnsupportedFormatError(
            "Formato não suportado. Envie um PDF, JPEG ou PNG.",
            extra={"content_type": content_type or ""},
        )
    return media_type


def _should_rasterize(preferences: UserPreferences) -> bool:
    if preferences.convert_pdf_to_image is not None:
        return preferences.convert_pdf_to_image
    return get_settings().intake_rasterize_pdf


def prepare_document(
    upload: UploadedFile,
    media_type: str,
    *,
    rasterize_pdf: bool,
) -> tuple[DocumentPayload, Optional[ConversionResult]]:
    if media_type == "application/pdf" and rasterize_pdf:
        settings = get_settings()
        conversion = convert_pdf_to_jpeg(
            upload.content,
            upload.filename,
            min_width=settings.intake_min_render_width,
            min_height=settings.intake_min_render_height,
        )
        return (
            DocumentPayload(
                content=conversion.image_bytes,
                media_type=conversion.media_type,
                filename=conversion.filename,
            ),
            conversion,
        )
    return DocumentPayload(content=upload.content, media_type=media_type, filename=upload.filename), None


async def run_intake(
    upload: UploadedFile,
    preferences: UserPreferences,
    *,
    db: Optional[Session] = None,
    actor_id: Optional[str] = None,
    override_model: Optional[str] = None,
) -> IntakeResult:
    """Run one upload through the pipeline.

    ``UnsupportedFormatError`` is raised (not returned) because the file is
    rejected before the pipeline starts. Every later failure is reported in the
    result as ``ANALYSIS_FAILED`` with the error and a manual seed.
    """
    settings = get_settings()
    history = [IntakeState.IDLE]

    media_type = validate_upload(
        upload.filename,
        upload.content_type,
        upload.size,
        max_bytes=settings.intake_max_upload_bytes,
    )
    history.append(IntakeState.FILE_SELECTED)

    config = resolve(preferences, override_model=override_model)
    if config is None:
        history.append(IntakeState.AWAITING_MANUAL_ENTRY)
        logger.info("Intake without AI credential file=%s", upload.filename)
        return IntakeResult(
            state=IntakeState.AWAITING_MANUAL_ENTRY,
            filename=upload.filename,
            manual_seed=manual_seed_for(upload.filename),
            history=history,
        )

    history.append(IntakeState.ANALYZING)
    document, conversion = prepare_document(
        upload,
        media_type,
        rasterize_pdf=_should_rasterize(preferences),
    )
    conversion_kind = conversion.kind if conversion is not None else None

    try:
        outcome = await extract_bill(document, config, db=db, actor_id=actor_id)
    except IncompleteExtractionError as exc:
        history.append(IntakeState.ANALYSIS_FAILED)
        seed = manual_seed_for(upload.filename)
        if exc.partial.get("beneficiary"):
            seed["beneficiary"] = exc.partial["beneficiary"]
        return IntakeResult(
            state=IntakeState.ANALYSIS_FAILED,
            filename=upload.filename,
            manual_seed=seed,
            error=exc,
            conversion=conversion_kind,
            provider=config.provider.name,
            model=config.model,
            history=history,
        )
    except (AIParseError, RemoteRequestError) as exc:
        history.append(IntakeState.ANALYSIS_FAILED)
        logger.warning(
            "Intake analysis failed file=%s provider=%s code=%s",
            upload.filename,
            config.provider.name,
            exc.code,
        )
        return IntakeResult(
            state=IntakeState.ANALYSIS_FAILED,
            filename=upload.filename,
            manual_seed=manual_seed_for(upload.filename),
            error=exc,
            conversion=conversion_kind,
            provider=config.provider.name,
            model=config.model,
            history=history,
        )

    history.append(IntakeState.ANALYSIS_COMPLETE)
    logger.info(
        "Intake analysis complete file=%s provider=%s confidence=%.2f",
        upload.filename,
        config.provider.name,
        outcome.candidate.confidence,
    )
    return IntakeResult(
        state=IntakeState.ANALYSIS_COMPLETE,
        filename=upload.filename,
        candidate=outcome.candidate,
        conversion=conversion_kind,
        provider=outcome.provider_result.provider,
        model=outcome.provider_result.model,
        history=history,
    )
