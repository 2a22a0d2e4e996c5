"""Intake schemas: analysis result returned to the dashboard."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field


class CandidateOut(BaseModel):
    beneficiary: str
    amount: float
    due_date: date
    category: str
    confidence: float
    summary: str = ""
    barcode: Optional[str] = None


class IntakeError(BaseModel):
    code: str
    detail: str
    missing_fields: list[str] = Field(default_factory=list)


class AnalyzeResponse(BaseModel):
    state: str
    filename: str
    candidate: Optional[CandidateOut] = None
    manual_seed: dict[str, Any] = Field(default_factory=dict)
    error: Optional[IntakeError] = None
    conversion: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    history: list[str] = Field(default_factory=list)
