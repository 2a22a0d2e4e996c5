"""Bill extract scope contracts. Extraction is proposal-only."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field

DEFAULT_CATEGORY = "Outros"
DEFAULT_CONFIDENCE = 0.8

BILL_CATEGORIES = (
    "Aluguel",
    "Condomínio",
    "Energia",
    "Água",
    "Gás",
    "Internet",
    "Mercado",
    "Impostos",
    "Outros",
)


class BillCandidate(BaseModel):
    """Fields proposed by the model for one bill.

    This is a **proposal** only. Nothing is written to a bill until the user
    confirms it through the regular create endpoint.
    """

    beneficiary: str
    amount: float = Field(..., gt=0)
    due_date: date
    category: str = DEFAULT_CATEGORY
    confidence: float = Field(default=DEFAULT_CONFIDENCE, ge=0.0, le=1.0)
    summary: str = ""
    barcode: Optional[str] = None
    raw_extraction: dict[str, Any] = Field(default_factory=dict)
