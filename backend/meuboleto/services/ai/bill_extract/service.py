"""Bill extraction: prompt, provider call and reply parsing.

IMPORTANT: the result is a *proposal*. Nothing here writes a bill; the intake
pipeline hands the candidate back to the user for confirmation.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from meuboleto.core.errors import AIParseError, IncompleteExtractionError
from meuboleto.services.ai.bill_extract.contracts import (
    BILL_CATEGORIES,
    DEFAULT_CATEGORY,
    DEFAULT_CONFIDENCE,
    BillCandidate,
)
from meuboleto.services.ai.common.audit import log_ai_run
from meuboleto.services.ai.common.json_tools import extract_json_object, find_object_span
from meuboleto.services.ai.common.providers import DocumentPayload, ProviderResult
from meuboleto.services.ai.common.router import ResolvedConfig

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("beneficiary", "amount", "dueDate")

BILL_EXTRACT_PROMPT = """Leia {document_kind} brasileiro e extraia as informações do pagamento.

Primeiro, resuma o documento identificando:
1. Favorecido/Beneficiário: nome completo da empresa ou pessoa que recebe
2. Valor: valor total a pagar, em reais
3. Vencimento: data limite de pagamento
4. Categoria: uma de {categories}
5. Linha digitável: apenas os números (normalmente 44 a 48 dígitos)

Depois, responda com um único objeto JSON válido:
{{
  "beneficiary": "nome do favorecido",
  "amount": 125.50,
  "dueDate": "YYYY-MM-DD",
  "category": "categoria da lista",
  "confidence": 0.0,
  "summary": "resumo das informações encontradas",
  "barcode": "somente dígitos"
}}

Regras:
- "amount" é um número sem símbolo de moeda nem separador de milhar
- "dueDate" sempre no formato YYYY-MM-DD
- "confidence" de 0.0 a 1.0 conforme a legibilidade do documento
- "barcode" sem espaços, pontos ou hífens; omita se não tiver certeza

Retorne SOMENTE o objeto JSON."""


@dataclass(frozen=True)
class ExtractionOutcome:
    candidate: BillCandidate
    provider_result: ProviderResult


def build_prompt(*, is_pdf: bool) -> str:
    kind = "este PDF de um boleto bancário" if is_pdf else "esta imagem de um boleto bancário"
    return BILL_EXTRACT_PROMPT.format(document_kind=kind, categories=", ".join(BILL_CATEGORIES))


def _parse_amount(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            amount = float(value)
        except OverflowError:
            return None
        return amount if math.isfinite(amount) and amount > 0 else None
    raw = re.sub(r"[^\d,.\-]", "", str(value))
    if not raw:
        return None
    if "," in raw:
        # Brazilian notation: 1.234,56
        raw = raw.replace(".", "").replace(",", ".")
    try:
        amount = float(raw)
    except ValueError:
        return None
    return amount if math.isfinite(amount) and amount > 0 else None


def _parse_due_date(value: Any) -> Optional[date]:
    if not value:
        return None
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y"):
        try:
            return datetime.strptime(text[:10], fmt).date()
        except ValueError:
            continue
    return None


def _parse_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if confidence <= 0:
        return DEFAULT_CONFIDENCE
    return min(confidence, 1.0)


def parse_bill_reply(text: str) -> BillCandidate:
    """Turn a free-text model reply into a ``BillCandidate``.

    Raises ``AIParseError`` when the reply holds no JSON object or it does not
    parse, and ``IncompleteExtractionError`` when beneficiary, amount or due
    date is missing afterwards.
    """
    span = find_object_span(text or "")
    if span is None:
        raise AIParseError(
            f"A IA não conseguiu analisar o boleto. Resposta: {(text or '')[:200]}"
        )
    try:
        parsed = json.loads(span)
    except ValueError:
        parsed = extract_json_object(text)
        if parsed is None:
            raise AIParseError("Erro ao interpretar a resposta da IA")
    if not isinstance(parsed, dict):
        raise AIParseError("Erro ao interpretar a resposta da IA")

    beneficiary = str(parsed.get("beneficiary") or "").strip()
    amount = _parse_amount(parsed.get("amount"))
    due_date = _parse_due_date(parsed.get("dueDate"))

    missing = [
        name
        for name, value in (("beneficiary", beneficiary), ("amount", amount), ("dueDate", due_date))
        if not value
    ]
    if missing:
        raise IncompleteExtractionError(
            "Dados incompletos extraídos do boleto. Verifique se o arquivo está legível.",
            missing=missing,
            partial={
                "beneficiary": beneficiary or None,
                "amount": amount,
                "due_date": due_date.isoformat() if due_date else None,
                "category": parsed.get("category") or None,
            },
        )

    category = str(parsed.get("category") or "").strip() or DEFAULT_CATEGORY
    barcode_raw = parsed.get("barcode")
    barcode = re.sub(r"\D", "", str(barcode_raw)) if barcode_raw else ""
    summary = str(parsed.get("summary") or "").strip() or (
        f"Beneficiário: {beneficiary}, Valor: R$ {amount:.2f}, "
        f"Vencimento: {due_date.isoformat()}, Categoria: {category}"
    )

    return BillCandidate(
        beneficiary=beneficiary,
        amount=amount,
        due_date=due_date,
        category=category,
        confidence=_parse_confidence(parsed.get("confidence")),
        summary=summary,
        barcode=barcode or None,
        raw_extraction=parsed,
    )


async def extract_bill(
    document: DocumentPayload,
    config: ResolvedConfig,
    *,
    db: Optional[Session] = None,
    actor_id: Optional[str] = None,
) -> ExtractionOutcome:
    """Submit *document* to the resolved provider and parse the reply.

    Provider failures propagate as ``RemoteRequestError``; parse failures as
    ``AIParseError`` / ``IncompleteExtractionError``. Single attempt.
    """
    prompt = build_prompt(is_pdf=document.is_pdf)
    logger.info(
        "Bill extraction start provider=%s model=%s media_type=%s size=%d",
        config.provider.name,
        config.model,
        document.media_type,
        len(document.content),
    )

    result = await config.provider.submit_for_extraction(
        document,
        prompt,
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout_seconds=config.timeout_seconds,
    )

    candidate: Optional[BillCandidate] = None
    try:
        candidate = parse_bill_reply(result.raw_text)
    except (AIParseError, IncompleteExtractionError) as exc:
        logger.warning("AI reply rejected code=%s provider=%s", exc.code, result.provider)
        if db is not None:
            log_ai_run(
                db,
                scope="bill_extract",
                provider_result=result,
                prompt_text=prompt,
                parsed_output=None,
                actor_id=actor_id,
                extra_meta={"outcome": exc.code, "media_type": document.media_type},
            )
        raise

    if db is not None:
        log_ai_run(
            db,
            scope="bill_extract",
            provider_result=result,
            prompt_text=prompt,
            parsed_output=candidate.model_dump(mode="json", exclude={"raw_extraction"}),
            actor_id=actor_id,
            extra_meta={"outcome": "complete", "media_type": document.media_type},
        )
    return ExtractionOutcome(candidate=candidate, provider_result=result)
