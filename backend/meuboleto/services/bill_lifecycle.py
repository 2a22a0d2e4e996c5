"""Bill lifecycle: creation, field edits and the two status transitions.

A bill is created ``pending``. ``mark_paid`` and ``mark_pending`` are the only
ways its status, ``paid_at`` and ``payment_method`` change; overdue is a
derived view and never stored.
"""

import logging
import re
import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from meuboleto.core.errors import ValidationError
from meuboleto.models.bill import Bill
from meuboleto.schemas.bill import BillStatus, PaymentMethod
from meuboleto.services import bill_store

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")

EDITABLE_FIELDS = ("beneficiary", "amount", "due_date", "category", "barcode")


def normalize_barcode(value: Optional[str]) -> Optional[str]:
    """Strip every separator from a linha digitável; empty becomes ``None``."""
    if value is None:
        return None
    digits = _NON_DIGITS.sub("", str(value))
    return digits or None


def _to_amount(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except ArithmeticError as exc:
        raise ValidationError("Valor inválido") from exc
    if amount < 0 or not amount.is_finite():
        raise ValidationError("Valor inválido")
    return amount


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def check_invariants(bill: Bill) -> None:
    """Raise ``ValidationError`` if the paid/pending field pairing is broken."""
    if bill.status == BillStatus.PAID:
        if not bill.payment_method or bill.paid_at is None:
            raise ValidationError("Conta paga sem forma de pagamento ou data")
    elif bill.status == BillStatus.PENDING:
        if bill.payment_method or bill.paid_at is not None:
            raise ValidationError("Conta pendente com dados de pagamento")
    else:
        raise ValidationError(f"Status desconhecido: {bill.status}")
    if bill.amount is not None and Decimal(str(bill.amount)) < 0:
        raise ValidationError("Valor inválido")
    if bill.barcode is not None and not str(bill.barcode).isdigit():
        raise ValidationError("Linha digitável deve conter apenas números")


def build_bill(
    *,
    owner_id: str,
    beneficiary: Optional[str],
    amount: Any,
    due_date: Optional[date],
    category: Optional[str] = None,
    barcode: Optional[str] = None,
) -> Bill:
    """Build a new ``pending`` bill; raises ``ValidationError`` on missing fields."""
    beneficiary = _clean_text(beneficiary)
    if not beneficiary:
        raise ValidationError("Favorecido é obrigatório")
    if amount is None:
        raise ValidationError("Valor é obrigatório")
    parsed_amount = _to_amount(amount)
    if parsed_amount <= 0:
        raise ValidationError("Valor deve ser maior que zero")
    if due_date is None:
        raise ValidationError("Data de vencimento é obrigatória")

    return Bill(
        id=uuid.uuid4(),
        user_id=owner_id,
        beneficiary=beneficiary,
        amount=parsed_amount,
        due_date=due_date,
        status=BillStatus.PENDING.value,
        category=_clean_text(category),
        payment_method=None,
        paid_at=None,
        barcode=normalize_barcode(barcode),
    )


def update_bill_fields(bill: Bill, changes: dict[str, Any]) -> dict[str, Any]:
    """Apply field edits. Returns the previous values of the fields that changed."""
    previous: dict[str, Any] = {}
    for field, value in changes.items():
        if field not in EDITABLE_FIELDS:
            raise ValidationError(f"Campo não editável: {field}")

        if field == "beneficiary":
            value = _clean_text(value)
            if not value:
                raise ValidationError("Favorecido é obrigatório")
        elif field == "amount":
            if value is None:
                raise ValidationError("Valor é obrigatório")
            value = _to_amount(value)
            if value <= 0:
                raise ValidationError("Valor deve ser maior que zero")
        elif field == "due_date":
            if value is None:
                raise ValidationError("Data de vencimento é obrigatória")
        elif field == "category":
            value = _clean_text(value)
        elif field == "barcode":
            value = normalize_barcode(value)

        current = getattr(bill, field)
        if current != value:
            previous[field] = current
            setattr(bill, field, value)
    return previous


def mark_paid(bill: Bill, payment_method: Optional[str], *, today: Optional[date] = None) -> Bill:
    if not payment_method or not str(payment_method).strip():
        raise ValidationError("Selecione a forma de pagamento")
    try:
        method = PaymentMethod(str(payment_method).strip())
    except ValueError as exc:
        raise ValidationError(f"Forma de pagamento inválida: {payment_method}") from exc

    bill.status = BillStatus.PAID.value
    bill.paid_at = today or date.today()
    bill.payment_method = method.value
    return bill


def mark_pending(bill: Bill) -> Bill:
    bill.status = BillStatus.PENDING.value
    bill.paid_at = None
    bill.payment_method = None
    return bill


def delete_bill(db: Session, bill: Bill, *, confirmed: bool) -> None:
    """Remove *bill* permanently. The caller must pass the user's confirmation."""
    if not confirmed:
        raise ValidationError("Confirme a exclusão da conta")
    bill_store.delete(db, bill)
    logger.info("Bill deleted id=%s", bill.id)
