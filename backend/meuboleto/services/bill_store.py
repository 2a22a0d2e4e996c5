"""Owner-scoped access to the ``bills`` table.

Every query carries ``Bill.user_id == owner_id``; on Supabase the same rule is
enforced again by the row-level-security policies from the migrations.
"""

import logging
import uuid
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from meuboleto.models.bill import Bill

logger = logging.getLogger(__name__)


def _parse_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def list_for_owner(db: Session, owner_id: str) -> list[Bill]:
    return (
        db.query(Bill)
        .filter(Bill.user_id == owner_id)
        .order_by(Bill.due_date.asc(), Bill.created_at.asc())
        .all()
    )


def get_for_owner(db: Session, owner_id: str, bill_id: str) -> Bill:
    parsed = _parse_uuid(bill_id)
    if parsed is None:
        raise HTTPException(404, "Conta não encontrada")
    bill = db.query(Bill).filter(Bill.id == parsed, Bill.user_id == owner_id).one_or_none()
    if bill is None:
        raise HTTPException(404, "Conta não encontrada")
    return bill


def insert(db: Session, bill: Bill) -> Bill:
    db.add(bill)
    db.flush()
    logger.info("Bill created id=%s", bill.id)
    return bill


def save(db: Session, bill: Bill) -> Bill:
    db.add(bill)
    db.flush()
    return bill


def delete(db: Session, bill: Bill) -> None:
    db.delete(bill)
    db.flush()
