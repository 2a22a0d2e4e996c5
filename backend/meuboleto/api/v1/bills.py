"""Bill endpoints: list, dashboard stats, create, edit, pay/unpay, delete."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from meuboleto.core.auth import CurrentUser, get_current_user
from meuboleto.core.dependencies import get_db
from meuboleto.core.errors import ValidationError
from meuboleto.models.bill import Bill
from meuboleto.schemas.bill import (
    BillCreate,
    BillListResponse,
    BillOut,
    BillUpdate,
    CategoryBreakdownItem,
    CategoryListResponse,
    DashboardStats,
    MarkPaidRequest,
)
from meuboleto.services import bill_store
from meuboleto.services.audit_service import create_audit_log
from meuboleto.services.bill_lifecycle import (
    build_bill,
    check_invariants,
    delete_bill,
    mark_paid,
    mark_pending,
    update_bill_fields,
)
from meuboleto.services.bill_stats import (
    classify_due,
    compute_stats,
    days_until_due,
    filter_bills,
    list_categories,
    parse_month,
    sort_paid,
    sort_pending,
)
from meuboleto.services.reminders import notify_payment
from meuboleto.services.settings_repository import SqlSettingsRepository
from meuboleto.utils.rate_limit import get_client_ip, get_user_agent

logger = logging.getLogger(__name__)

router = APIRouter()


def _bill_out(bill: Bill, today: date) -> BillOut:
    return BillOut(
        id=str(bill.id),
        beneficiary=bill.beneficiary,
        amount=float(bill.amount),
        due_date=bill.due_date,
        status=bill.status,
        category=bill.category,
        payment_method=bill.payment_method,
        paid_at=bill.paid_at,
        barcode=bill.barcode,
        days_until_due=days_until_due(bill, today),
        due_state=classify_due(bill, today),
        created_at=bill.created_at,
        updated_at=bill.updated_at,
    )


def _snapshot(bill: Bill) -> dict[str, Any]:
    return {
        "beneficiary": bill.beneficiary,
        "amount": str(bill.amount),
        "due_date": bill.due_date.isoformat() if bill.due_date else None,
        "status": bill.status,
        "category": bill.category,
        "payment_method": bill.payment_method,
        "paid_at": bill.paid_at.isoformat() if bill.paid_at else None,
        "barcode": bill.barcode,
    }


def _jsonable(values: dict[str, Any]) -> dict[str, Any]:
    out = {}
    for key, value in values.items():
        out[key] = value.isoformat() if isinstance(value, date) else (None if value is None else str(value))
    return out


def _audit(
    db: Session,
    request: Request,
    user: CurrentUser,
    bill: Bill,
    action: str,
    old_value: Optional[dict[str, Any]],
    new_value: Optional[dict[str, Any]],
) -> None:
    create_audit_log(
        db,
        entity_type="bill",
        entity_id=bill.id,
        action=action,
        old_value=old_value,
        new_value=new_value,
        actor_id=user.id,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )


@router.get("/bills", response_model=BillListResponse)
def list_bills(
    category: Optional[str] = Query(None),
    month: Optional[str] = Query(None, description="YYYY-MM"),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    today = date.today()
    bills = bill_store.list_for_owner(db, current_user.id)
    if month and parse_month(month) is None:
        raise ValidationError("Mês inválido, use o formato AAAA-MM")
    bills = filter_bills(bills, category=category, month=parse_month(month))
    return BillListResponse(
        pending=[_bill_out(b, today) for b in sort_pending(bills)],
        paid=[_bill_out(b, today) for b in sort_paid(bills)],
    )


@router.get("/bills/stats", response_model=DashboardStats)
def bill_stats(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    today = date.today()
    stats = compute_stats(bill_store.list_for_owner(db, current_user.id), today)
    return DashboardStats(
        total_pending=float(stats.total_pending),
        total_paid_this_month=float(stats.total_paid_this_month),
        total_paid_overall=float(stats.total_paid_overall),
        upcoming_count=stats.upcoming_count,
        category_breakdown=[
            CategoryBreakdownItem(category=item.category, count=item.count, amount=float(item.amount))
            for item in stats.category_breakdown
        ],
        computed_for=today,
    )


@router.get("/bills/categories", response_model=CategoryListResponse)
def bill_categories(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CategoryListResponse(categories=list_categories(bill_store.list_for_owner(db, current_user.id)))


@router.post("/bills", response_model=BillOut, status_code=201)
def create_bill(
    payload: BillCreate,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bill = build_bill(
        owner_id=current_user.id,
        beneficiary=payload.beneficiary,
        amount=payload.amount,
        due_date=payload.due_date,
        category=payload.category,
        barcode=payload.barcode,
    )
    check_invariants(bill)
    bill_store.insert(db, bill)
    _audit(db, request, current_user, bill, "BILL_CREATED", None, _snapshot(bill))
    db.commit()
    db.refresh(bill)
    return _bill_out(bill, date.today())


@router.get("/bills/{bill_id}", response_model=BillOut)
def get_bill(
    bill_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _bill_out(bill_store.get_for_owner(db, current_user.id, bill_id), date.today())


@router.patch("/bills/{bill_id}", response_model=BillOut)
def update_bill(
    bill_id: str,
    payload: BillUpdate,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bill = bill_store.get_for_owner(db, current_user.id, bill_id)
    changes = payload.model_dump(exclude_unset=True)
    previous = update_bill_fields(bill, changes)
    if previous:
        check_invariants(bill)
        bill_store.save(db, bill)
        _audit(
            db,
            request,
            current_user,
            bill,
            "BILL_UPDATED",
            _jsonable(previous),
            _jsonable({key: getattr(bill, key) for key in previous}),
        )
        db.commit()
        db.refresh(bill)
    return _bill_out(bill, date.today())


@router.post("/bills/{bill_id}/mark-paid", response_model=BillOut)
def mark_bill_paid(
    bill_id: str,
    payload: MarkPaidRequest,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bill = bill_store.get_for_owner(db, current_user.id, bill_id)
    before = _snapshot(bill)
    mark_paid(bill, payload.payment_method)
    check_invariants(bill)
    bill_store.save(db, bill)
    _audit(db, request, current_user, bill, "BILL_MARKED_PAID", before, _snapshot(bill))
    db.commit()
    db.refresh(bill)

    preferences = SqlSettingsRepository(db).load(current_user.id)
    notify_payment(bill, preferences)
    return _bill_out(bill, date.today())


@router.post("/bills/{bill_id}/mark-pending", response_model=BillOut)
def mark_bill_pending(
    bill_id: str,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bill = bill_store.get_for_owner(db, current_user.id, bill_id)
    before = _snapshot(bill)
    mark_pending(bill)
    check_invariants(bill)
    bill_store.save(db, bill)
    _audit(db, request, current_user, bill, "BILL_MARKED_PENDING", before, _snapshot(bill))
    db.commit()
    db.refresh(bill)
    return _bill_out(bill, date.today())


@router.delete("/bills/{bill_id}", status_code=204)
def remove_bill(
    bill_id: str,
    request: Request,
    confirm: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bill = bill_store.get_for_owner(db, current_user.id, bill_id)
    before = _snapshot(bill)
    delete_bill(db, bill, confirmed=confirm)
    _audit(db, request, current_user, bill, "BILL_DELETED", before, None)
    db.commit()
    return None
