"""Bill report for a due-date interval, as JSON or as a PDF download."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from meuboleto.core.auth import CurrentUser, get_current_user
from meuboleto.core.dependencies import get_db
from meuboleto.services import bill_store
from meuboleto.services.report_service import build_report, render_report_pdf, report_filename

router = APIRouter()


class ReportLine(BaseModel):
    id: str
    beneficiary: str
    amount: float
    due_date: date
    category: Optional[str] = None
    barcode: Optional[str] = None


class ReportSummary(BaseModel):
    start: date
    end: date
    total_count: int
    paid_count: int
    pending_count: int
    total_paid: float
    total_pending: float
    paid: list[ReportLine]
    pending: list[ReportLine]
    filename: str


def _line(bill) -> ReportLine:
    return ReportLine(
        id=str(bill.id),
        beneficiary=bill.beneficiary,
        amount=float(bill.amount),
        due_date=bill.due_date,
        category=bill.category,
        barcode=bill.barcode,
    )


@router.get("/reports/bills", response_model=ReportSummary)
def report_summary(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    report = build_report(bill_store.list_for_owner(db, current_user.id), start, end)
    return ReportSummary(
        start=report.start,
        end=report.end,
        total_count=report.total_count,
        paid_count=len(report.paid),
        pending_count=len(report.pending),
        total_paid=float(report.total_paid),
        total_pending=float(report.total_pending),
        paid=[_line(b) for b in report.paid],
        pending=[_line(b) for b in report.pending],
        filename=report_filename(report.start, report.end),
    )


@router.get("/reports/bills.pdf")
def report_pdf(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    report = build_report(bill_store.list_for_owner(db, current_user.id), start, end)
    content = render_report_pdf(report)
    filename = report_filename(report.start, report.end)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
