"""Dashboard figures derived from the current bill list.

Everything here is a pure function of ``(bills, today)``; nothing is cached
and nothing writes back to the bills.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

from meuboleto.schemas.bill import BillStatus, DueState

UPCOMING_WINDOW_DAYS = 7
DUE_SOON_MAX_DAYS = 3


@dataclass
class CategoryTotals:
    category: Optional[str]
    count: int = 0
    amount: Decimal = Decimal("0")


@dataclass
class BillStats:
    total_pending: Decimal
    total_paid_this_month: Decimal
    total_paid_overall: Decimal
    upcoming_count: int
    category_breakdown: list[CategoryTotals] = field(default_factory=list)


def _amount(bill: Any) -> Decimal:
    return Decimal(str(bill.amount or 0))


def _is_paid(bill: Any) -> bool:
    return bill.status == BillStatus.PAID


def _is_pending(bill: Any) -> bool:
    return bill.status == BillStatus.PENDING


def days_until_due(bill: Any, today: Optional[date] = None) -> int:
    # Due dates are whole calendar days, so the ceiling is the plain day delta.
    today = today or date.today()
    return (bill.due_date - today).days


def classify_due(bill: Any, today: Optional[date] = None) -> DueState:
    days = days_until_due(bill, today)
    if days < 0:
        return DueState.OVERDUE
    if days <= DUE_SOON_MAX_DAYS:
        return DueState.DUE_SOON
    return DueState.NORMAL


def category_breakdown(bills: Iterable[Any]) -> list[CategoryTotals]:
    """Count and amount per distinct category, in first-seen order."""
    totals: dict[Optional[str], CategoryTotals] = {}
    for bill in bills:
        key = bill.category or None
        entry = totals.get(key)
        if entry is None:
            entry = CategoryTotals(category=key)
            totals[key] = entry
        entry.count += 1
        entry.amount += _amount(bill)
    return list(totals.values())


def compute_stats(bills: Sequence[Any], today: Optional[date] = None) -> BillStats:
    today = today or date.today()
    horizon = today + timedelta(days=UPCOMING_WINDOW_DAYS)

    total_pending = Decimal("0")
    total_paid_month = Decimal("0")
    total_paid = Decimal("0")
    upcoming = 0

    for bill in bills:
        amount = _amount(bill)
        if _is_pending(bill):
            total_pending += amount
            if today <= bill.due_date <= horizon:
                upcoming += 1
        elif _is_paid(bill):
            total_paid += amount
            paid_at = bill.paid_at
            if paid_at is not None and paid_at.year == today.year and paid_at.month == today.month:
                total_paid_month += amount

    return BillStats(
        total_pending=total_pending,
        total_paid_this_month=total_paid_month,
        total_paid_overall=total_paid,
        upcoming_count=upcoming,
        category_breakdown=category_breakdown(bills),
    )


def sort_pending(bills: Iterable[Any]) -> list[Any]:
    """Pending bills, earliest due first. ``sorted`` is stable."""
    return sorted((b for b in bills if _is_pending(b)), key=lambda b: b.due_date)


def sort_paid(bills: Iterable[Any]) -> list[Any]:
    """Paid bills, most recent due date first, insertion order kept on ties."""
    paid = [b for b in bills if _is_paid(b)]
    # reverse=True keeps equal keys in original order as well
    return sorted(paid, key=lambda b: b.due_date, reverse=True)


def parse_month(value: Optional[str]) -> Optional[tuple[int, int]]:
    """``"2024-07"`` -> ``(2024, 7)``; ``None``/empty -> ``None``."""
    if not value:
        return None
    try:
        year_s, month_s = value.strip().split("-", 1)
        year, month = int(year_s), int(month_s)
    except ValueError:
        return None
    if not 1 <= month <= 12:
        return None
    return year, month


def filter_bills(
    bills: Iterable[Any],
    *,
    category: Optional[str] = None,
    month: Optional[tuple[int, int]] = None,
) -> list[Any]:
    result = list(bills)
    if month is not None:
        year, mon = month
        result = [b for b in result if b.due_date.year == year and b.due_date.month == mon]
    if category:
        result = [b for b in result if b.category == category]
    return result


def list_categories(bills: Iterable[Any]) -> list[str]:
    return sorted({b.category for b in bills if b.category})
