from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import fitz
import pytest

from meuboleto.core.errors import MissingRangeError
from meuboleto.services.report_service import (
    build_report,
    format_barcode,
    format_currency,
    render_report_pdf,
    report_filename,
)


def _bill(name, amount, due, status="pending", category=None, barcode=None):
    return SimpleNamespace(
        id=name,
        beneficiary=name,
        amount=Decimal(str(amount)),
        due_date=due,
        status=status,
        category=category,
        barcode=barcode,
        paid_at=due if status == "paid" else None,
    )


def _pdf_text(data: bytes) -> tuple[int, str]:
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return doc.page_count, "\n".join(page.get_text() for page in doc)
    finally:
        doc.close()


def test_interval_filters_and_partitions():
    bills = [
        _bill("Luz", 100, date(2024, 7, 15), status="paid", category="Energia"),
        _bill("Aluguel", 1500, date(2024, 8, 5)),
    ]
    report = build_report(bills, date(2024, 7, 1), date(2024, 7, 31))
    assert report.total_paid == Decimal("100")
    assert report.total_pending == Decimal("0")
    assert [b.beneficiary for b in report.bills] == ["Luz"]
    assert report.total_count == 1


def test_bounds_are_inclusive():
    bills = [_bill("A", 1, date(2024, 7, 1)), _bill("B", 2, date(2024, 7, 31))]
    report = build_report(bills, date(2024, 7, 1), date(2024, 7, 31))
    assert len(report.pending) == 2


@pytest.mark.parametrize(
    "start, end",
    [(None, date(2024, 7, 31)), (date(2024, 7, 1), None), (None, None), (date(2024, 8, 1), date(2024, 7, 1))],
)
def test_missing_or_reversed_range(start, end):
    with pytest.raises(MissingRangeError):
        build_report([], start, end)


def test_formatting_helpers():
    assert format_currency(1234.5) == "R$ 1.234,50"
    assert format_currency(0) == "R$ 0,00"
    assert format_barcode("23793381286000") == "2379 3381 2860 00"
    assert report_filename(date(2024, 7, 1), date(2024, 7, 31)) == "relatorio-contas-01-07-2024-a-31-07-2024.pdf"


def test_pdf_contains_sections_and_page_footer():
    bills = [
        _bill("Luz", 100, date(2024, 7, 15), status="paid", category="Energia", barcode="83640000001"),
        _bill("Agua", 80.25, date(2024, 7, 20), category="Água"),
    ]
    report = build_report(bills, date(2024, 7, 1), date(2024, 7, 31))
    data = render_report_pdf(report, generated_at=datetime(2024, 8, 1, 10, 0))
    assert data.startswith(b"%PDF")

    pages, text = _pdf_text(data)
    assert pages == 1
    assert "CONTAS PAGAS" in text
    assert "CONTAS PENDENTES" in text
    assert "R$ 80,25" in text
    assert "8364 0000 001" in text
    assert "Página 1 de 1" in text


def test_pdf_paginates_long_lists():
    bills = [_bill(f"Conta {i}", 10 + i, date(2024, 7, 1 + i % 28)) for i in range(120)]
    report = build_report(bills, date(2024, 7, 1), date(2024, 7, 31))
    pages, text = _pdf_text(render_report_pdf(report))
    assert pages > 1
    assert f"Página {pages} de {pages}" in text


def test_empty_report_still_renders():
    report = build_report([], date(2024, 7, 1), date(2024, 7, 31))
    _, text = _pdf_text(render_report_pdf(report))
    assert "Nenhuma conta encontrada" in text
