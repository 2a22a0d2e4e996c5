"""Bill report for a closed due-date interval, rendered as a paginated PDF."""

from __future__ import annotations

import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas as pdf_canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from meuboleto.core.errors import MissingRangeError
from meuboleto.schemas.bill import BillStatus

logger = logging.getLogger(__name__)

REPORT_TITLE = "MeuBoleto AI - Relatório de Contas"
FOOTER_TEXT = "MeuBoleto AI - Sistema Inteligente de Controle de Contas"


@dataclass
class BillReport:
    start: date
    end: date
    paid: list[Any] = field(default_factory=list)
    pending: list[Any] = field(default_factory=list)

    @property
    def bills(self) -> list[Any]:
        return self.paid + self.pending

    @property
    def total_count(self) -> int:
        return len(self.paid) + len(self.pending)

    @property
    def total_paid(self) -> Decimal:
        return sum((Decimal(str(b.amount)) for b in self.paid), Decimal("0"))

    @property
    def total_pending(self) -> Decimal:
        return sum((Decimal(str(b.amount)) for b in self.pending), Decimal("0"))


def format_currency(value: Any) -> str:
    """``1234.5`` -> ``"R$ 1.234,50"``."""
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"))
    text = f"{amount:,.2f}"
    return "R$ " + text.replace(",", "X").replace(".", ",").replace("X", ".")


def format_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def format_barcode(barcode: Optional[str]) -> str:
    digits = "".join(ch for ch in (barcode or "") if ch.isdigit())
    return " ".join(digits[i : i + 4] for i in range(0, len(digits), 4))


def report_filename(start: date, end: date) -> str:
    return f"relatorio-contas-{start.strftime('%d-%m-%Y')}-a-{end.strftime('%d-%m-%Y')}.pdf"


def build_report(bills: Iterable[Any], start: Optional[date], end: Optional[date]) -> BillReport:
    """Select bills due within ``[start, end]`` and split them by status.

    Raises ``MissingRangeError`` when a bound is absent or the range is reversed.
    """
    if start is None or end is None:
        raise MissingRangeError("Preencha as datas de início e fim do período")
    if start > end:
        raise MissingRangeError("A data inicial deve ser anterior à data final")

    report = BillReport(start=start, end=end)
    for bill in bills:
        if not start <= bill.due_date <= end:
            continue
        if bill.status == BillStatus.PAID:
            report.paid.append(bill)
        else:
            report.pending.append(bill)
    return report


def _bill_rows(bills: list[Any], small_style: ParagraphStyle) -> tuple[list[list[Any]], list[tuple]]:
    rows: list[list[Any]] = [["Favorecido", "Valor", "Vencimento", "Categoria"]]
    spans: list[tuple] = []
    for bill in bills:
        rows.append(
            [
                bill.beneficiary,
                format_currency(bill.amount),
                format_date(bill.due_date),
                bill.category or "N/A",
            ]
        )
        if bill.barcode:
            row_idx = len(rows)
            rows.append([Paragraph(f"Linha digitável: {format_barcode(bill.barcode)}", small_style), "", "", ""])
            spans.append(("SPAN", (0, row_idx), (-1, row_idx)))
    return rows, spans


class NumberedCanvas(pdf_canvas.Canvas):
    """Canvas that writes "Página N de M" once the page count is known."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states: list[dict] = []

    def showPage(self):  # noqa: N802 - reportlab API
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int) -> None:
        self.saveState()
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawString(15 * mm, 10 * mm, FOOTER_TEXT)
        self.drawRightString(A4[0] - 15 * mm, 10 * mm, f"Página {self._pageNumber} de {total}")
        self.restoreState()


def render_report_pdf(report: BillReport, *, generated_at: Optional[datetime] = None) -> bytes:
    """Render *report* to PDF bytes. Pagination is handled by the flowables."""
    generated_at = generated_at or datetime.now()
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        title=REPORT_TITLE,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle("ReportTitle", parent=styles["Title"], fontSize=16, spaceAfter=12)
    heading_style = ParagraphStyle("ReportHeading", parent=styles["Heading2"], fontSize=12, spaceAfter=6)
    small_style = ParagraphStyle("BarcodeLine", parent=styles["Normal"], fontSize=8, textColor=colors.grey)

    elements: list[Any] = [
        Paragraph(REPORT_TITLE, title_style),
        Paragraph(f"Período: {format_date(report.start)} a {format_date(report.end)}", styles["Normal"]),
        Paragraph(f"Gerado em: {generated_at.strftime('%d/%m/%Y às %H:%M')}", styles["Normal"]),
        Spacer(1, 8 * mm),
    ]

    summary = Table(
        [
            ["Resumo", ""],
            ["Total de contas", str(report.total_count)],
            ["Contas pagas", str(len(report.paid))],
            ["Contas pendentes", str(len(report.pending))],
            ["Valor total pago", format_currency(report.total_paid)],
            ["Valor total pendente", format_currency(report.total_pending)],
        ],
        colWidths=[130, 150],
    )
    summary.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#4472C4")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("FONTNAME", (0, 1), (0, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
    ]))
    elements.append(summary)
    elements.append(Spacer(1, 8 * mm))

    sections = [
        ("CONTAS PAGAS", report.paid, colors.HexColor("#22C55E")),
        ("CONTAS PENDENTES", report.pending, colors.HexColor("#EF4444")),
    ]
    for title, bills, color in sections:
        if not bills:
            continue
        elements.append(Paragraph(title, ParagraphStyle(f"Heading{title}", parent=heading_style, textColor=color)))
        rows, spans = _bill_rows(bills, small_style)
        table = Table(rows, colWidths=[75 * mm, 35 * mm, 30 * mm, 40 * mm], repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F3F4F6")),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.grey),
            ("ALIGN", (1, 1), (1, -1), "RIGHT"),
            *spans,
        ]))
        elements.append(table)
        elements.append(Spacer(1, 6 * mm))

    if not report.total_count:
        elements.append(Paragraph("Nenhuma conta encontrada no período.", styles["Italic"]))

    doc.build(elements, canvasmaker=NumberedCanvas)
    logger.info(
        "Report rendered start=%s end=%s bills=%d pages=%d",
        report.start,
        report.end,
        report.total_count,
        doc.page,
    )
    return buf.getvalue()
