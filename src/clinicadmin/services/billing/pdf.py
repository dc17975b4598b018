from __future__ import annotations

from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from src.clinicadmin.domain.models.invoice import ClinicDetails, InvoiceDetail


def _money(symbol: str, amount: float) -> str:
    return f"{symbol}{amount:,.2f}"


def _text(value: object) -> str:
    return escape(str(value)) if value is not None else ""


def render_invoice_pdf(invoice: InvoiceDetail, clinic: ClinicDetails) -> bytes:
    """Render an invoice to PDF bytes.

    Layout: clinic header, invoice meta, bill-to block, line items, total,
    then status and notes.
    """

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
        title=f"Invoice {invoice.invoice_number}",
    )
    styles = getSampleStyleSheet()
    symbol = clinic.currency_symbol

    story = [Paragraph(_text(clinic.name), styles["Title"])]
    contact = " | ".join(_text(part) for part in (clinic.address, clinic.phone) if part)
    if contact:
        story.append(Paragraph(contact, styles["Normal"]))
    story.append(Spacer(1, 8 * mm))

    meta = Table(
        [
            ["Invoice #", invoice.invoice_number],
            ["Issue date", invoice.issue_date.isoformat()],
            ["Due date", invoice.due_date.isoformat()],
        ],
        hAlign="RIGHT",
    )
    meta.setStyle(TableStyle([("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold")]))
    story.append(meta)
    story.append(Spacer(1, 6 * mm))

    story.append(Paragraph("Bill to", styles["Heading3"]))
    for line in (invoice.patient_name, invoice.patient_address, invoice.patient_email):
        if line:
            story.append(Paragraph(_text(line), styles["Normal"]))
    story.append(Spacer(1, 6 * mm))

    rows = [["Description", "Qty", "Unit price", "Total"]]
    for item in invoice.items:
        rows.append(
            [
                Paragraph(_text(item.description), styles["Normal"]),
                str(item.quantity),
                _money(symbol, item.unit_price),
                _money(symbol, item.total),
            ]
        )
    rows.append(["", "", "Total", _money(symbol, invoice.total_amount)])

    items_table = Table(rows, colWidths=[90 * mm, 20 * mm, 32 * mm, 32 * mm], repeatRows=1)
    items_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#36A2EB")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                ("LINEBELOW", (0, 0), (-1, -2), 0.25, colors.grey),
                ("FONTNAME", (2, -1), (-1, -1), "Helvetica-Bold"),
                ("LINEABOVE", (2, -1), (-1, -1), 1, colors.black),
            ]
        )
    )
    story.append(items_table)
    story.append(Spacer(1, 6 * mm))

    story.append(Paragraph(f"Status: {_text(invoice.status.value).upper()}", styles["Heading4"]))
    if invoice.notes:
        story.append(Paragraph("Notes", styles["Heading4"]))
        story.append(Paragraph(_text(invoice.notes), styles["Normal"]))

    doc.build(story)
    return buffer.getvalue()
