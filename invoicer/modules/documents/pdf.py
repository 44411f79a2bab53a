"""
Exportación de facturas, cotizaciones y recibos a PDF con reportlab.
"""

import re
import unicodedata
from decimal import Decimal
from io import BytesIO
from typing import Any, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from invoicer.modules.documents.models import DocumentType

TITLES = {
    DocumentType.INVOICE: "INVOICE",
    DocumentType.QUOTE: "QUOTE",
    DocumentType.RECEIPT: "RECEIPT",
}


def slugify(value: Optional[str]) -> str:
    """'Acme Inc.' -> 'acme-inc'"""
    normalized = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or "client"


def document_filename(client_name: Optional[str], document_type: DocumentType, document_number: str) -> str:
    """{client-slug}-{documentType}-{documentNumber}.pdf"""
    return f"{slugify(client_name)}-{document_type.value}-{document_number}.pdf"


def _money(value: Any, currency: str = "") -> str:
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"))
    return f"{currency} {amount:,.2f}".strip()


def _text(value: Any) -> str:
    return escape(str(value)) if value not in (None, "") else "-"


def _percent(rate: Any) -> str:
    if rate is None:
        return "-"
    return f"{(Decimal(str(rate)) * 100).normalize():f}%"


def _party_lines(party: Any, name_field: str) -> str:
    if party is None:
        return "-"
    lines = [f"<b>{_text(getattr(party, name_field, None))}</b>"]
    for field in ("contact_name", "email", "phone", "address", "city", "postal_code", "country", "tax_id"):
        value = getattr(party, field, None)
        if value:
            lines.append(escape(str(value)))
    return "<br/>".join(lines)


def render_document_pdf(
    document: Any,
    document_type: DocumentType,
    client: Any = None,
    company: Any = None
) -> bytes:
    """
    Genera el PDF del documento y retorna los bytes.

    document es una Invoice, Quote o Receipt; client y company se usan para
    las cabeceras y pueden faltar (cliente huérfano, perfil sin configurar).
    """
    buff = BytesIO()
    currency = getattr(document, "currency", "") or ""
    doc = SimpleDocTemplate(
        buff,
        pagesize=A4,
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=16 * mm,
        bottomMargin=16 * mm,
        title=f"{TITLES[document_type].title()} {document.number}",
    )

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="SmallMuted", fontSize=9, leading=12, textColor=colors.grey))
    styles.add(ParagraphStyle(name="Right", fontSize=10, leading=12, alignment=TA_RIGHT))

    story = []

    # Header: company on the left, document data on the right
    header_right = [f"<b>{TITLES[document_type]}</b>", f"No. {escape(document.number)}"]
    if document_type == DocumentType.RECEIPT:
        header_right.append(f"Date: {_text(document.date)}")
    else:
        header_right.append(f"Issue date: {_text(document.issue_date)}")
        if document_type == DocumentType.INVOICE:
            header_right.append(f"Due date: {_text(document.due_date)}")
        else:
            header_right.append(f"Expiry date: {_text(document.expiry_date)}")
        header_right.append(f"Status: {_text(document.status.value)}")
    if getattr(document, "reference", None):
        header_right.append(f"Reference: {escape(document.reference)}")

    header_tbl = Table(
        [[
            Paragraph(_party_lines(company, "company_name"), styles["Normal"]),
            Paragraph("<br/>".join(header_right), styles["Right"]),
        ]],
        colWidths=[90 * mm, 84 * mm]
    )
    header_tbl.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ("LINEBELOW", (0, 0), (-1, -1), 0.6, colors.lightgrey),
    ]))
    story.append(header_tbl)
    story.append(Spacer(1, 10))

    story.append(Paragraph("<b>Bill to</b>", styles["Normal"]))
    story.append(Spacer(1, 4))
    story.append(Paragraph(_party_lines(client, "business_name"), styles["SmallMuted"]))
    story.append(Spacer(1, 10))

    if document_type == DocumentType.RECEIPT:
        totals_data = [
            ["Payment method", document.payment_method.value.replace("_", " ").title()],
            ["Payment reference", document.payment_reference or "-"],
            ["Amount received", _money(document.amount, currency)],
        ]
    else:
        data = [[
            Paragraph("<b>#</b>", styles["Normal"]),
            Paragraph("<b>Description</b>", styles["Normal"]),
            Paragraph("<b>Qty</b>", styles["Normal"]),
            Paragraph("<b>Unit price</b>", styles["Normal"]),
            Paragraph("<b>Tax</b>", styles["Normal"]),
            Paragraph("<b>Disc.</b>", styles["Normal"]),
            Paragraph("<b>Amount</b>", styles["Normal"]),
        ]]
        for idx, item in enumerate(document.items, start=1):
            data.append([
                Paragraph(str(idx), styles["Normal"]),
                Paragraph(_text(item.description), styles["Normal"]),
                Paragraph(f"{Decimal(str(item.quantity)).normalize():f}", styles["Normal"]),
                Paragraph(_money(item.unit_price), styles["Normal"]),
                Paragraph(_percent(item.tax_rate), styles["Normal"]),
                Paragraph(_percent(item.discount_rate), styles["Normal"]),
                Paragraph(_money(item.amount), styles["Normal"]),
            ])

        items_tbl = Table(data, colWidths=[10 * mm, 62 * mm, 16 * mm, 24 * mm, 16 * mm, 16 * mm, 30 * mm])
        items_tbl.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f1f5f9")),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("GRID", (0, 0), (-1, -1), 0.4, colors.lightgrey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("ALIGN", (2, 1), (6, -1), "RIGHT"),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
        ]))
        story.append(items_tbl)
        story.append(Spacer(1, 10))

        totals_data = [
            ["Subtotal", _money(document.subtotal, currency)],
            ["Discount", _money(document.discount_amount, currency)],
            ["Tax", _money(document.tax_amount, currency)],
            ["Total", _money(document.total_amount, currency)],
        ]

    totals_tbl = Table(totals_data, colWidths=[60 * mm, 50 * mm], hAlign="RIGHT")
    totals_tbl.setStyle(TableStyle([
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
        ("LINEABOVE", (0, 0), (-1, 0), 0.6, colors.lightgrey),
        ("LINEBELOW", (0, -1), (-1, -1), 0.8, colors.HexColor("#0f172a")),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    story.append(totals_tbl)
    story.append(Spacer(1, 12))

    for title, value in (("Notes", document.notes), ("Terms", getattr(document, "terms", None))):
        if value:
            story.append(Paragraph(f"<b>{title}</b>", styles["Normal"]))
            story.append(Spacer(1, 4))
            for line in [ln.strip() for ln in value.splitlines() if ln.strip()]:
                story.append(Paragraph(escape(line), styles["SmallMuted"]))
            story.append(Spacer(1, 8))

    footer = getattr(document, "footer", None)
    if footer:
        story.append(Paragraph(escape(footer), styles["SmallMuted"]))

    doc.build(story)
    return buff.getvalue()
