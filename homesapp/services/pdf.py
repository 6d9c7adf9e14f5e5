"""
PDF document generation for offers, tenant rental forms and owner forms.

Documents are built with reportlab's platypus layout so long content flows onto new
pages. Every generator returns the PDF as bytes.
"""

import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from homesapp.config import settings
import logging

logger = logging.getLogger(__name__)

MARGIN = 50
CONTENT_WIDTH = A4[0] - 2 * MARGIN

BRAND_COLOR = colors.HexColor("#1e40af")
PRIMARY_COLOR = colors.HexColor("#3b82f6")
SECONDARY_COLOR = colors.HexColor("#64748b")
ACCENT_COLOR = colors.HexColor("#10b981")
TEXT_COLOR = colors.HexColor("#1e293b")
PANEL_COLOR = colors.HexColor("#f8fafc")
BORDER_COLOR = colors.HexColor("#e2e8f0")

Row = Tuple[str, Any]


def _styles() -> Dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "brand": ParagraphStyle("Brand", parent=base["Title"], fontSize=28, leading=32,
                                textColor=colors.white, alignment=0, spaceAfter=0),
        "tagline": ParagraphStyle("Tagline", parent=base["Normal"], fontSize=12,
                                  textColor=colors.HexColor("#bfdbfe")),
        "title": ParagraphStyle("DocTitle", parent=base["Heading1"], fontSize=22,
                                textColor=TEXT_COLOR, spaceBefore=18, spaceAfter=4),
        "subtitle": ParagraphStyle("DocSubtitle", parent=base["Normal"], fontSize=10,
                                   textColor=SECONDARY_COLOR, spaceAfter=12),
        "heading": ParagraphStyle("Section", parent=base["Heading2"], fontSize=14,
                                  textColor=PRIMARY_COLOR, spaceBefore=14, spaceAfter=8),
        "label": ParagraphStyle("Label", parent=base["Normal"], fontSize=9, textColor=SECONDARY_COLOR),
        "value": ParagraphStyle("Value", parent=base["Normal"], fontSize=10, textColor=TEXT_COLOR),
        "highlight": ParagraphStyle("Highlight", parent=base["Normal"], fontSize=12,
                                    fontName="Helvetica-Bold", textColor=ACCENT_COLOR),
        "body": ParagraphStyle("Body", parent=base["Normal"], fontSize=10, leading=14, textColor=TEXT_COLOR),
        "footer": ParagraphStyle("Footer", parent=base["Normal"], fontSize=8,
                                 textColor=SECONDARY_COLOR, spaceBefore=24),
    }


def format_money(amount: Any, currency: Optional[str] = None) -> Optional[str]:
    """
    >>> format_money(Decimal("25000"), "MXN")
    '$25,000.00 MXN'
    """
    if amount is None or amount == "":
        return None
    text = f"${Decimal(str(amount)):,.2f}"
    return f"{text} {currency}" if currency else text


def _yes_no(value: Optional[bool]) -> Optional[str]:
    if value is None:
        return None
    return "Sí" if value else "No"


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.strftime("%d/%m/%Y")
    text = str(value).strip()
    return text or None


def _header(elements: List[Any], styles: Dict[str, ParagraphStyle], title: str) -> None:
    banner = Table(
        [[Paragraph(escape(settings.pdf_brand_name), styles["brand"])],
         [Paragraph(escape(settings.pdf_brand_tagline), styles["tagline"])]],
        colWidths=[CONTENT_WIDTH],
    )
    banner.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), BRAND_COLOR),
        ("LEFTPADDING", (0, 0), (-1, -1), 14),
        ("TOPPADDING", (0, 0), (0, 0), 14),
        ("BOTTOMPADDING", (0, -1), (-1, -1), 14),
    ]))
    elements.append(banner)
    elements.append(Paragraph(escape(title), styles["title"]))
    elements.append(Paragraph(f"Generado el {date.today().strftime('%d/%m/%Y')}", styles["subtitle"]))


def _property_panel(elements: List[Any], styles: Dict[str, ParagraphStyle], prop: Mapping[str, Any], price_label: str) -> None:
    lines = [
        Paragraph("PROPIEDAD", styles["label"]),
        Paragraph(escape(_text(prop.get("display_title")) or _text(prop.get("title")) or "Sin título"), styles["heading"]),
        Paragraph(escape(_text(prop.get("location")) or "Dirección no disponible"), styles["value"]),
    ]
    price = format_money(prop.get("price"), prop.get("currency"))
    if price:
        lines.append(Spacer(1, 4))
        lines.append(Paragraph(f"{escape(price_label)}: <b>{escape(price)}</b>", styles["value"]))

    panel = Table([[line] for line in lines], colWidths=[CONTENT_WIDTH])
    panel.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), PANEL_COLOR),
        ("BOX", (0, 0), (-1, -1), 1, BORDER_COLOR),
        ("LEFTPADDING", (0, 0), (-1, -1), 10),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]))
    elements.append(panel)


def _section(
    elements: List[Any],
    styles: Dict[str, ParagraphStyle],
    title: str,
    rows: Sequence[Row],
    highlight: Sequence[str] = ()
) -> None:
    """Label/value table; rows without a value are left out, and so is an empty section."""
    present = [(label, _text(value)) for label, value in rows if _text(value)]
    if not present:
        return

    data = [
        [Paragraph(f"{escape(label)}:", styles["label"]),
         Paragraph(escape(value), styles["highlight"] if label in highlight else styles["value"])]
        for label, value in present
    ]
    table = Table(data, colWidths=[140, CONTENT_WIDTH - 140])
    table.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LINEBELOW", (0, 0), (-1, -2), 0.5, BORDER_COLOR),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    elements.append(Paragraph(escape(title), styles["heading"]))
    elements.append(table)


def _paragraph_section(elements: List[Any], styles: Dict[str, ParagraphStyle], title: str, text: Any) -> None:
    content = _text(text)
    if not content:
        return
    elements.append(Paragraph(escape(title), styles["heading"]))
    for block in content.split("\n"):
        if block.strip():
            elements.append(Paragraph(escape(block), styles["body"]))


def _footer(elements: List[Any], styles: Dict[str, ParagraphStyle], note: str) -> None:
    elements.append(Paragraph(escape(note), styles["footer"]))


def _build(elements: List[Any], title: str) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=MARGIN,
        leftMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=title,
        author=settings.pdf_brand_name,
    )
    doc.build(elements)
    pdf = buffer.getvalue()
    buffer.close()
    logger.debug(f"Generated '{title}' PDF ({len(pdf)} bytes)")
    return pdf


def generate_offer_pdf(offer: Mapping[str, Any], property_data: Mapping[str, Any]) -> bytes:
    """
    Render an offer on a property.

    Args:
        offer: Offer fields (as returned by ``Offer.to_dict``)
        property_data: Property fields (as returned by ``Property.to_dict``)
    """
    styles = _styles()
    elements: List[Any] = []
    _header(elements, styles, "Oferta de Renta")
    _property_panel(elements, styles, property_data, "Renta mensual solicitada")

    _section(elements, styles, "INFORMACIÓN DEL SOLICITANTE", [
        ("Nombre completo", offer.get("applicant_full_name")),
        ("Email", offer.get("applicant_email")),
        ("Teléfono", offer.get("applicant_phone")),
        ("Nacionalidad", offer.get("nationality")),
        ("Ocupación", offer.get("occupation")),
    ])

    _section(elements, styles, "DETALLES DE LA OFERTA", [
        ("Monto ofertado", format_money(offer.get("offer_amount"), offer.get("currency"))),
        ("Fecha de mudanza", offer.get("move_in_date")),
        ("Duración del contrato", f"{offer['contract_months']} meses" if offer.get("contract_months") else None),
        ("Estado", offer.get("status")),
    ], highlight=("Monto ofertado",))

    _paragraph_section(elements, styles, "COMENTARIOS ADICIONALES", offer.get("notes"))
    _footer(elements, styles, f"Oferta {offer.get('id', '')}. Documento informativo, no constituye un contrato.")
    return _build(elements, "Oferta de Renta")


def generate_rental_form_pdf(tenant: Mapping[str, Any], property_data: Mapping[str, Any]) -> bytes:
    """Render a tenant's rental application for a property."""
    styles = _styles()
    elements: List[Any] = []
    _header(elements, styles, "Formulario de Renta")
    _property_panel(elements, styles, property_data, "Renta mensual")

    _section(elements, styles, "INFORMACIÓN PERSONAL", [
        ("Nombre completo", tenant.get("full_name")),
        ("Email", tenant.get("email")),
        ("Teléfono", tenant.get("phone")),
        ("Nacionalidad", tenant.get("nationality")),
        ("Fecha de nacimiento", tenant.get("birth_date")),
        ("Identificación", tenant.get("id_number")),
    ])

    _section(elements, styles, "INFORMACIÓN LABORAL", [
        ("Situación laboral", tenant.get("employment_status")),
        ("Empleador", tenant.get("employer")),
        ("Ingreso mensual", format_money(tenant.get("monthly_income"))),
    ])

    references = [ref for ref in tenant.get("references") or [] if any(ref.values())]
    for index, ref in enumerate(references, start=1):
        _section(elements, styles, f"REFERENCIA {index}", [
            ("Nombre", ref.get("name") or "No especificado"),
            ("Teléfono", ref.get("phone") or "No especificado"),
            ("Relación", ref.get("relationship") or "No especificado"),
        ])

    _section(elements, styles, "INFORMACIÓN ADICIONAL", [
        ("Mascotas", _yes_no(tenant.get("has_pets"))),
        ("Vehículo", _yes_no(tenant.get("has_vehicle"))),
    ])

    _paragraph_section(elements, styles, "COMENTARIOS", tenant.get("comments"))
    _footer(elements, styles, "La información proporcionada será verificada por el equipo de administración.")
    return _build(elements, "Formulario de Renta")


def generate_owner_form_pdf(owner: Mapping[str, Any], property_data: Mapping[str, Any]) -> bytes:
    """Render an owner's onboarding form for a property."""
    styles = _styles()
    elements: List[Any] = []
    _header(elements, styles, "Formulario de Propietario")
    _property_panel(elements, styles, property_data, "Renta publicada")

    _section(elements, styles, "INFORMACIÓN DEL PROPIETARIO", [
        ("Nombre completo", owner.get("full_name")),
        ("Email", owner.get("email")),
        ("Teléfono", owner.get("phone")),
        ("Nacionalidad", owner.get("nationality")),
        ("Dirección", owner.get("address")),
    ])

    _section(elements, styles, "INFORMACIÓN BANCARIA", [
        ("Banco", owner.get("bank_name")),
        ("Número de cuenta", owner.get("account_number")),
        ("CLABE", owner.get("clabe")),
    ])

    currency = property_data.get("currency")
    months = owner.get("minimum_contract_months")
    _section(elements, styles, "PREFERENCIAS DE RENTA", [
        ("Renta preferida", format_money(owner.get("preferred_rent_amount"), currency)),
        ("Duración mínima", f"{months} meses" if months else None),
        ("Acepta mascotas", _yes_no(owner.get("accepts_pets"))),
    ])

    _paragraph_section(elements, styles, "COMENTARIOS", owner.get("comments"))
    _footer(elements, styles, "Documento generado para el alta de la propiedad en la plataforma.")
    return _build(elements, "Formulario de Propietario")
