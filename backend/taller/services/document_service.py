"""
Documentos imprimibles: view model + PDF con WeasyPrint y Jinja2.
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)
"""

import logging
import os
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from taller.core.config import Settings, settings
from taller.models import Quote, WorkOrder
from taller.schemas.document import (
    Branding,
    DocumentLine,
    LaborLine,
    OrderDocument,
    PartLine,
    QuoteDocument,
)
from taller.schemas.work_order import Device, LaborEntry, PartEntry
from taller.services.calculator import ZERO, line_total, round_money, totals
from taller.services.quote_service import load_items

logger = logging.getLogger(__name__)

# Directorio de plantillas
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")


# Import diferido de weasyprint: requiere librerías del sistema (Pango/GTK)
def _get_weasyprint():
    """Importa weasyprint solo al generar un PDF."""
    try:
        from weasyprint import CSS, HTML
        return HTML, CSS
    except OSError as e:
        raise RuntimeError(
            "No se encontraron las dependencias de WeasyPrint. "
            "Instalar Pango (ej. apt install libpango-1.0-0 libpangoft2-1.0-0)"
        ) from e


# ------------------------------------------------------------
# View model
# ------------------------------------------------------------

def branding_from_settings(cfg: Optional[Settings] = None) -> Branding:
    """Datos del negocio tomados de la configuración."""
    cfg = cfg or settings
    return Branding(
        business_name=cfg.business_name,
        subtitle=cfg.business_subtitle,
        address=cfg.business_address,
        phone=cfg.business_phone,
        email=cfg.business_email,
        logo_path=cfg.business_logo_path,
        footer_text=cfg.business_footer_text,
    )


def _device_summary(device: Device) -> str:
    parts = [device.brand, device.model]
    summary = " ".join(p for p in parts if p)
    if device.serial:
        summary = f"{summary} (S/N {device.serial})".strip()
    return summary


def build_quote_document(quote: Quote, branding: Optional[Branding] = None) -> QuoteDocument:
    """
    Presupuesto aplanado para la plantilla.

    El total impreso es el persistido en el presupuesto. El desglose
    (descuento, recargo, impuesto) se recalcula sobre las líneas cotizadas;
    las agregadas desde la orden se muestran aparte, sin ajustes.
    """
    items = load_items(quote.items)
    quoted = [item for item in items if not item.order_code]
    extras = sum((line_total(item) for item in items if item.order_code), ZERO)
    breakdown = totals(quoted, quote.rebate_pct, quote.surcharge_pct, quote.tax_pct)

    lines = []
    for item in items:
        total = line_total(item)
        quantity = max(item.quantity, 1)
        detail = " ".join(p for p in (item.brand, item.model, item.serial) if p) or None
        lines.append(
            DocumentLine(
                description=item.description,
                detail=detail,
                quantity=quantity,
                unit_price=round_money(total / quantity),
                line_total=round_money(total),
            )
        )

    return QuoteDocument(
        code=quote.code,
        client_name=quote.client_name,
        quote_date=quote.quote_date,
        currency=quote.currency,
        status=quote.status,
        lines=lines,
        subtotal=round_money(breakdown.sub),
        rebate_pct=quote.rebate_pct,
        rebate_amount=round_money(breakdown.rebate_amt),
        surcharge_pct=quote.surcharge_pct,
        surcharge_amount=round_money(breakdown.surcharge_amt),
        tax_pct=quote.tax_pct,
        tax_amount=round_money(breakdown.tax_amt),
        order_extras=round_money(extras),
        total=round_money(quote.total),
        notes=quote.notes,
        branding=branding or branding_from_settings(),
    )


def build_order_document(
    order: WorkOrder,
    quote_code: Optional[str] = None,
    branding: Optional[Branding] = None,
) -> OrderDocument:
    """Orden de trabajo aplanada para la plantilla."""
    device = Device.model_validate(order.device or {})

    labor = []
    for raw in order.labor_entries or []:
        entry = LaborEntry.model_validate(raw)
        labor.append(
            LaborLine(
                description=entry.description,
                hours=entry.hours,
                technician=entry.technician,
                price=round_money(entry.price or 0),
            )
        )

    parts = []
    for raw in order.part_entries or []:
        entry = PartEntry.model_validate(raw)
        price = entry.price or 0
        parts.append(
            PartLine(
                description=entry.description,
                quantity=entry.quantity,
                unit_price=round_money(price),
                line_total=round_money(price * entry.quantity),
            )
        )

    return OrderDocument(
        code=order.code,
        quote_code=quote_code,
        client_name=order.client_name,
        created_date=order.created_at.date(),
        currency=order.currency,
        status=order.status,
        device_summary=_device_summary(device),
        accessories=device.accessories,
        diagnosis=order.diagnosis,
        labor=labor,
        parts=parts,
        estimated_total=round_money(order.estimated_total),
        final_total=round_money(order.final_total),
        paid_to_date=round_money(order.paid_to_date),
        balance=round_money(order.balance),
        delivery_notes=order.delivery_notes,
        warranty_days=order.warranty_days,
        branding=branding or branding_from_settings(),
    )


# ------------------------------------------------------------
# PDF
# ------------------------------------------------------------

def format_money(value) -> str:
    """Formato 1.234,56 para los importes impresos."""
    formatted = f"{round_money(value):,.2f}"
    return formatted.replace(",", "_").replace(".", ",").replace("_", ".")


class PdfService:
    """
    Genera PDF a partir de plantillas HTML/CSS con WeasyPrint + Jinja2.

    Recibe los view model ya construidos (build_quote_document,
    build_order_document).
    """

    def __init__(self, templates_dir: str = TEMPLATES_DIR):
        self.templates_dir = templates_dir
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(["html"]),
        )
        self.env.filters["money"] = format_money

    def render_quote_html(self, doc: QuoteDocument) -> str:
        template = self.env.get_template("quote.html")
        return template.render(doc=doc, branding=doc.branding)

    def render_order_html(self, doc: OrderDocument) -> str:
        template = self.env.get_template("work_order.html")
        return template.render(doc=doc, branding=doc.branding)

    def _write_pdf(self, html_out: str) -> bytes:
        HTML, CSS = _get_weasyprint()
        css = CSS(filename=os.path.join(self.templates_dir, "document.css"))
        return HTML(string=html_out, base_url=self.templates_dir).write_pdf(stylesheets=[css])

    def render_quote(self, doc: QuoteDocument) -> bytes:
        """
        Genera el PDF de un presupuesto.

        Returns:
            bytes: PDF listo para descargar
        """
        pdf_bytes = self._write_pdf(self.render_quote_html(doc))
        logger.info("Generado PDF del presupuesto %s (%d bytes)", doc.code, len(pdf_bytes))
        return pdf_bytes

    def render_order(self, doc: OrderDocument) -> bytes:
        """
        Genera el PDF de una orden de trabajo.

        Returns:
            bytes: PDF listo para descargar
        """
        pdf_bytes = self._write_pdf(self.render_order_html(doc))
        logger.info("Generado PDF de la orden %s (%d bytes)", doc.code, len(pdf_bytes))
        return pdf_bytes
