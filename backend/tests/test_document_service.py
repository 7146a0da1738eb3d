"""
Test de los documentos imprimibles (view model y HTML).

El HTML se genera con Jinja2 sin pasar por WeasyPrint.
"""

from decimal import Decimal

import pytest

from taller.core.config import Settings
from taller.schemas.document import Branding
from taller.schemas.work_order import LaborEntry, PartEntry
from taller.services.document_service import (
    PdfService,
    branding_from_settings,
    build_order_document,
    build_quote_document,
    format_money,
)
from taller.services.quote_service import QuoteService
from taller.services.work_order_service import WorkOrderService

BRANDING = Branding(business_name="Servicio Técnico Norte", footer_text="Garantía 90 días")


@pytest.fixture
def pdf() -> PdfService:
    return PdfService()


class TestFormatMoney:
    """Test del formato de importes impresos."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (Decimal("1143.45"), "1.143,45"),
            (Decimal("1234.5"), "1.234,50"),
            (Decimal("0"), "0,00"),
            (Decimal("1234567.891"), "1.234.567,89"),
        ],
    )
    def test_format(self, value, expected):
        assert format_money(value) == expected


class TestQuoteDocument:
    """Test del presupuesto impreso."""

    @pytest.mark.asyncio
    async def test_build_quote_document(self, db, quote_data):
        """Test desglose y total del presupuesto de ejemplo."""
        quote = await QuoteService().create(db, quote_data)

        doc = build_quote_document(quote, BRANDING)

        assert doc.code == quote.code
        assert doc.subtotal == Decimal("1000.00")
        assert doc.rebate_amount == Decimal("100.00")
        assert doc.surcharge_amount == Decimal("45.00")
        assert doc.tax_amount == Decimal("198.45")
        assert doc.total == Decimal("1143.45")
        assert len(doc.lines) == 1
        assert doc.lines[0].detail == "Samsung Galaxy A52 356789101112131"
        assert doc.lines[0].line_total == Decimal("1000.00")

    @pytest.mark.asyncio
    async def test_render_quote_html(self, db, quote_data, pdf):
        quote = await QuoteService().create(db, quote_data)

        html = pdf.render_quote_html(build_quote_document(quote, BRANDING))

        assert quote.code in html
        assert "Juan Pérez" in html
        assert "1.143,45" in html
        assert "Servicio Técnico Norte" in html
        assert "Garantía 90 días" in html

    @pytest.mark.asyncio
    async def test_breakdown_adds_up_after_sync(self, db, accepted_order, pdf):
        """Test con líneas agregadas desde la orden el desglose suma el total."""
        await WorkOrderService().add_labor(
            db, accepted_order.id, LaborEntry(description="Diagnóstico", price=Decimal("100"))
        )
        quote = await QuoteService().get_by_id(db, accepted_order.quote_id)

        doc = build_quote_document(quote, BRANDING)

        assert doc.subtotal == Decimal("1000.00")
        assert doc.rebate_amount == Decimal("100.00")
        assert doc.surcharge_amount == Decimal("45.00")
        assert doc.tax_amount == Decimal("198.45")
        assert doc.order_extras == Decimal("100.00")
        assert doc.total == Decimal("1243.45")
        assert (
            doc.subtotal - doc.rebate_amount + doc.surcharge_amount + doc.tax_amount + doc.order_extras
            == doc.total
        )
        assert len(doc.lines) == 2

        html = pdf.render_quote_html(doc)
        assert "Agregado en la orden" in html
        assert "1.243,45" in html

    @pytest.mark.asyncio
    async def test_no_order_extras_row_without_sync(self, db, quote_data, pdf):
        quote = await QuoteService().create(db, quote_data)

        doc = build_quote_document(quote, BRANDING)

        assert doc.order_extras == Decimal("0.00")
        assert "Agregado en la orden" not in pdf.render_quote_html(doc)

    @pytest.mark.asyncio
    async def test_client_name_is_escaped(self, db, make_quote, pdf):
        quote = await QuoteService().create(db, make_quote(client_name="<b>Ana</b>"))

        html = pdf.render_quote_html(build_quote_document(quote, BRANDING))

        assert "&lt;b&gt;Ana&lt;/b&gt;" in html
        assert "<b>Ana</b>" not in html


class TestOrderDocument:
    """Test de la orden de trabajo impresa."""

    @pytest.mark.asyncio
    async def test_build_and_render_order(self, db, accepted_order, pdf):
        orders = WorkOrderService()
        await orders.add_labor(
            db, accepted_order.id, LaborEntry(description="Cambio de módulo", price=Decimal("150"), technician="Lucía")
        )
        order = await orders.add_part(
            db, accepted_order.id, PartEntry(description="Módulo", quantity=2, price=Decimal("300"))
        )

        doc = build_order_document(order, quote_code="P-2025-0001", branding=BRANDING)

        assert doc.device_summary == "Samsung Galaxy A52 (S/N 356789101112131)"
        assert doc.labor[0].price == Decimal("150.00")
        assert doc.parts[0].line_total == Decimal("600.00")
        assert doc.final_total == Decimal("1893.45")
        assert doc.balance == Decimal("1893.45")

        html = pdf.render_order_html(doc)
        assert order.code in html
        assert "P-2025-0001" in html
        assert "Lucía" in html
        assert "1.893,45" in html


class TestBranding:
    def test_branding_from_settings(self):
        cfg = Settings(business_name="Taller Sur", business_phone="+54 11 5555-0000")

        branding = branding_from_settings(cfg)

        assert branding.business_name == "Taller Sur"
        assert branding.phone == "+54 11 5555-0000"
