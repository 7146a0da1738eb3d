"""
Test del QuoteService: alta, edición, transiciones, aceptación y sincronización.
"""

import asyncio
import datetime
import uuid
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select, update

from taller.core.exceptions import BusinessValidationError, NotFoundError
from taller.models import Quote, WorkOrder
from taller.schemas.quote import (
    AcceptOutcome,
    ItemKind,
    LineItem,
    QuoteStatus,
    QuoteUpdate,
)
from taller.schemas.work_order import LaborEntry, PartEntry
from taller.services.quote_service import QuoteService, VOID_NOTE_PREFIX

YEAR = datetime.date.today().year


@pytest.fixture
def service() -> QuoteService:
    return QuoteService()


async def _count_orders(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count(WorkOrder.id)))).scalar_one()


class TestQuoteServiceCreate:
    """Test de alta de presupuestos."""

    @pytest.mark.asyncio
    async def test_create_assigns_code_and_total(self, db, service, quote_data):
        """Test creación: código P-AAAA-0001, total y estado draft."""
        quote = await service.create(db, quote_data)

        assert quote.code == f"P-{YEAR}-0001"
        assert quote.sequence == 1
        assert quote.status == QuoteStatus.DRAFT.value
        assert quote.total == Decimal("1143.45")
        assert quote.currency == "ARS"
        assert quote.order_id is None

    @pytest.mark.asyncio
    async def test_items_stored_without_empty_fields(self, db, service, quote_data):
        """Test las líneas se guardan sin los campos opcionales vacíos."""
        quote = await service.create(db, quote_data)

        item = quote.items[0]
        assert item["kind"] == "repair"
        assert item["brand"] == "Samsung"
        assert "hours" not in item
        assert uuid.UUID(item["id"])

    @pytest.mark.asyncio
    async def test_order_code_not_accepted_from_input(self, db, service, make_quote):
        """Test solo la sincronización marca líneas con la orden de origen."""
        item = LineItem(
            kind=ItemKind.SERVICE,
            description="Diagnóstico",
            unit_price=Decimal("1000"),
            order_code="OT-2025-0009",
        )

        quote = await service.create(db, make_quote(items=[item]))

        assert "order_code" not in quote.items[0]
        assert quote.total == Decimal("1143.45")

    @pytest.mark.asyncio
    async def test_codes_are_sequential(self, db, service, quote_data):
        first = await service.create(db, quote_data)
        second = await service.create(db, quote_data)

        assert (first.sequence, second.sequence) == (1, 2)
        assert second.code == f"P-{YEAR}-0002"

    @pytest.mark.asyncio
    async def test_blank_client_rejected(self, db, service, make_quote):
        """Test cliente vacío."""
        with pytest.raises(BusinessValidationError):
            await service.create(db, make_quote(client_name="   "))

    @pytest.mark.asyncio
    async def test_no_items_rejected(self, db, service, quote_data, make_quote):
        """Test presupuesto sin líneas; no consume número."""
        with pytest.raises(BusinessValidationError):
            await service.create(db, make_quote(items=[]))

        quote = await service.create(db, quote_data)
        assert quote.sequence == 1

    def test_invalid_currency_rejected(self, make_quote):
        with pytest.raises(ValidationError):
            make_quote(currency="PESOS")


class TestQuoteServiceUpdate:
    """Test de edición de presupuestos."""

    @pytest.mark.asyncio
    async def test_update_recomputes_total(self, db, service, quote_data):
        """Test cambiar el impuesto recalcula el total."""
        quote = await service.create(db, quote_data)

        updated = await service.update(db, quote.id, QuoteUpdate(tax_pct=Decimal("0")))

        assert updated.total == Decimal("945.00")

    @pytest.mark.asyncio
    async def test_update_items(self, db, service, quote_data):
        quote = await service.create(db, quote_data)
        items = [LineItem(kind=ItemKind.PRODUCT, description="Funda", unit_price=Decimal("50"), quantity=2)]

        updated = await service.update(
            db,
            quote.id,
            QuoteUpdate(items=items, rebate_pct=None, surcharge_pct=None, tax_pct=None),
        )

        assert updated.total == Decimal("100.00")
        assert len(updated.items) == 1

    @pytest.mark.asyncio
    async def test_update_accepted_rejected(self, db, service, quote_data, acceptance):
        """Test un presupuesto aceptado no se modifica."""
        quote = await service.create(db, quote_data)
        await service.accept(db, quote.id, acceptance)

        with pytest.raises(BusinessValidationError):
            await service.update(db, quote.id, QuoteUpdate(notes="cambio"))

    def test_update_cannot_set_status_or_order(self):
        """Test estado y orden no son editables."""
        with pytest.raises(ValidationError):
            QuoteUpdate(status="accepted")
        with pytest.raises(ValidationError):
            QuoteUpdate(order_id=str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_update_not_found(self, db, service):
        with pytest.raises(NotFoundError):
            await service.update(db, uuid.uuid4(), QuoteUpdate(notes="x"))


class TestQuoteServiceTransitions:
    """Test de las transiciones de estado."""

    @pytest.mark.asyncio
    async def test_send_then_reject(self, db, service, quote_data):
        quote = await service.create(db, quote_data)

        sent = await service.mark_sent(db, quote.id)
        assert sent.status == QuoteStatus.SENT.value

        rejected = await service.reject(db, quote.id, "muy caro")
        assert rejected.status == QuoteStatus.REJECTED.value

    @pytest.mark.asyncio
    async def test_send_rejected_quote_fails(self, db, service, quote_data):
        """Test rejected → sent no está permitido."""
        quote = await service.create(db, quote_data)
        await service.reject(db, quote.id)

        with pytest.raises(BusinessValidationError):
            await service.mark_sent(db, quote.id)

    @pytest.mark.asyncio
    async def test_void_appends_reason(self, db, service, make_quote):
        """Test anular agrega el motivo en una línea nueva de las notas."""
        quote = await service.create(db, make_quote(notes="Cliente frecuente"))

        voided = await service.void(db, quote.id, "duplicado")

        assert voided.status == QuoteStatus.VOIDED.value
        assert voided.notes == f"Cliente frecuente\n{VOID_NOTE_PREFIX}: duplicado"

    @pytest.mark.asyncio
    async def test_void_is_idempotent(self, db, service, quote_data):
        """Test anular dos veces no vuelve a modificar las notas."""
        quote = await service.create(db, quote_data)
        await service.void(db, quote.id, "duplicado")

        again = await service.void(db, quote.id, "otro motivo")

        assert again.status == QuoteStatus.VOIDED.value
        assert again.notes == f"{VOID_NOTE_PREFIX}: duplicado"

    @pytest.mark.asyncio
    async def test_void_accepted_rejected(self, db, service, quote_data, acceptance):
        """Test un presupuesto aceptado no se anula."""
        quote = await service.create(db, quote_data)
        await service.accept(db, quote.id, acceptance)

        with pytest.raises(BusinessValidationError):
            await service.void(db, quote.id, "error")

    @pytest.mark.asyncio
    async def test_void_rejected_quote(self, db, service, quote_data):
        """Test un presupuesto rechazado puede anularse."""
        quote = await service.create(db, quote_data)
        await service.reject(db, quote.id)

        voided = await service.void(db, quote.id)
        assert voided.status == QuoteStatus.VOIDED.value
        assert voided.notes is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reason", [None, "", "   "])
    async def test_void_without_reason_keeps_notes(self, db, service, make_quote, reason):
        """Test anular sin motivo no agrega nada a las notas."""
        quote = await service.create(db, make_quote(notes="Cliente frecuente"))

        voided = await service.void(db, quote.id, reason)

        assert voided.status == QuoteStatus.VOIDED.value
        assert voided.notes == "Cliente frecuente"


class TestQuoteServiceAccept:
    """Test de aceptación y conversión en orden de trabajo."""

    @pytest.mark.asyncio
    async def test_accept_creates_order(self, db, service, quote_data, acceptance):
        """Test aceptar crea la orden con totales y copia de las líneas."""
        quote = await service.create(db, quote_data)

        result = await service.accept(db, quote.id, acceptance)

        assert result.outcome == AcceptOutcome.ACCEPTED
        quote = await service.get_by_id(db, quote.id)
        assert quote.status == QuoteStatus.ACCEPTED.value
        assert quote.order_id == result.order_id
        assert quote.acceptance["name"] == "Juan Pérez"
        assert quote.acceptance["method"] == "whatsapp"

        order = (
            await db.execute(select(WorkOrder).where(WorkOrder.id == result.order_id))
        ).scalar_one()
        assert order.code == f"OT-{YEAR}-0001"
        assert order.quote_id == quote.id
        assert order.client_name == "Juan Pérez"
        assert order.estimated_total == Decimal("1143.45")
        assert order.final_total == Decimal("1143.45")
        assert order.balance == Decimal("1143.45")
        assert order.paid_to_date == Decimal("0")
        assert order.status == "pending"
        assert order.pay_status == "unpaid"
        assert order.device["brand"] == "Samsung"
        assert order.device["serial"] == "356789101112131"
        assert order.quote_items_snapshot == quote.items

    @pytest.mark.asyncio
    async def test_accept_twice_returns_existing_order(self, db, session_factory, service, quote_data, acceptance):
        """Test aceptar de nuevo devuelve la misma orden sin crear otra."""
        quote = await service.create(db, quote_data)

        first = await service.accept(db, quote.id, acceptance)
        second = await service.accept(db, quote.id, acceptance)
        await db.commit()

        assert first.outcome == AcceptOutcome.ACCEPTED
        assert second.outcome == AcceptOutcome.ALREADY_ACCEPTED
        assert second.order_id == first.order_id
        assert await _count_orders(session_factory) == 1

    @pytest.mark.asyncio
    async def test_concurrent_accepts_create_one_order(self, db, session_factory, service, quote_data, acceptance):
        """Test dos aceptaciones simultáneas: una orden, mismo id en ambas respuestas."""
        quote = await service.create(db, quote_data)

        async def accept_once():
            async with session_factory() as session:
                return await QuoteService().accept(session, quote.id, acceptance)

        results = await asyncio.gather(accept_once(), accept_once())

        outcomes = sorted(r.outcome.value for r in results)
        assert outcomes == ["accepted", "already_accepted"]
        assert results[0].order_id == results[1].order_id
        assert await _count_orders(session_factory) == 1

    @pytest.mark.asyncio
    async def test_failure_after_order_insert_rolls_back_everything(
        self, db, session_factory, service, quote_data, acceptance, monkeypatch
    ):
        """Test una falla al marcar el presupuesto no deja orden ni número consumido."""
        quote = await service.create(db, quote_data)
        quote_id = quote.id

        async def broken_flag(self, db, quote, order, acceptance):
            raise RuntimeError("falla simulada")

        with monkeypatch.context() as m:
            m.setattr(QuoteService, "_flag_accepted", broken_flag)
            with pytest.raises(RuntimeError):
                await service.accept(db, quote_id, acceptance)

        assert await _count_orders(session_factory) == 0
        async with session_factory() as session:
            stored = (await session.execute(select(Quote).where(Quote.id == quote_id))).scalar_one()
            assert stored.status == QuoteStatus.DRAFT.value
            assert stored.order_id is None

        result = await service.accept(db, quote_id, acceptance)
        order = (
            await db.execute(select(WorkOrder).where(WorkOrder.id == result.order_id))
        ).scalar_one()
        assert order.code == f"OT-{YEAR}-0001"

    @pytest.mark.asyncio
    async def test_accept_voided_fails(self, db, service, quote_data, acceptance):
        quote = await service.create(db, quote_data)
        await service.void(db, quote.id)

        with pytest.raises(BusinessValidationError):
            await service.accept(db, quote.id, acceptance)

    @pytest.mark.asyncio
    async def test_accept_not_found(self, db, service, acceptance):
        with pytest.raises(NotFoundError):
            await service.accept(db, uuid.uuid4(), acceptance)


class TestQuoteServiceSync:
    """Test de la incorporación de entradas de la orden al presupuesto."""

    def _objects(self):
        quote = Quote(
            code="P-2025-0001",
            items=[
                {"id": str(uuid.uuid4()), "kind": "repair", "description": "Pantalla", "unit_price": "1000"}
            ],
            total=Decimal("1000.00"),
        )
        labor = LaborEntry(description="Limpieza de placa", price=Decimal("200"))
        part = PartEntry(description="Batería", quantity=2, price=Decimal("50"), batch_serial="L-77")
        order = WorkOrder(
            code="OT-2025-0001",
            labor_entries=[labor.model_dump(mode="json", exclude_none=True)],
            part_entries=[part.model_dump(mode="json", exclude_none=True)],
        )
        return quote, order, labor, part

    def test_propagate_appends_lines(self, service):
        """Test mano de obra como service y repuesto como product."""
        quote, order, labor, part = self._objects()

        added = service.propagate_order_entries(order, quote)

        assert added == 2
        assert len(quote.items) == 3
        labor_line, part_line = quote.items[1], quote.items[2]
        assert labor_line["id"] == str(labor.id)
        assert labor_line["kind"] == "service"
        assert labor_line["quantity"] == 1
        assert labor_line["note"] == "Agregado desde la orden OT-2025-0001"
        assert labor_line["order_code"] == "OT-2025-0001"
        assert part_line["kind"] == "product"
        assert part_line["quantity"] == 2
        assert part_line["serial"] == "L-77"
        assert part_line["order_code"] == "OT-2025-0001"
        assert quote.total == Decimal("1300.00")

    def test_propagate_is_idempotent(self, service):
        """Test propagar de nuevo no duplica líneas."""
        quote, order, _, _ = self._objects()
        service.propagate_order_entries(order, quote)

        assert service.propagate_order_entries(order, quote) == 0
        assert len(quote.items) == 3
        assert quote.total == Decimal("1300.00")

    def test_removed_entries_stay_in_quote(self, service):
        """Test quitar una entrada de la orden no la quita del presupuesto."""
        quote, order, _, _ = self._objects()
        service.propagate_order_entries(order, quote)

        order.labor_entries = []
        service.propagate_order_entries(order, quote)

        assert len(quote.items) == 3

    @pytest.mark.asyncio
    async def test_sync_with_other_quote_fails(self, db, service, accepted_order, quote_data):
        """Test la orden debe provenir del presupuesto indicado."""
        other = await service.create(db, quote_data)

        with pytest.raises(BusinessValidationError):
            await service.sync(db, accepted_order.id, other.id)

    @pytest.mark.asyncio
    async def test_sync_after_propagation_adds_nothing(self, db, service, accepted_order):
        """Test sync tras agregar mano de obra no duplica líneas."""
        from taller.services.work_order_service import WorkOrderService

        await WorkOrderService(service).add_labor(
            db, accepted_order.id, LaborEntry(description="Diagnóstico", price=Decimal("100"))
        )

        quote = await service.sync(db, accepted_order.id, accepted_order.quote_id)

        assert len(quote.items) == 2
        assert quote.total == Decimal("1243.45")


class TestQuoteServiceList:
    """Test del listado paginado."""

    @pytest.mark.asyncio
    async def test_cursor_pagination(self, db, service, quote_data):
        """Test páginas de 2 del más reciente al más antiguo."""
        created = [await service.create(db, quote_data) for _ in range(3)]

        page, cursor, cursor_id = await service.get_all(db, limit=2)
        assert [q.code for q in page] == [created[2].code, created[1].code]
        assert cursor == page[-1].created_at
        assert cursor_id == page[-1].id

        page, cursor, cursor_id = await service.get_all(
            db, limit=2, start_after=cursor, start_after_id=cursor_id
        )
        assert [q.code for q in page] == [created[0].code]
        assert cursor is None
        assert cursor_id is None

    @pytest.mark.asyncio
    async def test_cursor_with_equal_created_at(self, db, service, quote_data):
        """Test presupuestos creados en el mismo instante no se pierden entre páginas."""
        created = [await service.create(db, quote_data) for _ in range(3)]
        same_instant = datetime.datetime(2025, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)
        await db.execute(update(Quote).values(created_at=same_instant))
        await db.commit()

        first, cursor, cursor_id = await service.get_all(db, limit=2)
        second, _, _ = await service.get_all(
            db, limit=2, start_after=cursor, start_after_id=cursor_id
        )

        ids = [q.id for q in first + second]
        assert ids == sorted((q.id for q in created), reverse=True)

    @pytest.mark.asyncio
    async def test_status_filter(self, db, service, quote_data):
        quote = await service.create(db, quote_data)
        await service.create(db, quote_data)
        await service.mark_sent(db, quote.id)

        page, _, _ = await service.get_all(db, status_filter=QuoteStatus.SENT)

        assert [q.id for q in page] == [quote.id]
