"""
Service Layer de Presupuestos
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Ciclo de vida del presupuesto (draft → sent → accepted | rejected | voided)
y su conversión única e idempotente en orden de trabajo.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.config import settings
from taller.core.exceptions import (
    AlreadyAcceptedError,
    BusinessValidationError,
    NotFoundError,
    TransactionConflictError,
)
from taller.core.transactions import run_in_transaction
from taller.models import Quote, WorkOrder
from taller.models.mixins import utcnow
from taller.schemas.common import to_document, to_documents
from taller.schemas.quote import (
    VALID_TRANSITIONS,
    Acceptance,
    AcceptOutcome,
    ItemKind,
    LineItem,
    QuoteAcceptResult,
    QuoteCreate,
    QuoteStatus,
    QuoteUpdate,
)
from taller.schemas.work_order import Device, LaborEntry, PartEntry, PayStatus, WorkStatus
from taller.services.calculator import line_total, round_money, totals
from taller.services.sequence_service import SequenceKind, allocate_code

# Logger del módulo
logger = logging.getLogger(__name__)

VOID_NOTE_PREFIX = "[Anulado]"


def load_items(raw: Optional[list[dict[str, Any]]]) -> list[LineItem]:
    """Convierte las líneas guardadas en JSON a LineItem."""
    return [LineItem.model_validate(item) for item in raw or []]


def quoted_items(items: list[LineItem]) -> list[LineItem]:
    """Líneas cargadas a mano: `order_code` solo lo asigna la sincronización."""
    return [item.model_copy(update={"order_code": None}) for item in items]


def price_items(
    items: list[LineItem],
    rebate_pct: Optional[Decimal],
    surcharge_pct: Optional[Decimal],
    tax_pct: Optional[Decimal],
) -> Decimal:
    """Total redondeado de un conjunto de líneas con sus ajustes globales."""
    return round_money(totals(items, rebate_pct, surcharge_pct, tax_pct).total)


def device_from_items(items: list[LineItem]) -> Device:
    """Datos del equipo tomados de la primera línea (marca, modelo, serie)."""
    if not items:
        return Device()
    first = items[0]
    return Device(brand=first.brand, model=first.model, serial=first.serial)


class QuoteService:
    """
    Service de presupuestos.

    Cada operación de escritura corre en su propia transacción
    (run_in_transaction) y devuelve el presupuesto ya confirmado.
    """

    # ------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------

    async def get_by_id(
        self,
        db: AsyncSession,
        quote_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Quote:
        """
        Recupera un presupuesto por ID.

        Args:
            db: Sesión de base de datos
            quote_id: UUID del presupuesto
            for_update: Bloquea la fila hasta el fin de la transacción

        Returns:
            Quote: El presupuesto encontrado

        Raises:
            NotFoundError: Si el presupuesto no existe
        """
        query = select(Quote).where(Quote.id == quote_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(query)
        quote = result.scalar_one_or_none()

        if not quote:
            logger.warning("Presupuesto no encontrado: %s", quote_id)
            raise NotFoundError(f"Presupuesto con ID {quote_id} no encontrado")

        logger.debug("Recuperado presupuesto %s", quote.code)
        return quote

    async def get_all(
        self,
        db: AsyncSession,
        limit: Optional[int] = None,
        start_after: Optional[datetime.datetime] = None,
        start_after_id: Optional[uuid.UUID] = None,
        status_filter: Optional[QuoteStatus] = None,
    ) -> tuple[list[Quote], Optional[datetime.datetime], Optional[uuid.UUID]]:
        """
        Lista presupuestos del más reciente al más antiguo.

        Args:
            db: Sesión de base de datos
            limit: Tamaño de página (default: settings.quotes_page_size)
            start_after: created_at del último elemento de la página anterior
            start_after_id: id del último elemento de la página anterior;
                desempata los presupuestos creados en el mismo instante
            status_filter: Filtro opcional por estado

        Returns:
            Tuple de (presupuestos, created_at e id del cursor siguiente o None)
        """
        limit = limit or settings.quotes_page_size

        query = select(Quote)
        if status_filter:
            query = query.where(Quote.status == status_filter.value)
        if start_after and start_after_id:
            query = query.where(
                or_(
                    Quote.created_at < start_after,
                    and_(Quote.created_at == start_after, Quote.id < start_after_id),
                )
            )
        elif start_after:
            query = query.where(Quote.created_at < start_after)
        query = query.order_by(Quote.created_at.desc(), Quote.id.desc()).limit(limit)

        result = await db.execute(query)
        quotes = list(result.scalars().all())

        logger.debug("Recuperados %d presupuestos", len(quotes))
        if len(quotes) < limit:
            return quotes, None, None
        return quotes, quotes[-1].created_at, quotes[-1].id

    # ------------------------------------------------------------
    # Alta y edición
    # ------------------------------------------------------------

    async def create(self, db: AsyncSession, data: QuoteCreate) -> Quote:
        """
        Crea un presupuesto en estado draft con código P-AAAA-NNNN.

        Raises:
            BusinessValidationError: Cliente vacío o sin líneas
        """
        client_name = (data.client_name or "").strip()
        if not client_name:
            raise BusinessValidationError("El nombre del cliente es obligatorio")
        if not data.items:
            raise BusinessValidationError("El presupuesto debe tener al menos un ítem")

        items = quoted_items(data.items)
        total = price_items(items, data.rebate_pct, data.surcharge_pct, data.tax_pct)
        year = datetime.date.today().year

        async def work() -> Quote:
            sequence, code = await allocate_code(db, SequenceKind.QUOTE, year)
            quote = Quote(
                code=code,
                year=year,
                sequence=sequence,
                client_name=client_name,
                quote_date=data.quote_date,
                currency=data.currency or settings.default_currency,
                items=to_documents(items),
                rebate_pct=data.rebate_pct,
                surcharge_pct=data.surcharge_pct,
                tax_pct=data.tax_pct,
                notes=data.notes,
                total=total,
                status=QuoteStatus.DRAFT.value,
            )
            db.add(quote)
            await db.flush()
            return quote

        quote = await run_in_transaction(db, work, operation="quote.create")
        logger.info("Creado presupuesto %s (%s)", quote.code, quote.id)
        return quote

    async def update(self, db: AsyncSession, quote_id: uuid.UUID, data: QuoteUpdate) -> Quote:
        """
        Actualiza los datos de un presupuesto no aceptado y recalcula el total.

        Raises:
            NotFoundError: Si el presupuesto no existe
            BusinessValidationError: Si está aceptado, o el patch deja el
                cliente vacío o sin líneas
        """
        update_data = data.model_dump(exclude_unset=True)

        async def work() -> Quote:
            quote = await self.get_by_id(db, quote_id, for_update=True)
            if quote.status == QuoteStatus.ACCEPTED.value:
                raise BusinessValidationError(
                    "No se puede modificar un presupuesto aceptado"
                )

            if "client_name" in update_data:
                client_name = (update_data["client_name"] or "").strip()
                if not client_name:
                    raise BusinessValidationError("El nombre del cliente es obligatorio")
                quote.client_name = client_name

            if "items" in update_data:
                if not data.items:
                    raise BusinessValidationError("El presupuesto debe tener al menos un ítem")
                quote.items = to_documents(quoted_items(data.items))

            for field in ("quote_date", "rebate_pct", "surcharge_pct", "tax_pct", "notes"):
                if field in update_data:
                    setattr(quote, field, update_data[field])
            if update_data.get("currency"):
                quote.currency = update_data["currency"]

            quote.total = price_items(
                load_items(quote.items), quote.rebate_pct, quote.surcharge_pct, quote.tax_pct
            )
            await db.flush()
            return quote

        quote = await run_in_transaction(db, work, operation="quote.update")
        logger.info("Actualizado presupuesto %s", quote.code)
        return quote

    # ------------------------------------------------------------
    # Transiciones de estado
    # ------------------------------------------------------------

    def _check_transition(self, quote: Quote, new_status: QuoteStatus) -> None:
        """
        Verifica que la transición sea válida.

        Raises:
            BusinessValidationError: Si la transición no está permitida
        """
        current = QuoteStatus(quote.status)
        if new_status not in VALID_TRANSITIONS[current]:
            logger.warning(
                "Transición inválida del presupuesto %s: %s -> %s",
                quote.code,
                current.value,
                new_status.value,
            )
            raise BusinessValidationError(
                f"Transición no permitida: {current.value} -> {new_status.value}"
            )

    async def _transition(
        self,
        db: AsyncSession,
        quote_id: uuid.UUID,
        new_status: QuoteStatus,
        reason: Optional[str] = None,
    ) -> Quote:
        async def work() -> Quote:
            quote = await self.get_by_id(db, quote_id, for_update=True)
            if quote.status == new_status.value:
                return quote
            self._check_transition(quote, new_status)
            quote.status = new_status.value
            if new_status == QuoteStatus.VOIDED and reason and reason.strip():
                note = f"{VOID_NOTE_PREFIX}: {reason.strip()}"
                quote.notes = f"{quote.notes}\n{note}" if quote.notes else note
            await db.flush()
            return quote

        quote = await run_in_transaction(db, work, operation=f"quote.{new_status.value}")
        logger.info("Presupuesto %s en estado %s", quote.code, quote.status)
        return quote

    async def mark_sent(self, db: AsyncSession, quote_id: uuid.UUID) -> Quote:
        """Marca el presupuesto como enviado al cliente (draft → sent)."""
        return await self._transition(db, quote_id, QuoteStatus.SENT)

    async def reject(
        self, db: AsyncSession, quote_id: uuid.UUID, reason: Optional[str] = None
    ) -> Quote:
        """Registra el rechazo del cliente (draft | sent → rejected)."""
        if reason:
            logger.info("Rechazo del presupuesto %s: %s", quote_id, reason)
        return await self._transition(db, quote_id, QuoteStatus.REJECTED)

    async def void(
        self, db: AsyncSession, quote_id: uuid.UUID, reason: Optional[str] = None
    ) -> Quote:
        """
        Anula un presupuesto no aceptado.

        Con motivo, agrega "[Anulado]: <motivo>" en una línea nueva de las
        notas. Anular un presupuesto ya anulado no lo modifica.

        Raises:
            NotFoundError: Si el presupuesto no existe
            BusinessValidationError: Si el presupuesto está aceptado
        """
        return await self._transition(db, quote_id, QuoteStatus.VOIDED, reason)

    # ------------------------------------------------------------
    # Aceptación y conversión en orden
    # ------------------------------------------------------------

    async def _flag_accepted(
        self,
        db: AsyncSession,
        quote: Quote,
        order: WorkOrder,
        acceptance: Acceptance,
    ) -> None:
        """
        Marca el presupuesto como aceptado solo si todavía no tiene orden.

        Raises:
            TransactionConflictError: Otra transacción aceptó el presupuesto
        """
        result = await db.execute(
            update(Quote)
            .where(Quote.id == quote.id, Quote.order_id.is_(None))
            .values(
                status=QuoteStatus.ACCEPTED.value,
                acceptance=to_document(acceptance),
                order_id=order.id,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise TransactionConflictError(extra={"quote_id": str(quote.id)})
        await db.refresh(quote)

    async def accept(
        self,
        db: AsyncSession,
        quote_id: uuid.UUID,
        acceptance: Acceptance,
    ) -> QuoteAcceptResult:
        """
        Acepta un presupuesto y crea su orden de trabajo, una sola vez.

        En una única transacción: bloquea el presupuesto, asigna el código
        OT-AAAA-NNNN, crea la orden con la copia congelada de las líneas y
        marca el presupuesto como aceptado. Si el presupuesto ya tenía orden
        no se crea nada y se devuelve la existente.

        Returns:
            QuoteAcceptResult: outcome accepted | already_accepted y el id de la orden

        Raises:
            NotFoundError: Si el presupuesto no existe
            BusinessValidationError: Si el presupuesto está rechazado o anulado
        """
        year = datetime.date.today().year

        async def work() -> QuoteAcceptResult:
            quote = await self.get_by_id(db, quote_id, for_update=True)

            if quote.order_id is not None:
                raise AlreadyAcceptedError(quote.order_id)
            self._check_transition(quote, QuoteStatus.ACCEPTED)

            items = load_items(quote.items)
            sequence, code = await allocate_code(db, SequenceKind.ORDER, year)
            estimated = round_money(quote.total or Decimal("0"))

            order = WorkOrder(
                id=uuid.uuid4(),
                code=code,
                year=year,
                sequence=sequence,
                quote_id=quote.id,
                client_name=quote.client_name,
                device=to_document(device_from_items(items)),
                labor_entries=[],
                part_entries=[],
                quote_items_snapshot=to_documents(items),
                currency=quote.currency or settings.default_currency,
                status=WorkStatus.PENDING.value,
                pay_status=PayStatus.UNPAID.value,
                estimated_total=estimated,
                final_total=estimated,
                paid_to_date=Decimal("0.00"),
                balance=estimated,
            )
            db.add(order)
            await db.flush()

            await self._flag_accepted(db, quote, order, acceptance)
            return QuoteAcceptResult(outcome=AcceptOutcome.ACCEPTED, order_id=order.id)

        try:
            result = await run_in_transaction(db, work, operation="quote.accept")
        except AlreadyAcceptedError as exc:
            logger.info("Presupuesto %s ya aceptado (orden %s)", quote_id, exc.order_id)
            return QuoteAcceptResult(outcome=AcceptOutcome.ALREADY_ACCEPTED, order_id=exc.order_id)

        logger.info("Presupuesto %s aceptado, orden %s creada", quote_id, result.order_id)
        return result

    # ------------------------------------------------------------
    # Sincronización con la orden
    # ------------------------------------------------------------

    def propagate_order_entries(self, order: WorkOrder, quote: Quote) -> int:
        """
        Agrega al presupuesto las entradas de la orden que aún no tiene.

        La mano de obra se agrega como línea `service` (cantidad 1, precio de
        la entrada) y los repuestos como `product`. Las líneas existentes no
        se modifican ni se quitan. Las líneas agregadas llevan `order_code` y
        suman al total sin descuento, recargo ni impuesto. No hace flush ni commit.

        Returns:
            int: Cantidad de líneas agregadas
        """
        items = load_items(quote.items)
        known_ids = {item.id for item in items}
        appended: list[LineItem] = []

        for entry in (LaborEntry.model_validate(e) for e in order.labor_entries or []):
            if entry.id in known_ids:
                continue
            appended.append(
                LineItem(
                    id=entry.id,
                    kind=ItemKind.SERVICE,
                    description=entry.description,
                    quantity=1,
                    unit_price=entry.price or Decimal("0"),
                    note=f"Agregado desde la orden {order.code}",
                    order_code=order.code,
                )
            )

        for entry in (PartEntry.model_validate(e) for e in order.part_entries or []):
            if entry.id in known_ids:
                continue
            appended.append(
                LineItem(
                    id=entry.id,
                    kind=ItemKind.PRODUCT,
                    description=entry.description,
                    quantity=entry.quantity,
                    unit_price=entry.price or Decimal("0"),
                    serial=entry.batch_serial,
                    note=f"Agregado desde la orden {order.code}",
                    order_code=order.code,
                )
            )

        if not appended:
            return 0

        extra = sum((line_total(item) for item in appended), Decimal("0"))
        quote.items = list(quote.items or []) + to_documents(appended)
        quote.total = round_money(Decimal(quote.total or 0) + extra)

        logger.info(
            "Agregadas %d líneas de la orden %s al presupuesto %s",
            len(appended),
            order.code,
            quote.code,
        )
        return len(appended)

    async def sync(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        quote_id: uuid.UUID,
    ) -> Quote:
        """
        Incorpora al presupuesto las entradas agregadas en la orden.

        Raises:
            NotFoundError: Si la orden o el presupuesto no existen
            BusinessValidationError: Si la orden no proviene del presupuesto
        """

        async def work() -> Quote:
            result = await db.execute(
                select(WorkOrder)
                .where(WorkOrder.id == order_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            order = result.scalar_one_or_none()
            if not order:
                logger.warning("Orden de trabajo no encontrada: %s", order_id)
                raise NotFoundError(f"Orden de trabajo con ID {order_id} no encontrada")
            if order.quote_id != quote_id:
                raise BusinessValidationError("La orden no proviene de este presupuesto")

            quote = await self.get_by_id(db, quote_id, for_update=True)
            self.propagate_order_entries(order, quote)
            await db.flush()
            return quote

        return await run_in_transaction(db, work, operation="quote.sync")


quote_service = QuoteService()
