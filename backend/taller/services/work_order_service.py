"""
Service Layer de Órdenes de Trabajo
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Estado de la orden (trabajo, pago, saldo) y sus únicas vías de cambio:
entradas de mano de obra y repuestos, cambio de estado y guardado conjunto.
Las entradas nuevas se incorporan al presupuesto de origen en la misma
transacción.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.config import settings
from taller.core.exceptions import NotFoundError
from taller.core.transactions import run_in_transaction
from taller.models import WorkOrder
from taller.models.mixins import utcnow
from taller.schemas.common import to_document, to_documents
from taller.schemas.work_order import (
    LaborEntry,
    PartEntry,
    PayStatus,
    WorkOrderSave,
    WorkStatus,
)
from taller.services.calculator import ZERO, round_money
from taller.services.quote_service import QuoteService, quote_service

# Logger del módulo
logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Cálculo de saldos
# -------------------------------------------------------------------

def derive_pay_status(paid_to_date: Decimal, balance: Decimal) -> PayStatus:
    """
    Estado de pago según lo pagado y el saldo.

    unpaid si no hay pagos, paid si el saldo es cero, partial en otro caso.
    """
    if paid_to_date <= ZERO:
        return PayStatus.UNPAID
    if balance <= ZERO:
        return PayStatus.PAID
    return PayStatus.PARTIAL


def apply_payments(order: WorkOrder, paid_to_date: Decimal) -> None:
    """
    Asigna lo pagado y recalcula saldo y estado de pago.

    El saldo nunca es negativo: un pago en exceso deja saldo cero.
    """
    paid = max(ZERO, round_money(paid_to_date))
    final_total = Decimal(order.final_total or 0)
    order.paid_to_date = paid
    order.balance = max(ZERO, round_money(final_total - paid))
    order.pay_status = derive_pay_status(paid, order.balance).value


def recompute_final_total(order: WorkOrder) -> WorkOrder:
    """
    Recalcula el total final, el saldo y el estado de pago de la orden.

    final_total = estimated_total + Σ mano de obra + Σ repuesto × cantidad

    No accede a la base.
    """
    labor = sum(
        (LaborEntry.model_validate(e).price or ZERO for e in order.labor_entries or []),
        ZERO,
    )
    parts = ZERO
    for raw in order.part_entries or []:
        part = PartEntry.model_validate(raw)
        parts += (part.price or ZERO) * part.quantity

    estimated = Decimal(order.estimated_total or 0)
    order.final_total = round_money(estimated + labor + parts)
    apply_payments(order, Decimal(order.paid_to_date or 0))
    return order


def apply_status(order: WorkOrder, new_status: WorkStatus) -> None:
    """
    Cambia el estado y registra las marcas de tiempo.

    started_at se registra solo la primera vez que la orden pasa a
    in_progress; completed_at y delivered_at en cada entrada al estado.
    """
    if order.status == new_status.value:
        return
    now = utcnow()
    if new_status == WorkStatus.IN_PROGRESS and order.started_at is None:
        order.started_at = now
    elif new_status == WorkStatus.COMPLETED:
        order.completed_at = now
    elif new_status == WorkStatus.DELIVERED:
        order.delivered_at = now
    order.status = new_status.value


class WorkOrderService:
    """
    Service de órdenes de trabajo.

    Las órdenes se crean únicamente desde QuoteService.accept.
    """

    def __init__(self, quotes: Optional[QuoteService] = None) -> None:
        self.quotes = quotes or quote_service

    # ------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------

    async def get_by_id(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> WorkOrder:
        """
        Recupera una orden de trabajo por ID.

        Args:
            db: Sesión de base de datos
            order_id: UUID de la orden
            for_update: Bloquea la fila hasta el fin de la transacción

        Returns:
            WorkOrder: La orden encontrada

        Raises:
            NotFoundError: Si la orden no existe
        """
        query = select(WorkOrder).where(WorkOrder.id == order_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(query)
        order = result.scalar_one_or_none()

        if not order:
            logger.warning("Orden de trabajo no encontrada: %s", order_id)
            raise NotFoundError(f"Orden de trabajo con ID {order_id} no encontrada")

        logger.debug("Recuperada orden %s", order.code)
        return order

    async def get_all(
        self,
        db: AsyncSession,
        limit: Optional[int] = None,
        start_after: Optional[datetime.datetime] = None,
        start_after_id: Optional[uuid.UUID] = None,
        status_filter: Optional[WorkStatus] = None,
    ) -> tuple[list[WorkOrder], Optional[datetime.datetime], Optional[uuid.UUID]]:
        """
        Lista órdenes de la más reciente a la más antigua.

        Returns:
            Tuple de (órdenes, created_at e id del cursor siguiente o None)
        """
        limit = limit or settings.orders_page_size

        query = select(WorkOrder)
        if status_filter:
            query = query.where(WorkOrder.status == status_filter.value)
        if start_after and start_after_id:
            query = query.where(
                or_(
                    WorkOrder.created_at < start_after,
                    and_(WorkOrder.created_at == start_after, WorkOrder.id < start_after_id),
                )
            )
        elif start_after:
            query = query.where(WorkOrder.created_at < start_after)
        query = query.order_by(WorkOrder.created_at.desc(), WorkOrder.id.desc()).limit(limit)

        result = await db.execute(query)
        orders = list(result.scalars().all())

        logger.debug("Recuperadas %d órdenes de trabajo", len(orders))
        if len(orders) < limit:
            return orders, None, None
        return orders, orders[-1].created_at, orders[-1].id

    # ------------------------------------------------------------
    # Helpers de escritura
    # ------------------------------------------------------------

    async def _propagate(self, db: AsyncSession, order: WorkOrder) -> None:
        """Incorpora al presupuesto de origen las entradas nuevas de la orden."""
        if order.quote_id is None:
            return
        quote = await self.quotes.get_by_id(db, order.quote_id, for_update=True)
        self.quotes.propagate_order_entries(order, quote)

    async def _mutate(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        change,
        *,
        operation: str,
        propagate: bool = False,
    ) -> WorkOrder:
        """
        Aplica `change(order)` sobre la orden bloqueada, recalcula y confirma.
        """

        async def work() -> WorkOrder:
            order = await self.get_by_id(db, order_id, for_update=True)
            change(order)
            recompute_final_total(order)
            if propagate:
                await self._propagate(db, order)
            await db.flush()
            return order

        return await run_in_transaction(db, work, operation=operation)

    # ------------------------------------------------------------
    # Mano de obra y repuestos
    # ------------------------------------------------------------

    async def add_labor(
        self, db: AsyncSession, order_id: uuid.UUID, entry: LaborEntry
    ) -> WorkOrder:
        """
        Agrega mano de obra a la orden y la incorpora al presupuesto.

        Raises:
            NotFoundError: Si la orden no existe
        """

        def change(order: WorkOrder) -> None:
            order.labor_entries = list(order.labor_entries or []) + [to_document(entry)]

        order = await self._mutate(
            db, order_id, change, operation="work_order.add_labor", propagate=True
        )
        logger.info("Mano de obra agregada a la orden %s: %s", order.code, entry.description)
        return order

    async def add_part(
        self, db: AsyncSession, order_id: uuid.UUID, entry: PartEntry
    ) -> WorkOrder:
        """
        Agrega un repuesto a la orden y lo incorpora al presupuesto.

        Raises:
            NotFoundError: Si la orden no existe
        """

        def change(order: WorkOrder) -> None:
            order.part_entries = list(order.part_entries or []) + [to_document(entry)]

        order = await self._mutate(
            db, order_id, change, operation="work_order.add_part", propagate=True
        )
        logger.info("Repuesto agregado a la orden %s: %s", order.code, entry.description)
        return order

    async def remove_labor(
        self, db: AsyncSession, order_id: uuid.UUID, entry_id: uuid.UUID
    ) -> WorkOrder:
        """
        Quita una entrada de mano de obra. El presupuesto no se modifica.

        Raises:
            NotFoundError: Si la orden o la entrada no existen
        """

        def change(order: WorkOrder) -> None:
            entries = [e for e in order.labor_entries or [] if e.get("id") != str(entry_id)]
            if len(entries) == len(order.labor_entries or []):
                raise NotFoundError(f"Mano de obra con ID {entry_id} no encontrada")
            order.labor_entries = entries

        order = await self._mutate(db, order_id, change, operation="work_order.remove_labor")
        logger.info("Mano de obra %s quitada de la orden %s", entry_id, order.code)
        return order

    async def remove_part(
        self, db: AsyncSession, order_id: uuid.UUID, entry_id: uuid.UUID
    ) -> WorkOrder:
        """
        Quita un repuesto. El presupuesto no se modifica.

        Raises:
            NotFoundError: Si la orden o la entrada no existen
        """

        def change(order: WorkOrder) -> None:
            entries = [e for e in order.part_entries or [] if e.get("id") != str(entry_id)]
            if len(entries) == len(order.part_entries or []):
                raise NotFoundError(f"Repuesto con ID {entry_id} no encontrado")
            order.part_entries = entries

        order = await self._mutate(db, order_id, change, operation="work_order.remove_part")
        logger.info("Repuesto %s quitado de la orden %s", entry_id, order.code)
        return order

    # ------------------------------------------------------------
    # Estado y guardado
    # ------------------------------------------------------------

    async def set_status(
        self, db: AsyncSession, order_id: uuid.UUID, new_status: WorkStatus
    ) -> WorkOrder:
        """
        Cambia el estado del trabajo. Cualquier estado puede pasar a cualquier otro.

        Raises:
            NotFoundError: Si la orden no existe
        """

        async def work() -> WorkOrder:
            order = await self.get_by_id(db, order_id, for_update=True)
            apply_status(order, new_status)
            await db.flush()
            return order

        order = await run_in_transaction(db, work, operation="work_order.set_status")
        logger.info("Orden %s en estado %s", order.code, order.status)
        return order

    async def save(
        self, db: AsyncSession, order_id: uuid.UUID, data: WorkOrderSave
    ) -> WorkOrder:
        """
        Guarda los datos de la orden en una sola transacción.

        Aplica diagnóstico, notas, garantía, equipo, entradas y estado,
        recalcula los totales e incorpora al presupuesto las entradas nuevas.

        Raises:
            NotFoundError: Si la orden no existe
        """
        update_data = data.model_dump(exclude_unset=True)

        def change(order: WorkOrder) -> None:
            for field in ("diagnosis", "delivery_notes", "warranty_days", "notes"):
                if field in update_data:
                    setattr(order, field, update_data[field])
            if "device" in update_data:
                order.device = to_document(data.device) if data.device else {}
            if "labor_entries" in update_data:
                order.labor_entries = to_documents(data.labor_entries or [])
            if "part_entries" in update_data:
                order.part_entries = to_documents(data.part_entries or [])
            if data.status is not None:
                apply_status(order, data.status)

        order = await self._mutate(
            db, order_id, change, operation="work_order.save", propagate=True
        )
        logger.info("Guardada orden %s", order.code)
        return order


work_order_service = WorkOrderService()
