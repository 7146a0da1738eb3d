"""
Service Layer de Pagos
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Registro y eliminación de pagos. Cada operación actualiza paid_to_date,
balance y pay_status de la orden en la misma transacción que el pago.
"""

import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.exceptions import BusinessValidationError, NotFoundError
from taller.core.transactions import run_in_transaction
from taller.models import Payment
from taller.schemas.payment import PaymentCreate
from taller.services.calculator import ZERO, round_money
from taller.services.work_order_service import (
    WorkOrderService,
    apply_payments,
    work_order_service,
)

# Logger del módulo
logger = logging.getLogger(__name__)


class PaymentService:
    """
    Service de pagos.

    Registrar y eliminar son operaciones inversas: registrar X y luego
    eliminar ese pago deja la orden como estaba.
    """

    def __init__(self, orders: Optional[WorkOrderService] = None) -> None:
        self.orders = orders or work_order_service

    async def register_payment(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        data: PaymentCreate,
    ) -> Payment:
        """
        Registra un pago contra una orden.

        Args:
            db: Sesión de base de datos
            order_id: UUID de la orden
            data: Datos del pago

        Returns:
            Payment: El pago creado

        Raises:
            BusinessValidationError: Si el importe no es mayor a cero
            NotFoundError: Si la orden no existe
        """
        try:
            amount = round_money(data.amount)
        except (InvalidOperation, TypeError) as e:
            raise BusinessValidationError("El importe del pago no es válido") from e
        if amount <= ZERO:
            raise BusinessValidationError("El importe del pago debe ser mayor a cero")

        async def work() -> Payment:
            order = await self.orders.get_by_id(db, order_id, for_update=True)

            payment = Payment(
                order_id=order.id,
                quote_id=data.quote_id or order.quote_id,
                amount=amount,
                currency=data.currency or order.currency,
                method=data.method.value,
                installments=data.installments,
                surcharge_pct=data.surcharge_pct,
                external_reference=data.external_reference,
                receipt_type=data.receipt_type.value if data.receipt_type else None,
                receipt_number=data.receipt_number,
            )
            db.add(payment)

            apply_payments(order, Decimal(order.paid_to_date or 0) + amount)
            await db.flush()
            return payment

        payment = await run_in_transaction(db, work, operation="payment.register")
        logger.info("Registrado pago %s de %s en la orden %s", payment.id, amount, order_id)
        return payment

    async def list_payments(self, db: AsyncSession, order_id: uuid.UUID) -> list[Payment]:
        """
        Pagos de una orden en orden de registro.

        Raises:
            NotFoundError: Si la orden no existe
        """
        await self.orders.get_by_id(db, order_id)
        result = await db.execute(
            select(Payment)
            .where(Payment.order_id == order_id)
            .order_by(Payment.created_at.asc(), Payment.id.asc())
        )
        payments = list(result.scalars().all())
        logger.debug("Recuperados %d pagos de la orden %s", len(payments), order_id)
        return payments

    async def delete_payment(
        self,
        db: AsyncSession,
        payment_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> None:
        """
        Elimina un pago y revierte su efecto en la orden.

        Raises:
            NotFoundError: Si la orden o el pago no existen, o el pago
                pertenece a otra orden
        """

        async def work() -> Decimal:
            order = await self.orders.get_by_id(db, order_id, for_update=True)

            result = await db.execute(
                select(Payment)
                .where(Payment.id == payment_id, Payment.order_id == order_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            payment = result.scalar_one_or_none()
            if not payment:
                logger.warning("Pago %s no encontrado en la orden %s", payment_id, order_id)
                raise NotFoundError(f"Pago con ID {payment_id} no encontrado")

            amount = Decimal(payment.amount)
            apply_payments(order, Decimal(order.paid_to_date or 0) - amount)
            await db.delete(payment)
            await db.flush()
            return amount

        amount = await run_in_transaction(db, work, operation="payment.delete")
        logger.info("Eliminado pago %s de %s en la orden %s", payment_id, amount, order_id)
