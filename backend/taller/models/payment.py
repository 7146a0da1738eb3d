"""
Modelo SQLAlchemy de Pagos
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)
"""


from __future__ import annotations
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from taller.models import Base
from taller.models.mixins import TimestampMixin, UUIDMixin


class Payment(Base, UUIDMixin, TimestampMixin):
    """
    Pago registrado contra una orden de trabajo.

    Los pagos no se editan: se registran o se eliminan, y cada operación
    actualiza paid_to_date/balance de la orden en la misma transacción.
    """

    __tablename__ = "payments"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("work_orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="Orden a la que se imputa el pago",
    )

    quote_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        nullable=True,
        doc="Presupuesto de origen de la orden",
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Importe del pago",
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        doc="Moneda ISO 4217",
    )

    method: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="cash",
        doc="Medio de pago: cash, transfer, debit, credit, wallet, other",
    )

    installments: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Cantidad de cuotas (tarjeta de crédito)",
    )

    surcharge_pct: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        doc="Recargo financiero aplicado (%)",
    )

    external_reference: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Referencia externa (nro. de operación, transferencia)",
    )

    receipt_type: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Comprobante emitido: receipt, invoice_a, invoice_b, invoice_c",
    )

    receipt_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Número de comprobante",
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "method IN ('cash', 'transfer', 'debit', 'credit', 'wallet', 'other')",
            name="ck_payments_method",
        ),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, order_id={self.order_id}, amount={self.amount})>"
