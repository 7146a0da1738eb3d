"""
Modelo SQLAlchemy de Órdenes de Trabajo
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Contiene:
- WorkOrder: Orden de trabajo creada al aceptar un presupuesto
"""


from __future__ import annotations
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from taller.models import Base
from taller.models.mixins import JSONDocument, TimestampMixin, UUIDMixin


# Los estados se definen en taller.schemas.work_order.WorkStatus / PayStatus


class WorkOrder(Base, UUIDMixin, TimestampMixin):
    """
    Orden de trabajo del taller.

    Se crea una sola vez por presupuesto (quote_id único). Conserva una copia
    congelada de las líneas del presupuesto al momento de la aceptación y
    lleva el saldo de pagos.

    Attributes:
        id: UUID primary key
        code: Código legible OT-AAAA-NNNN (único)
        quote_id: Presupuesto de origen
        client_name: Nombre del cliente (copiado del presupuesto)
        device: Equipo recibido (tipo, marca, modelo, serie, accesorios)
        diagnosis: Diagnóstico técnico
        labor_entries: Mano de obra registrada (JSON)
        part_entries: Repuestos utilizados (JSON)
        quote_items_snapshot: Líneas del presupuesto al aceptar (no se modifica)
        currency: Moneda
        status: pending | in_progress | awaiting_parts | paused | completed | delivered
        pay_status: unpaid | partial | paid | refunded
        estimated_total: Total del presupuesto al aceptar
        final_total: estimated_total + mano de obra + repuestos
        paid_to_date: Suma de pagos registrados
        balance: Saldo pendiente, nunca negativo
        started_at / completed_at / delivered_at: Marcas de avance
        delivery_notes: Notas de entrega
        warranty_days: Días de garantía del trabajo
        notes: Observaciones internas
    """

    __tablename__ = "work_orders"

    # ------------------------------------------------------------
    # Identificación y origen
    # ------------------------------------------------------------
    code: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        unique=True,
        doc="Código legible OT-AAAA-NNNN",
    )

    year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Año de creación",
    )

    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Número de secuencia dentro del año",
    )

    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quotes.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
        doc="Presupuesto de origen (a lo sumo una orden por presupuesto)",
    )

    # ------------------------------------------------------------
    # Cliente y equipo
    # ------------------------------------------------------------
    client_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Nombre del cliente",
    )

    device: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
        doc="Equipo recibido",
    )

    diagnosis: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Diagnóstico técnico",
    )

    # ------------------------------------------------------------
    # Trabajo realizado
    # ------------------------------------------------------------
    labor_entries: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
        doc="Mano de obra",
    )

    part_entries: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
        doc="Repuestos",
    )

    quote_items_snapshot: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
        doc="Líneas del presupuesto congeladas al aceptar",
    )

    # ------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        doc="Estado del trabajo",
    )

    pay_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="unpaid",
        doc="Estado de pago (derivado de paid_to_date y balance)",
    )

    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Primera entrada en in_progress",
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Fecha/hora de finalización",
    )

    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Fecha/hora de entrega al cliente",
    )

    delivery_notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Notas de entrega",
    )

    warranty_days: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Días de garantía del trabajo",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Observaciones internas",
    )

    # ------------------------------------------------------------
    # Importes
    # ------------------------------------------------------------
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="ARS",
        doc="Moneda ISO 4217",
    )

    estimated_total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Total del presupuesto al aceptar",
    )

    final_total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Total final de la orden",
    )

    paid_to_date: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Pagos acumulados",
    )

    balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Saldo pendiente",
    )

    # ------------------------------------------------------------
    # Índices y restricciones
    # ------------------------------------------------------------
    __table_args__ = (
        UniqueConstraint("year", "sequence", name="uq_work_orders_year_sequence"),
        Index("ix_work_orders_status", "status"),
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'awaiting_parts', 'paused', 'completed', 'delivered')",
            name="ck_work_orders_status",
        ),
        CheckConstraint(
            "pay_status IN ('unpaid', 'partial', 'paid', 'refunded')",
            name="ck_work_orders_pay_status",
        ),
        CheckConstraint("balance >= 0", name="ck_work_orders_balance"),
        CheckConstraint("paid_to_date >= 0", name="ck_work_orders_paid"),
    )

    def __repr__(self) -> str:
        return f"<WorkOrder(code={self.code}, status={self.status}, balance={self.balance})>"
