"""
Modelo SQLAlchemy de Presupuestos
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Contiene:
- Quote: Presupuesto con sus líneas embebidas y su código secuencial
"""


from __future__ import annotations
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
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


# Los estados se definen en taller.schemas.quote.QuoteStatus


class Quote(Base, UUIDMixin, TimestampMixin):
    """
    Presupuesto emitido a un cliente.

    Las líneas se guardan como lista de documentos JSON; cada línea conserva
    su propio id para que la sincronización con la orden pueda detectar qué
    entradas ya fueron incorporadas.

    Attributes:
        id: UUID primary key
        code: Código legible P-AAAA-NNNN (único)
        year: Año de emisión usado para la secuencia
        sequence: Número de secuencia dentro del año
        client_name: Nombre del cliente
        quote_date: Fecha del presupuesto
        currency: Moneda (ISO 4217)
        items: Líneas del presupuesto (JSON)
        rebate_pct: Descuento global (%)
        surcharge_pct: Recargo global (%)
        tax_pct: Impuesto (%)
        notes: Observaciones
        total: Total persistido (redondeado a 2 decimales)
        status: draft | sent | accepted | rejected | voided
        acceptance: Datos de la aceptación del cliente (JSON)
        order_id: Orden de trabajo generada al aceptar

    States:
        draft → sent → accepted
          ↓      ↓
        rejected / voided
    """

    __tablename__ = "quotes"

    # ------------------------------------------------------------
    # Identificación
    # ------------------------------------------------------------
    code: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        unique=True,
        doc="Código legible P-AAAA-NNNN",
    )

    year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Año de emisión",
    )

    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Número de secuencia dentro del año",
    )

    # ------------------------------------------------------------
    # Datos del presupuesto
    # ------------------------------------------------------------
    client_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Nombre del cliente",
    )

    quote_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        doc="Fecha del presupuesto",
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="ARS",
        doc="Moneda ISO 4217",
    )

    items: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
        doc="Líneas del presupuesto",
    )

    rebate_pct: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        doc="Descuento global sobre el subtotal (%)",
    )

    surcharge_pct: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        doc="Recargo global (%)",
    )

    tax_pct: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        doc="Impuesto (%)",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Observaciones; la anulación agrega el motivo al final",
    )

    total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Total del presupuesto",
    )

    # ------------------------------------------------------------
    # Estado y aceptación
    # ------------------------------------------------------------
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        doc="Estado del presupuesto",
    )

    acceptance: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSONDocument,
        nullable=True,
        doc="Datos de la aceptación (nombre, documento, método, fecha)",
    )

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        nullable=True,
        unique=True,
        doc="Orden de trabajo generada al aceptar",
    )

    # ------------------------------------------------------------
    # Índices y restricciones
    # ------------------------------------------------------------
    __table_args__ = (
        UniqueConstraint("year", "sequence", name="uq_quotes_year_sequence"),
        CheckConstraint(
            "status IN ('draft', 'sent', 'accepted', 'rejected', 'voided')",
            name="ck_quotes_status",
        ),
        # accepted ⇔ order_id presente
        CheckConstraint(
            "(status = 'accepted') = (order_id IS NOT NULL)",
            name="ck_quotes_order_link",
        ),
        CheckConstraint("total >= 0", name="ck_quotes_total"),
    )

    def __repr__(self) -> str:
        return f"<Quote(code={self.code}, status={self.status}, total={self.total})>"
