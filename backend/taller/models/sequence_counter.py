"""
Modelo SQLAlchemy de los contadores de secuencia
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)
"""


from __future__ import annotations
from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from taller.models import Base
from taller.models.mixins import utcnow


class SequenceCounter(Base):
    """
    Último número asignado por tipo de documento y año.

    Una fila por clave (`quote-2025`, `order-2025`). Se incrementa con un
    único upsert dentro de la transacción que consume el número.
    """

    __tablename__ = "sequence_counters"

    key: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        doc="Tipo de documento y año, ej. quote-2025",
    )

    value: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Último número asignado",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        doc="Fecha/hora de la última asignación",
    )

    def __repr__(self) -> str:
        return f"<SequenceCounter(key={self.key}, value={self.value})>"
