"""
Mixin SQLAlchemy para los modelos
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Mixin reutilizables con campos comunes a los modelos.
"""

import datetime
import uuid

from sqlalchemy import JSON, DateTime, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func


def utcnow() -> datetime.datetime:
    """Fecha/hora actual en UTC."""
    return datetime.datetime.now(datetime.timezone.utc)


class TimestampMixin:
    """
    Timestamps de creación y última modificación.

    created_at se asigna en Python (resolución de microsegundos) para que
    el orden por fecha de creación sea estable en los listados paginados.
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
        doc="Fecha/hora de creación del registro",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        doc="Fecha/hora de la última modificación",
    )


class UUIDMixin:
    """
    Clave primaria UUID generada en Python.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Actualiza updated_at de los objetos nuevos y modificados antes de cada flush.
    """
    now = utcnow()

    for obj in session.dirty:
        if hasattr(obj, "updated_at"):
            if session.is_modified(obj, include_collections=False):
                obj.updated_at = now

    for obj in session.new:
        if hasattr(obj, "updated_at"):
            obj.updated_at = now


# Documentos embebidos (líneas, entradas, datos del equipo): JSONB en
# PostgreSQL, JSON genérico en el resto de los dialectos.
JSONDocument = JSON().with_variant(JSONB(), "postgresql")
