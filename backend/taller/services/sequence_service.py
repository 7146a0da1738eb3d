"""
Numeración anual de documentos
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Asigna números correlativos por tipo de documento y año (P-2025-0007,
OT-2025-0007). El incremento es un único upsert que se ejecuta dentro de
la transacción del documento que consume el número: la fila del contador
queda bloqueada hasta el commit y un rollback devuelve el número, sin
duplicados ni huecos.
"""

import logging
from enum import Enum

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from taller.models import SequenceCounter
from taller.models.mixins import utcnow

logger = logging.getLogger(__name__)


class SequenceKind(str, Enum):
    """Tipos de documento numerados."""
    QUOTE = "quote"
    ORDER = "order"


CODE_PREFIXES: dict[SequenceKind, str] = {
    SequenceKind.QUOTE: "P",
    SequenceKind.ORDER: "OT",
}

# Dialectos con INSERT ... ON CONFLICT DO UPDATE ... RETURNING
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def counter_key(kind: SequenceKind, year: int) -> str:
    """Clave del contador, ej. quote-2025."""
    return f"{kind.value}-{year}"


def format_code(kind: SequenceKind, year: int, sequence: int) -> str:
    """
    Código legible del documento.

    El número se completa con ceros hasta 4 dígitos; a partir de 10000 se
    imprime completo.
    """
    return f"{CODE_PREFIXES[kind]}-{year:04d}-{sequence:04d}"


async def next_sequence(db: AsyncSession, kind: SequenceKind, year: int) -> int:
    """
    Incrementa y devuelve el contador de (kind, year).

    Debe llamarse dentro de la transacción que crea el documento. El primer
    número de cada año es 1.

    Args:
        db: Sesión de base de datos (con transacción en curso)
        kind: Tipo de documento
        year: Año

    Returns:
        int: Número asignado
    """
    key = counter_key(kind, year)
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)

    if insert is not None:
        stmt = insert(SequenceCounter).values(key=key, value=1, updated_at=utcnow())
        stmt = stmt.on_conflict_do_update(
            index_elements=[SequenceCounter.key],
            set_={"value": SequenceCounter.value + 1, "updated_at": utcnow()},
        ).returning(SequenceCounter.value)
        result = await db.execute(stmt)
        value = result.scalar_one()
    else:
        # Otros dialectos: bloqueo de la fila y actualización
        result = await db.execute(
            select(SequenceCounter)
            .where(SequenceCounter.key == key)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        counter = result.scalar_one_or_none()
        if counter is None:
            counter = SequenceCounter(key=key, value=1)
            db.add(counter)
        else:
            counter.value = counter.value + 1
        await db.flush()
        value = counter.value

    logger.debug("Asignado número %d para %s", value, key)
    return value


async def allocate_code(db: AsyncSession, kind: SequenceKind, year: int) -> tuple[int, str]:
    """Asigna el próximo número y devuelve (número, código)."""
    sequence = await next_sequence(db, kind, year)
    return sequence, format_code(kind, year, sequence)
