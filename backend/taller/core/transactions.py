"""
Transacciones con reintento
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Ejecuta un bloque de trabajo como una única transacción: commit si termina
bien, rollback ante cualquier error. Los conflictos de concurrencia se
reintentan con backoff exponencial; la base no alcanzable se reporta sin
reintentar.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from taller.core.config import settings
from taller.core.exceptions import StoreUnavailableError, TransactionConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE PostgreSQL: serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}
UNIQUE_VIOLATION_SQLSTATE = "23505"


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_conflict(exc: BaseException) -> bool:
    """
    Indica si el error proviene de una escritura concurrente.

    Incluye los fallos de serialización/deadlock de PostgreSQL, las
    violaciones de unicidad (dos inserciones simultáneas), la base SQLite
    bloqueada y los compare-and-set que no encontraron la fila esperada.
    """
    if isinstance(exc, (TransactionConflictError, StaleDataError)):
        return True
    if isinstance(exc, IntegrityError):
        message = str(exc.orig).lower()
        return _sqlstate(exc) == UNIQUE_VIOLATION_SQLSTATE or "unique constraint" in message
    if isinstance(exc, DBAPIError):
        if _sqlstate(exc) in RETRYABLE_SQLSTATES:
            return True
        return "database is locked" in str(exc.orig).lower()
    return False


def is_unavailable(exc: BaseException) -> bool:
    """Indica si el error se debe a que la base no es alcanzable."""
    if isinstance(exc, DBAPIError):
        return bool(exc.connection_invalidated) or isinstance(exc, InterfaceError)
    return isinstance(exc, (OSError, ConnectionError))


async def run_in_transaction(
    db: AsyncSession,
    work: Callable[[], Awaitable[T]],
    *,
    operation: str,
    max_attempts: Optional[int] = None,
    backoff_seconds: Optional[float] = None,
) -> T:
    """
    Ejecuta `work` dentro de una transacción y hace commit.

    `work` se invoca de nuevo en cada intento, por lo que debe releer
    todo lo que necesita desde la sesión.

    Args:
        db: Sesión de base de datos
        work: Corrutina sin argumentos con el cuerpo de la transacción
        operation: Nombre de la operación (para logs y errores)
        max_attempts: Intentos máximos (default: settings.transaction_max_attempts)
        backoff_seconds: Espera inicial entre intentos

    Returns:
        El valor devuelto por `work`

    Raises:
        TransactionConflictError: Si el conflicto persiste tras los reintentos
        StoreUnavailableError: Si la base no es alcanzable
    """
    attempts = max_attempts or settings.transaction_max_attempts
    delay = (
        settings.transaction_retry_backoff_seconds
        if backoff_seconds is None
        else backoff_seconds
    )

    attempt = 1
    while True:
        try:
            result = await work()
            await db.commit()
            return result
        except Exception as exc:
            await db.rollback()

            if is_unavailable(exc):
                logger.error("Base de datos no disponible durante %s: %s", operation, exc)
                raise StoreUnavailableError() from exc

            if not is_conflict(exc):
                raise

            if attempt >= attempts:
                logger.error(
                    "Conflicto persistente en %s tras %d intentos", operation, attempt
                )
                raise TransactionConflictError(extra={"operation": operation}) from exc

            logger.warning(
                "Conflicto concurrente en %s (intento %d/%d), reintentando",
                operation,
                attempt,
                attempts,
            )
            await asyncio.sleep(delay * (2 ** (attempt - 1)))
            attempt += 1
