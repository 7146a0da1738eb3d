"""
Modelos de base de datos SQLAlchemy
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Import centralizado de todos los modelos (create_all / reset_db.py).

Modelos:
- Quote: Presupuestos
- WorkOrder: Órdenes de trabajo
- Payment: Pagos imputados a una orden
- SequenceCounter: Numeración anual de documentos
"""

# Base declarativa SQLAlchemy 2.0
# Definida antes de importar los modelos que la usan
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base de todos los modelos SQLAlchemy."""
    pass


from taller.models.quote import Quote
from taller.models.work_order import WorkOrder
from taller.models.payment import Payment
from taller.models.sequence_counter import SequenceCounter

__all__ = [
    "Base",
    "Quote",
    "WorkOrder",
    "Payment",
    "SequenceCounter",
]
