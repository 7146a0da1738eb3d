"""
Schemas Pydantic del tablero
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)
"""

from decimal import Decimal

from pydantic import BaseModel, Field


class DashboardStats(BaseModel):
    """
    Indicadores del tablero principal.

    Attributes:
        quotes_total: Presupuestos emitidos
        quotes_accepted: Presupuestos aceptados
        orders_total: Órdenes de trabajo
        orders_open: Órdenes pendientes o en curso
        orders_completed: Órdenes completadas
        total_paid: Suma cobrada
        total_balance: Saldo pendiente de cobro
    """
    quotes_total: int = 0
    quotes_accepted: int = 0
    orders_total: int = 0
    orders_open: int = Field(0, description="Órdenes en estado pending o in_progress")
    orders_completed: int = 0
    total_paid: Decimal = Decimal("0.00")
    total_balance: Decimal = Decimal("0.00")
