"""
Service del tablero principal
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)
"""

import logging
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taller.models import Quote, WorkOrder
from taller.schemas.dashboard import DashboardStats
from taller.schemas.quote import QuoteStatus
from taller.schemas.work_order import WorkStatus
from taller.services.calculator import round_money

logger = logging.getLogger(__name__)

OPEN_STATUSES = (WorkStatus.PENDING.value, WorkStatus.IN_PROGRESS.value)


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


async def get_stats(db: AsyncSession) -> DashboardStats:
    """
    Calcula los indicadores del tablero con dos consultas agregadas.

    Returns:
        DashboardStats: Totales de presupuestos, órdenes y cobranzas
    """
    quote_row = (
        await db.execute(
            select(
                func.count(Quote.id),
                _count_where(Quote.status == QuoteStatus.ACCEPTED.value),
            )
        )
    ).one()

    order_row = (
        await db.execute(
            select(
                func.count(WorkOrder.id),
                _count_where(WorkOrder.status.in_(OPEN_STATUSES)),
                _count_where(WorkOrder.status == WorkStatus.COMPLETED.value),
                func.coalesce(func.sum(WorkOrder.paid_to_date), 0),
                func.coalesce(func.sum(WorkOrder.balance), 0),
            )
        )
    ).one()

    stats = DashboardStats(
        quotes_total=quote_row[0],
        quotes_accepted=quote_row[1],
        orders_total=order_row[0],
        orders_open=order_row[1],
        orders_completed=order_row[2],
        total_paid=round_money(Decimal(str(order_row[3]))),
        total_balance=round_money(Decimal(str(order_row[4]))),
    )
    logger.debug("Estadísticas del tablero: %s", stats)
    return stats
