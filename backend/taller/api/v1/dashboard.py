"""
Router FastAPI del tablero
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.database import get_db
from taller.schemas.dashboard import DashboardStats
from taller.services import dashboard_service

router = APIRouter(
    prefix="/dashboard",
    tags=["Tablero"],
)


@router.get(
    "/",
    name="tablero",
    summary="Indicadores del tablero",
    response_model=DashboardStats,
    status_code=status.HTTP_200_OK,
)
async def get_dashboard(db: AsyncSession = Depends(get_db)) -> DashboardStats:
    """Presupuestos, órdenes y cobranzas en números."""
    return await dashboard_service.get_stats(db)
