"""
API v1 Routes
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Router de la versión 1 de la API.
"""

from fastapi import APIRouter

from taller.api.v1 import dashboard, quotes, work_orders

# Router agregado de v1
api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(quotes.router)
api_v1_router.include_router(work_orders.router)
api_v1_router.include_router(dashboard.router)

__all__ = ["api_v1_router"]
