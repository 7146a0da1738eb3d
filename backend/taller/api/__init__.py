"""
API Routes
Proyecto: Taller IT (Presupuestos y Órdenes de Trabajo)

Agregación de los routers versionados.
"""

from taller.api.v1 import api_v1_router

__all__ = ["api_v1_router"]
