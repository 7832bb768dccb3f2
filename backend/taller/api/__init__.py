"""
API Routes
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Agregación de los routers versionados.
"""

from taller.api.v1 import api_v1_router

__all__ = ["api_v1_router"]
