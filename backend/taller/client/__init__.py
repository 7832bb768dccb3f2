"""
Cliente de la API del taller
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)
"""

from taller.client.workshop_client import PhotoFile, WorkshopClient

__all__ = ["PhotoFile", "WorkshopClient"]
