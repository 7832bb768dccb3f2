"""
Modelos de Base de Datos SQLAlchemy
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Import centralizado de todos los modelos (create_all / Alembic).
"""

# SQLAlchemy 2.0 Base declarativa
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Clase base de todos los modelos SQLAlchemy."""
    pass


from taller.models.customer import Customer
from taller.models.technician import Technician
from taller.models.warehouse import Warehouse
from taller.models.product import Product
from taller.models.vehicle import Vehicle
from taller.models.work_order import WorkOrder, WorkOrderItem
from taller.models.sale import Sale, SaleItem
from taller.models.commission import CommissionSettlement, CommissionSettlementItem

__all__ = [
    "Base",
    "Customer",
    "Technician",
    "Warehouse",
    "Product",
    "Vehicle",
    "WorkOrder",
    "WorkOrderItem",
    "Sale",
    "SaleItem",
    "CommissionSettlement",
    "CommissionSettlementItem",
]
