"""
Service Layer de la entidad Vehicle
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Lógica de negocio del registro de vehículos.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.exceptions import DuplicateError, NotFoundError
from taller.models import Customer, Vehicle, WorkOrder
from taller.schemas.vehicle import VehicleCreate, VehicleUpdate

# Logger de este módulo
logger = logging.getLogger(__name__)


class VehicleService:
    """
    Service del registro de vehículos.

    Métodos asíncronos sobre la base de datos, sin dependencias de FastAPI.
    Los métodos hacen flush; el commit lo hace el router.
    """

    async def get_all(
        self,
        db: AsyncSession,
        customer_id: Optional[uuid.UUID] = None,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
    ) -> tuple[list[Vehicle], int]:
        """
        Lista paginada de vehículos ordenada por placa.

        Args:
            db: sesión de base de datos
            customer_id: filtra por propietario (opcional)
            page: página (desde 1)
            limit: elementos por página
            search: busca en placa, marca, modelo y VIN

        Returns:
            Tupla (vehículos, total)
        """
        filter_conditions = []

        if customer_id is not None:
            filter_conditions.append(Vehicle.customer_id == customer_id)

        if search:
            search_term = f"%{search.strip()}%"
            filter_conditions.append(
                Vehicle.plate.ilike(search_term)
                | Vehicle.brand.ilike(search_term)
                | Vehicle.model.ilike(search_term)
                | Vehicle.vin.ilike(search_term)
            )

        query = select(Vehicle).where(*filter_conditions).order_by(Vehicle.plate.asc())
        query = query.offset((page - 1) * limit).limit(limit)
        result = await db.execute(query)
        vehicles = list(result.scalars().all())

        count_query = select(func.count()).select_from(Vehicle).where(*filter_conditions)
        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperados %d vehículos de %d", len(vehicles), total)
        return vehicles, total

    async def get_by_id(self, db: AsyncSession, vehicle_id: uuid.UUID) -> Vehicle:
        """
        Raises:
            NotFoundError: si el vehículo no existe
        """
        result = await db.execute(
            select(Vehicle)
            .where(Vehicle.id == vehicle_id)
            .execution_options(populate_existing=True)
        )
        vehicle = result.scalar_one_or_none()

        if vehicle is None:
            logger.warning("Vehículo no encontrado: %s", vehicle_id)
            raise NotFoundError(f"Vehículo con ID {vehicle_id} no encontrado")

        return vehicle

    async def get_customer(self, db: AsyncSession, customer_id: uuid.UUID) -> Customer:
        """
        Raises:
            NotFoundError: si el cliente no existe o está inactivo
        """
        result = await db.execute(
            select(Customer).where(Customer.id == customer_id, Customer.is_active == True)
        )
        customer = result.scalar_one_or_none()
        if customer is None:
            logger.warning("Cliente no encontrado: %s", customer_id)
            raise NotFoundError(f"Cliente con ID {customer_id} no encontrado")
        return customer

    async def get_history(
        self,
        db: AsyncSession,
        vehicle_id: uuid.UUID,
    ) -> tuple[Vehicle, list[WorkOrder]]:
        """
        Vehículo y sus órdenes de trabajo, de la más reciente a la más antigua.

        Cada orden llega con líneas, técnico y remisión cargados.
        """
        vehicle = await self.get_by_id(db, vehicle_id)

        result = await db.execute(
            select(WorkOrder)
            .where(WorkOrder.vehicle_id == vehicle_id)
            .order_by(WorkOrder.received_at.desc())
        )
        history = list(result.scalars().all())

        logger.debug("Historial del vehículo %s: %d órdenes", vehicle.plate, len(history))
        return vehicle, history

    async def _check_unique(
        self,
        db: AsyncSession,
        plate: Optional[str],
        vin: Optional[str],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Verifica placa y VIN antes del INSERT/UPDATE."""
        for column, value, message in (
            (Vehicle.plate, plate, "La placa ya está registrada"),
            (Vehicle.vin, vin, "El VIN ya está registrado"),
        ):
            if not value:
                continue
            query = select(Vehicle.id).where(column == value)
            if exclude_id is not None:
                query = query.where(Vehicle.id != exclude_id)
            if (await db.execute(query)).first() is not None:
                logger.warning("Vehículo duplicado: %s=%s", column.key, value)
                raise DuplicateError(message, extra={"field": column.key})

    async def _flush_vehicle(self, db: AsyncSession, vehicle: Vehicle) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            error_msg = str(e.orig).lower()

            if "plate" in error_msg:
                logger.warning("Placa duplicada: %s", e.orig)
                raise DuplicateError("La placa ya está registrada", extra={"field": "plate"})

            if "vin" in error_msg:
                logger.warning("VIN duplicado: %s", e.orig)
                raise DuplicateError("El VIN ya está registrado", extra={"field": "vin"})

            logger.error("Error de base de datos guardando vehículo: %s", e.orig)
            raise

    async def create(self, db: AsyncSession, vehicle_data: VehicleCreate) -> Vehicle:
        """
        Crea un vehículo.

        Raises:
            NotFoundError: si el propietario no existe
            DuplicateError: si la placa o el VIN ya están registrados
        """
        if vehicle_data.customer_id is not None:
            await self.get_customer(db, vehicle_data.customer_id)

        await self._check_unique(db, vehicle_data.plate, vehicle_data.vin)

        vehicle = Vehicle(**vehicle_data.model_dump())
        db.add(vehicle)
        await self._flush_vehicle(db, vehicle)

        logger.info("Vehículo creado: %s - %s", vehicle.id, vehicle.plate)
        return await self.get_by_id(db, vehicle.id)

    async def update(
        self,
        db: AsyncSession,
        vehicle_id: uuid.UUID,
        vehicle_data: VehicleUpdate,
    ) -> Vehicle:
        """
        Actualiza un vehículo.

        El kilometraje solo se actualiza si el valor enviado es mayor.

        Raises:
            NotFoundError: si el vehículo o el nuevo propietario no existen
            DuplicateError: si la placa o el VIN ya están en uso
        """
        vehicle = await self.get_by_id(db, vehicle_id)
        update_data = vehicle_data.model_dump(exclude_unset=True)

        new_customer_id = update_data.get("customer_id")
        if new_customer_id is not None and new_customer_id != vehicle.customer_id:
            await self.get_customer(db, new_customer_id)

        # La placa es obligatoria: un null explícito se ignora
        if "plate" in update_data and update_data["plate"] is None:
            update_data.pop("plate")

        await self._check_unique(
            db,
            update_data.get("plate"),
            update_data.get("vin"),
            exclude_id=vehicle.id,
        )

        mileage = update_data.pop("current_mileage", None)
        for field, value in update_data.items():
            setattr(vehicle, field, value)
        vehicle.register_mileage(mileage)

        await self._flush_vehicle(db, vehicle)

        logger.info("Vehículo actualizado: %s", vehicle.id)
        return await self.get_by_id(db, vehicle.id)


# Instancia global del service
vehicle_service = VehicleService()
