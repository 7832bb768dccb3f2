"""
Router FastAPI de la entidad Vehicle
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Endpoints del registro de vehículos y de su historial de órdenes.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.database import get_db
from taller.schemas.common import ApiListResponse, ApiResponse
from taller.schemas.vehicle import VehicleCreate, VehicleRead, VehicleUpdate
from taller.schemas.work_order import VehicleHistory, WorkOrderRead
from taller.services.vehicle_service import vehicle_service

# Logger de este módulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/workshop/vehicles",
    tags=["Vehículos"],
)


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "",
    name="vehiculos_lista",
    summary="Lista de vehículos",
    description="Lista paginada de vehículos con filtro por propietario y búsqueda.",
    response_model=ApiListResponse[VehicleRead],
    status_code=status.HTTP_200_OK,
)
async def get_vehicles(
    customer_id: Optional[uuid.UUID] = Query(None, description="Filtro por propietario"),
    page: int = Query(1, ge=1, description="Número de página"),
    limit: int = Query(20, ge=1, le=100, description="Elementos por página"),
    search: Optional[str] = Query(None, description="Búsqueda en placa, marca, modelo y VIN"),
    db: AsyncSession = Depends(get_db),
) -> ApiListResponse[VehicleRead]:
    vehicles, total = await vehicle_service.get_all(
        db=db,
        customer_id=customer_id,
        page=page,
        limit=limit,
        search=search,
    )
    return ApiListResponse[VehicleRead](
        data=[VehicleRead.model_validate(v) for v in vehicles],
        total=total,
        page=page,
        limit=limit,
    )


@router.post(
    "",
    name="vehiculo_crea",
    summary="Registra un vehículo",
    response_model=ApiResponse[VehicleRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_vehicle(
    data: VehicleCreate,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[VehicleRead]:
    """
    Registra un vehículo.

    La placa se normaliza (mayúsculas, sin espacios ni guiones) y
    debe ser única, igual que el VIN.

    Raises:
        DuplicateError: placa o VIN ya registrados
        NotFoundError: propietario inexistente
    """
    vehicle = await vehicle_service.create(db, data)
    await db.commit()
    return ApiResponse[VehicleRead](
        message="Vehículo registrado",
        data=VehicleRead.model_validate(vehicle),
    )


@router.get(
    "/{vehicle_id}",
    name="vehiculo_detalle",
    summary="Detalle del vehículo",
    response_model=ApiResponse[VehicleRead],
    status_code=status.HTTP_200_OK,
)
async def get_vehicle(
    vehicle_id: uuid.UUID = Path(..., description="UUID del vehículo"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[VehicleRead]:
    vehicle = await vehicle_service.get_by_id(db, vehicle_id)
    return ApiResponse[VehicleRead](data=VehicleRead.model_validate(vehicle))


@router.put(
    "/{vehicle_id}",
    name="vehiculo_actualiza",
    summary="Actualiza un vehículo",
    description="Actualización parcial. El kilometraje solo aumenta.",
    response_model=ApiResponse[VehicleRead],
    status_code=status.HTTP_200_OK,
)
async def update_vehicle(
    data: VehicleUpdate,
    vehicle_id: uuid.UUID = Path(..., description="UUID del vehículo"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[VehicleRead]:
    vehicle = await vehicle_service.update(db, vehicle_id, data)
    await db.commit()
    return ApiResponse[VehicleRead](
        message="Vehículo actualizado",
        data=VehicleRead.model_validate(vehicle),
    )


@router.get(
    "/{vehicle_id}/history",
    name="vehiculo_historial",
    summary="Historial del vehículo",
    description="Órdenes de trabajo del vehículo, de la más reciente a la más antigua.",
    response_model=ApiResponse[VehicleHistory],
    status_code=status.HTTP_200_OK,
)
async def get_vehicle_history(
    vehicle_id: uuid.UUID = Path(..., description="UUID del vehículo"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[VehicleHistory]:
    vehicle, history = await vehicle_service.get_history(db, vehicle_id)
    return ApiResponse[VehicleHistory](
        data=VehicleHistory(
            vehicle=VehicleRead.model_validate(vehicle),
            history=[WorkOrderRead.model_validate(wo) for wo in history],
        )
    )
