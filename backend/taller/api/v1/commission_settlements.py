"""
Router FastAPI de la Liquidación de Comisiones
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Las liquidaciones no se modifican ni se eliminan una vez creadas.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.database import get_db
from taller.core.deps import get_current_user_id
from taller.schemas.commission import (
    CommissionPreview,
    CommissionSettlementCreate,
    CommissionSettlementRead,
)
from taller.schemas.common import ApiListResponse, ApiResponse
from taller.schemas.technician import TechnicianWithPending
from taller.services.commission_service import commission_service

# Logger de este módulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/workshop/commission-settlements",
    tags=["Liquidación de Comisiones"],
)


@router.get(
    "/technicians",
    name="comisiones_tecnicos",
    summary="Técnicos con órdenes pendientes de liquidar",
    response_model=ApiResponse[list[TechnicianWithPending]],
    status_code=status.HTTP_200_OK,
)
async def get_technicians(
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[list[TechnicianWithPending]]:
    technicians = await commission_service.list_technicians(db)
    return ApiResponse[list[TechnicianWithPending]](data=technicians)


@router.get(
    "/preview",
    name="comisiones_vista_previa",
    summary="Vista previa de la liquidación",
    description="Órdenes liquidables del técnico en el período; no modifica datos.",
    response_model=ApiResponse[CommissionPreview],
    status_code=status.HTTP_200_OK,
)
async def preview_settlement(
    technician_id: uuid.UUID = Query(..., description="UUID del técnico"),
    date_from: datetime.date = Query(..., description="Fecha inicial"),
    date_to: datetime.date = Query(..., description="Fecha final"),
    commission_percentage: Optional[Decimal] = Query(None, description="Porcentaje (0-100)"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[CommissionPreview]:
    preview = await commission_service.preview(
        db, technician_id, date_from, date_to, commission_percentage
    )
    return ApiResponse[CommissionPreview](data=preview)


@router.post(
    "",
    name="comisiones_crea",
    summary="Crea una liquidación",
    description="Recalcula las órdenes liquidables, crea la liquidación y marca las órdenes.",
    response_model=ApiResponse[CommissionSettlementRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_settlement(
    data: CommissionSettlementCreate,
    db: AsyncSession = Depends(get_db),
    user_id: Optional[uuid.UUID] = Depends(get_current_user_id),
) -> ApiResponse[CommissionSettlementRead]:
    settlement = await commission_service.create(db, data, created_by=user_id)
    await db.commit()
    return ApiResponse[CommissionSettlementRead](
        message=f"Liquidación {settlement.settlement_number} creada",
        data=CommissionSettlementRead.model_validate(settlement),
    )


@router.get(
    "",
    name="comisiones_lista",
    summary="Lista de liquidaciones",
    response_model=ApiListResponse[CommissionSettlementRead],
    status_code=status.HTTP_200_OK,
)
async def get_settlements(
    technician_id: Optional[uuid.UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> ApiListResponse[CommissionSettlementRead]:
    settlements, total = await commission_service.get_all(
        db, technician_id=technician_id, page=page, limit=limit
    )
    return ApiListResponse[CommissionSettlementRead](
        data=[CommissionSettlementRead.model_validate(s) for s in settlements],
        total=total,
        page=page,
        limit=limit,
    )


@router.get(
    "/{settlement_id}",
    name="comisiones_detalle",
    summary="Detalle de la liquidación",
    response_model=ApiResponse[CommissionSettlementRead],
    status_code=status.HTTP_200_OK,
)
async def get_settlement(
    settlement_id: uuid.UUID = Path(..., description="UUID de la liquidación"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[CommissionSettlementRead]:
    settlement = await commission_service.get_by_id(db, settlement_id)
    return ApiResponse[CommissionSettlementRead](
        data=CommissionSettlementRead.model_validate(settlement)
    )
