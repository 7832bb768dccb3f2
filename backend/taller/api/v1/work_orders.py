"""
Router FastAPI de las Órdenes de Trabajo
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Endpoints de la orden de trabajo: CRUD, cambio de estado, checklist,
líneas, fotos, generación de la remisión y reportes.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Path, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.database import get_db
from taller.schemas.checklist import Checklist, ChecklistComponent, checklist_catalog
from taller.schemas.common import ApiListResponse, ApiResponse
from taller.schemas.report import TechnicianProductivity, WorkshopReport
from taller.schemas.sale import SaleRead
from taller.schemas.work_order import (
    PhotoPhase,
    SaleGenerationResult,
    WorkOrderCreate,
    WorkOrderItemCreate,
    WorkOrderRead,
    WorkOrderStatus,
    WorkOrderStatusUpdate,
    WorkOrderUpdate,
)
from taller.services.checklist_service import checklist_service
from taller.services.photo_service import PhotoUpload, photo_service
from taller.services.sale_service import sale_service
from taller.services.work_order_service import work_order_service
from taller.services.workshop_report_service import workshop_report_service

# Logger de este módulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/workshop/work-orders",
    tags=["Órdenes de Trabajo"],
)


def _read(work_order) -> WorkOrderRead:
    return WorkOrderRead.model_validate(work_order)


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

# IMPORTANTE: el orden de las rutas es intencional.
# /report, /productivity y /checklist-components van ANTES de /{work_order_id}
# para que FastAPI no intente interpretarlas como UUID.

@router.get(
    "",
    name="ordenes_lista",
    summary="Lista de órdenes de trabajo",
    description="Lista paginada con filtros por estado, técnico, vehículo, cliente, "
                "búsqueda y rango de fecha de ingreso.",
    response_model=ApiListResponse[WorkOrderRead],
    status_code=status.HTTP_200_OK,
)
async def get_work_orders(
    page: int = Query(1, ge=1, description="Número de página"),
    limit: int = Query(20, ge=1, le=100, description="Elementos por página"),
    status_filter: Optional[WorkOrderStatus] = Query(None, alias="status", description="Estado"),
    technician_id: Optional[uuid.UUID] = Query(None),
    vehicle_id: Optional[uuid.UUID] = Query(None),
    customer_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None, description="Número de orden, placa o problema"),
    date_from: Optional[datetime.date] = Query(None, description="Ingreso desde"),
    date_to: Optional[datetime.date] = Query(None, description="Ingreso hasta"),
    db: AsyncSession = Depends(get_db),
) -> ApiListResponse[WorkOrderRead]:
    work_orders, total = await work_order_service.get_all(
        db=db,
        status_filter=status_filter,
        technician_id=technician_id,
        vehicle_id=vehicle_id,
        customer_id=customer_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return ApiListResponse[WorkOrderRead](
        data=[_read(wo) for wo in work_orders],
        total=total,
        page=page,
        limit=limit,
    )


@router.post(
    "",
    name="orden_crea",
    summary="Crea una orden de trabajo",
    description="Crea la orden en estado 'recibido'. El vehículo se indica por ID o se "
                "registra en línea; se aceptan checklist y líneas iniciales.",
    response_model=ApiResponse[WorkOrderRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_work_order(
    data: WorkOrderCreate,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[WorkOrderRead]:
    work_order = await work_order_service.create(db, data)
    await db.commit()
    return ApiResponse[WorkOrderRead](
        message=f"Orden {work_order.order_number} creada",
        data=_read(work_order),
    )


@router.get(
    "/report",
    name="ordenes_reporte",
    summary="Reporte de órdenes por período",
    response_model=ApiResponse[WorkshopReport],
    status_code=status.HTTP_200_OK,
)
async def get_report(
    date_from: datetime.date = Query(..., description="Fecha inicial (ingreso)"),
    date_to: datetime.date = Query(..., description="Fecha final (ingreso)"),
    technician_id: Optional[uuid.UUID] = Query(None),
    status_filter: Optional[WorkOrderStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[WorkshopReport]:
    report = await workshop_report_service.report(
        db, date_from, date_to, technician_id=technician_id, status_filter=status_filter
    )
    return ApiResponse[WorkshopReport](data=report)


@router.get(
    "/productivity",
    name="ordenes_productividad",
    summary="Productividad por técnico",
    response_model=ApiResponse[list[TechnicianProductivity]],
    status_code=status.HTTP_200_OK,
)
async def get_productivity(
    date_from: datetime.date = Query(...),
    date_to: datetime.date = Query(...),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[list[TechnicianProductivity]]:
    rows = await workshop_report_service.productivity(db, date_from, date_to)
    return ApiResponse[list[TechnicianProductivity]](data=rows)


@router.get(
    "/checklist-components",
    name="checklist_componentes",
    summary="Catálogo de componentes del checklist",
    response_model=ApiResponse[list[ChecklistComponent]],
    status_code=status.HTTP_200_OK,
)
async def get_checklist_components() -> ApiResponse[list[ChecklistComponent]]:
    return ApiResponse[list[ChecklistComponent]](data=checklist_catalog())


@router.get(
    "/{work_order_id}",
    name="orden_detalle",
    summary="Detalle de la orden",
    response_model=ApiResponse[WorkOrderRead],
    status_code=status.HTTP_200_OK,
)
async def get_work_order(
    work_order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[WorkOrderRead]:
    work_order = await work_order_service.get_by_id(db, work_order_id)
    return ApiResponse[WorkOrderRead](data=_read(work_order))


@router.put(
    "/{work_order_id}",
    name="orden_actualiza",
    summary="Actualiza la orden",
    description="Actualización parcial de una orden no terminal. "
                "NOTA: para cambiar el estado usar PATCH /status.",
    response_model=ApiResponse[WorkOrderRead],
    status_code=status.HTTP_200_OK,
)
async def update_work_order(
    data: WorkOrderUpdate,
    work_order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[WorkOrderRead]:
    work_order = await work_order_service.update(db, work_order_id, data)
    await db.commit()
    return ApiResponse[WorkOrderRead](message="Orden actualizada", data=_read(work_order))


@router.patch(
    "/{work_order_id}/status",
    name="orden_cambia_estado",
    summary="Cambia el estado de la orden",
    description="""
    Transiciones permitidas:
    - recibido → en_proceso, en_espera
    - en_proceso → en_espera, listo
    - en_espera → en_proceso, listo
    - listo → entregado
    - cualquier estado no terminal → cancelado
    """,
    response_model=ApiResponse[WorkOrderRead],
    status_code=status.HTTP_200_OK,
)
async def change_work_order_status(
    data: WorkOrderStatusUpdate,
    work_order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[WorkOrderRead]:
    work_order = await work_order_service.change_status(
        db, work_order_id, data.status, mileage_out=data.mileage_out
    )
    await db.commit()
    return ApiResponse[WorkOrderRead](
        message=f"Estado actualizado a '{work_order.status}'",
        data=_read(work_order),
    )


@router.put(
    "/{work_order_id}/checklist",
    name="orden_checklist",
    summary="Guarda el checklist de ingreso",
    description="Reemplaza el checklist completo; solo con la orden en 'recibido'.",
    response_model=ApiResponse[WorkOrderRead],
    status_code=status.HTTP_200_OK,
)
async def save_checklist(
    checklist: Checklist,
    work_order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[WorkOrderRead]:
    work_order = await checklist_service.save(db, work_order_id, checklist)
    await db.commit()
    return ApiResponse[WorkOrderRead](message="Checklist guardado", data=_read(work_order))


# -------------------------------------------------------------------
# Líneas
# -------------------------------------------------------------------

@router.post(
    "/{work_order_id}/items",
    name="orden_agrega_linea",
    summary="Agrega una línea a la orden",
    response_model=ApiResponse[WorkOrderRead],
    status_code=status.HTTP_201_CREATED,
)
async def add_work_order_item(
    item_data: WorkOrderItemCreate,
    work_order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[WorkOrderRead]:
    work_order = await work_order_service.add_item(db, work_order_id, item_data)
    await db.commit()
    return ApiResponse[WorkOrderRead](message="Línea agregada", data=_read(work_order))


@router.delete(
    "/{work_order_id}/items/{item_id}",
    name="orden_elimina_linea",
    summary="Elimina una línea de la orden",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_work_order_item(
    work_order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    item_id: uuid.UUID = Path(..., description="UUID de la línea"),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await work_order_service.remove_item(db, work_order_id, item_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -------------------------------------------------------------------
# Remisión
# -------------------------------------------------------------------

@router.post(
    "/{work_order_id}/generate-sale",
    name="orden_genera_venta",
    summary="Genera la remisión de la orden",
    description="Solo órdenes 'listo' o 'entregado' con líneas y sin remisión previa. "
                "La orden queda entregada y cerrada.",
    response_model=ApiResponse[SaleGenerationResult],
    status_code=status.HTTP_201_CREATED,
)
async def generate_sale(
    work_order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[SaleGenerationResult]:
    sale, work_order = await sale_service.generate_from_work_order(db, work_order_id)
    await db.commit()
    return ApiResponse[SaleGenerationResult](
        message=f"Remisión {sale.sale_number} generada",
        data=SaleGenerationResult(
            sale=SaleRead.model_validate(sale),
            work_order=_read(work_order),
        ),
    )


# -------------------------------------------------------------------
# Fotos
# -------------------------------------------------------------------

@router.post(
    "/{work_order_id}/photos/{phase}",
    name="orden_sube_fotos",
    summary="Sube fotos de ingreso o salida",
    response_model=ApiResponse[WorkOrderRead],
    status_code=status.HTTP_201_CREATED,
)
async def upload_photos(
    work_order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    phase: PhotoPhase = Path(..., description="Fase: in | out"),
    photos: list[UploadFile] = File(..., description="Imágenes"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[WorkOrderRead]:
    uploads = [
        PhotoUpload(
            filename=photo.filename or "",
            content_type=photo.content_type or "",
            content=await photo.read(),
        )
        for photo in photos
    ]
    work_order = await photo_service.upload_photos(db, work_order_id, phase, uploads)
    await photo_service.commit(db)
    return ApiResponse[WorkOrderRead](
        message=f"{len(uploads)} fotos agregadas",
        data=_read(work_order),
    )


@router.delete(
    "/{work_order_id}/photos/{phase}/{index}",
    name="orden_elimina_foto",
    summary="Elimina una foto",
    response_model=ApiResponse[WorkOrderRead],
    status_code=status.HTTP_200_OK,
)
async def delete_photo(
    work_order_id: uuid.UUID = Path(..., description="UUID de la orden"),
    phase: PhotoPhase = Path(...),
    index: int = Path(..., ge=0, description="Posición de la foto"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[WorkOrderRead]:
    work_order = await photo_service.delete_photo(db, work_order_id, phase, index)
    await photo_service.commit(db)
    return ApiResponse[WorkOrderRead](message="Foto eliminada", data=_read(work_order))
