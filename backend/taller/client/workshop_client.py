"""
Cliente HTTP de la API del taller
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Cliente asíncrono para las pantallas y scripts que consumen la API.
El servidor es la autoridad: las verificaciones locales solo evitan
peticiones que con seguridad serían rechazadas, con la misma excepción
que devolvería el servidor.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Any, Optional, Sequence, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel

from taller.core.config import settings
from taller.core.exceptions import (
    BusinessValidationError,
    NetworkError,
    ReadOnlyViolationError,
    SaleAlreadyGeneratedError,
    SaleNotReadyError,
    WorkOrderClosedError,
    exception_from_payload,
)
from taller.schemas.checklist import Checklist, ChecklistComponent
from taller.schemas.commission import (
    CommissionPreview,
    CommissionSettlementCreate,
    CommissionSettlementRead,
    validate_date_range,
)
from taller.schemas.common import ApiListResponse
from taller.schemas.report import TechnicianProductivity, WorkshopReport
from taller.schemas.technician import TechnicianWithPending
from taller.schemas.vehicle import VehicleCreate, VehicleRead, VehicleUpdate
from taller.schemas.work_order import (
    BILLABLE_STATUSES,
    PhotoPhase,
    SaleGenerationResult,
    VehicleHistory,
    WorkOrderCreate,
    WorkOrderItemCreate,
    WorkOrderRead,
    WorkOrderStatus,
    WorkOrderUpdate,
    ensure_transition,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# (nombre, content_type, contenido)
PhotoFile = Tuple[str, str, bytes]


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", exclude_unset=True)


class WorkshopClient:
    """
    Cliente de /api/v1/workshop.

    Usage:
        async with WorkshopClient() as client:
            order = await client.get_work_order(order_id)
            order = await client.change_status(order, WorkOrderStatus.EN_PROCESO)
    """

    def __init__(
        self,
        http: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> None:
        headers = {"X-User-Id": str(user_id)} if user_id else None
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            base_url=base_url or settings.client_base_url,
            timeout=timeout or settings.client_timeout_seconds,
            headers=headers,
        )
        if http is not None and headers:
            self._http.headers.update(headers)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "WorkshopClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # -------------------------------------------------------------------
    # Transporte
    # -------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Ejecuta la petición y devuelve el cuerpo JSON.

        Raises:
            NetworkError: si el servidor no es alcanzable
            AppException: la excepción tipada que corresponde al error_code
        """
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.warning("Error de red en %s %s: %s", method, path, e)
            raise NetworkError(extra={"reason": str(e)}) from e

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.text or None}
            exc = exception_from_payload(response.status_code, payload)
            logger.debug(
                "%s %s -> %s %s", method, path, response.status_code, exc.error_code
            )
            raise exc

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def _data(self, model: Type[M], method: str, path: str, **kwargs: Any) -> M:
        body = await self._request(method, path, **kwargs)
        return model.model_validate(body["data"])

    async def _list(
        self, model: Type[M], path: str, params: dict[str, Any]
    ) -> ApiListResponse[M]:
        clean = {k: v for k, v in params.items() if v is not None}
        body = await self._request("GET", path, params=clean)
        return ApiListResponse[model].model_validate(body)

    # -------------------------------------------------------------------
    # Vehículos
    # -------------------------------------------------------------------

    async def list_vehicles(
        self,
        customer_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> ApiListResponse[VehicleRead]:
        return await self._list(
            VehicleRead,
            "/workshop/vehicles",
            {"customer_id": customer_id, "search": search, "page": page, "limit": limit},
        )

    async def get_vehicle(self, vehicle_id: uuid.UUID) -> VehicleRead:
        return await self._data(VehicleRead, "GET", f"/workshop/vehicles/{vehicle_id}")

    async def create_vehicle(self, data: VehicleCreate) -> VehicleRead:
        return await self._data(VehicleRead, "POST", "/workshop/vehicles", json=_dump(data))

    async def update_vehicle(self, vehicle_id: uuid.UUID, data: VehicleUpdate) -> VehicleRead:
        return await self._data(
            VehicleRead, "PUT", f"/workshop/vehicles/{vehicle_id}", json=_dump(data)
        )

    async def vehicle_history(self, vehicle_id: uuid.UUID) -> VehicleHistory:
        return await self._data(
            VehicleHistory, "GET", f"/workshop/vehicles/{vehicle_id}/history"
        )

    # -------------------------------------------------------------------
    # Órdenes de trabajo
    # -------------------------------------------------------------------

    async def list_work_orders(
        self,
        status: Optional[WorkOrderStatus] = None,
        technician_id: Optional[uuid.UUID] = None,
        vehicle_id: Optional[uuid.UUID] = None,
        customer_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        date_from: Optional[datetime.date] = None,
        date_to: Optional[datetime.date] = None,
        page: int = 1,
        limit: int = 20,
    ) -> ApiListResponse[WorkOrderRead]:
        params = {
            "status": WorkOrderStatus(status).value if status else None,
            "technician_id": technician_id,
            "vehicle_id": vehicle_id,
            "customer_id": customer_id,
            "search": search,
            "date_from": date_from.isoformat() if date_from else None,
            "date_to": date_to.isoformat() if date_to else None,
            "page": page,
            "limit": limit,
        }
        return await self._list(WorkOrderRead, "/workshop/work-orders", params)

    async def get_work_order(self, work_order_id: uuid.UUID) -> WorkOrderRead:
        return await self._data(WorkOrderRead, "GET", f"/workshop/work-orders/{work_order_id}")

    async def create_work_order(self, data: WorkOrderCreate) -> WorkOrderRead:
        return await self._data(
            WorkOrderRead, "POST", "/workshop/work-orders", json=_dump(data)
        )

    async def update_work_order(
        self, work_order_id: uuid.UUID, data: WorkOrderUpdate
    ) -> WorkOrderRead:
        return await self._data(
            WorkOrderRead, "PUT", f"/workshop/work-orders/{work_order_id}", json=_dump(data)
        )

    async def change_status(
        self,
        order: WorkOrderRead,
        target: WorkOrderStatus,
        mileage_out: Optional[int] = None,
    ) -> WorkOrderRead:
        """
        Cambia el estado de la orden.

        Raises:
            InvalidTransitionError: sin llamar al servidor si target no está en next_states
        """
        ensure_transition(order.status, target)
        body: dict[str, Any] = {"status": WorkOrderStatus(target).value}
        if mileage_out is not None:
            body["mileage_out"] = mileage_out
        return await self._data(
            WorkOrderRead, "PATCH", f"/workshop/work-orders/{order.id}/status", json=body
        )

    async def save_checklist(self, order: WorkOrderRead, checklist: Checklist) -> WorkOrderRead:
        """
        Raises:
            ReadOnlyViolationError: sin llamar al servidor si la orden ya no está en recibido
        """
        if not order.checklist_editable:
            raise ReadOnlyViolationError(
                "El checklist solo puede modificarse con la orden en estado 'recibido'",
                extra={"status": order.status.value},
            )
        return await self._data(
            WorkOrderRead,
            "PUT",
            f"/workshop/work-orders/{order.id}/checklist",
            json=checklist.model_dump(mode="json", exclude={"is_completed"}),
        )

    def _check_open(self, order: WorkOrderRead) -> None:
        if order.is_closed:
            raise WorkOrderClosedError(
                f"La orden {order.order_number} está cerrada",
                extra={"status": order.status.value},
            )

    async def add_item(self, order: WorkOrderRead, item: WorkOrderItemCreate) -> WorkOrderRead:
        self._check_open(order)
        return await self._data(
            WorkOrderRead,
            "POST",
            f"/workshop/work-orders/{order.id}/items",
            json=_dump(item),
        )

    async def remove_item(self, order: WorkOrderRead, item_id: uuid.UUID) -> WorkOrderRead:
        """Elimina la línea y devuelve la orden actualizada."""
        self._check_open(order)
        await self._request("DELETE", f"/workshop/work-orders/{order.id}/items/{item_id}")
        return await self.get_work_order(order.id)

    async def generate_sale(self, order: WorkOrderRead) -> SaleGenerationResult:
        """
        Raises:
            SaleAlreadyGeneratedError / SaleNotReadyError: sin llamar al servidor
                cuando el estado local ya lo indica
        """
        if order.sale_id is not None:
            raise SaleAlreadyGeneratedError(
                f"La orden {order.order_number} ya tiene una venta generada",
                extra={"sale_id": str(order.sale_id)},
            )
        if order.status not in BILLABLE_STATUSES or not order.items:
            raise SaleNotReadyError(
                f"La orden {order.order_number} no está lista para generar la venta",
                extra={"status": order.status.value},
            )
        return await self._data(
            SaleGenerationResult, "POST", f"/workshop/work-orders/{order.id}/generate-sale"
        )

    async def upload_photos(
        self,
        work_order_id: uuid.UUID,
        phase: PhotoPhase,
        photos: Sequence[PhotoFile],
    ) -> WorkOrderRead:
        """Sube un lote de fotos en una sola petición multipart."""
        if not photos:
            raise BusinessValidationError("No hay fotos para subir", extra={"field": "photos"})
        files = [("photos", (name, content, content_type)) for name, content_type, content in photos]
        return await self._data(
            WorkOrderRead,
            "POST",
            f"/workshop/work-orders/{work_order_id}/photos/{PhotoPhase(phase).value}",
            files=files,
        )

    async def delete_photo(
        self, work_order_id: uuid.UUID, phase: PhotoPhase, index: int
    ) -> WorkOrderRead:
        return await self._data(
            WorkOrderRead,
            "DELETE",
            f"/workshop/work-orders/{work_order_id}/photos/{PhotoPhase(phase).value}/{index}",
        )

    async def checklist_components(self) -> list[ChecklistComponent]:
        body = await self._request("GET", "/workshop/work-orders/checklist-components")
        return [ChecklistComponent.model_validate(c) for c in body["data"]]

    # -------------------------------------------------------------------
    # Reportes
    # -------------------------------------------------------------------

    async def report(
        self,
        date_from: datetime.date,
        date_to: datetime.date,
        technician_id: Optional[uuid.UUID] = None,
        status: Optional[WorkOrderStatus] = None,
    ) -> WorkshopReport:
        params: dict[str, Any] = {"date_from": date_from.isoformat(), "date_to": date_to.isoformat()}
        if technician_id:
            params["technician_id"] = str(technician_id)
        if status:
            params["status"] = WorkOrderStatus(status).value
        return await self._data(
            WorkshopReport, "GET", "/workshop/work-orders/report", params=params
        )

    async def productivity(
        self, date_from: datetime.date, date_to: datetime.date
    ) -> list[TechnicianProductivity]:
        body = await self._request(
            "GET",
            "/workshop/work-orders/productivity",
            params={"date_from": date_from.isoformat(), "date_to": date_to.isoformat()},
        )
        return [TechnicianProductivity.model_validate(r) for r in body["data"]]

    # -------------------------------------------------------------------
    # Liquidación de comisiones
    # -------------------------------------------------------------------

    def _check_period(
        self,
        date_from: datetime.date,
        date_to: datetime.date,
        percentage: Optional[Decimal] = None,
    ) -> None:
        try:
            validate_date_range(date_from, date_to)
        except ValueError as e:
            raise BusinessValidationError(str(e), extra={"field": "date_from"}) from e
        if percentage is not None and not (Decimal("0") <= Decimal(percentage) <= Decimal("100")):
            raise BusinessValidationError(
                "El porcentaje de comisión debe estar entre 0 y 100",
                extra={"field": "commission_percentage"},
            )

    async def commission_technicians(self) -> list[TechnicianWithPending]:
        body = await self._request("GET", "/workshop/commission-settlements/technicians")
        return [TechnicianWithPending.model_validate(t) for t in body["data"]]

    async def preview_commission(
        self,
        technician_id: uuid.UUID,
        date_from: datetime.date,
        date_to: datetime.date,
        commission_percentage: Optional[Decimal] = None,
    ) -> CommissionPreview:
        self._check_period(date_from, date_to, commission_percentage)
        params: dict[str, Any] = {
            "technician_id": str(technician_id),
            "date_from": date_from.isoformat(),
            "date_to": date_to.isoformat(),
        }
        if commission_percentage is not None:
            params["commission_percentage"] = str(commission_percentage)
        return await self._data(
            CommissionPreview, "GET", "/workshop/commission-settlements/preview", params=params
        )

    async def create_settlement(
        self,
        technician_id: uuid.UUID,
        date_from: datetime.date,
        date_to: datetime.date,
        commission_percentage: Decimal,
        notes: Optional[str] = None,
    ) -> CommissionSettlementRead:
        self._check_period(date_from, date_to, commission_percentage)
        data = CommissionSettlementCreate(
            technician_id=technician_id,
            date_from=date_from,
            date_to=date_to,
            commission_percentage=commission_percentage,
            notes=notes,
        )
        return await self._data(
            CommissionSettlementRead,
            "POST",
            "/workshop/commission-settlements",
            json=data.model_dump(mode="json"),
        )

    async def list_settlements(
        self,
        technician_id: Optional[uuid.UUID] = None,
        page: int = 1,
        limit: int = 20,
    ) -> ApiListResponse[CommissionSettlementRead]:
        return await self._list(
            CommissionSettlementRead,
            "/workshop/commission-settlements",
            {"technician_id": technician_id, "page": page, "limit": limit},
        )

    async def get_settlement(self, settlement_id: uuid.UUID) -> CommissionSettlementRead:
        return await self._data(
            CommissionSettlementRead, "GET", f"/workshop/commission-settlements/{settlement_id}"
        )
