"""
Tests del cliente HTTP (taller.client).

El servidor se simula con httpx.MockTransport; cada test cuenta las
peticiones para comprobar qué verificaciones se hacen localmente.
"""

import datetime
import uuid
from decimal import Decimal

import httpx
import pytest

from taller.client import WorkshopClient
from taller.core.exceptions import (
    AppException,
    BusinessValidationError,
    ConflictError,
    InvalidTransitionError,
    NetworkError,
    NotFoundError,
    ReadOnlyViolationError,
    SaleAlreadyGeneratedError,
    SaleNotReadyError,
    WorkOrderClosedError,
)
from taller.schemas.checklist import Checklist
from taller.schemas.work_order import (
    ItemType,
    PhotoPhase,
    WorkOrderItemCreate,
    WorkOrderRead,
    WorkOrderStatus,
)

S = WorkOrderStatus
NOW = "2025-06-15T14:30:00+00:00"


# ============================================================
# Helpers
# ============================================================


def order_payload(status="recibido", sale_id=None, items=None, **extra):
    payload = {
        "id": str(uuid.uuid4()),
        "order_number": "OT-2025-00007",
        "status": status,
        "vehicle_id": str(uuid.uuid4()),
        "received_at": NOW,
        "problem_description": "Vibración al frenar",
        "tax_rate": "19.00",
        "subtotal": "0",
        "discount_amount": "0",
        "tax_amount": "0",
        "total_amount": "0",
        "sale_id": sale_id,
        "created_at": NOW,
        "updated_at": NOW,
        "items": items or [],
    }
    payload.update(extra)
    return payload


def item_payload(work_order_id):
    return {
        "id": str(uuid.uuid4()),
        "work_order_id": work_order_id,
        "product_name": "Mano de obra",
        "item_type": "mano_obra",
        "quantity": "1",
        "unit_price": "50000",
        "total": "50000",
        "created_at": NOW,
    }


def make_order(**kwargs) -> WorkOrderRead:
    return WorkOrderRead.model_validate(order_payload(**kwargs))


class Recorder:
    """Transporte simulado que guarda las peticiones recibidas."""

    def __init__(self, handler):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


def client_for(handler, **kwargs):
    recorder = Recorder(handler)
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(recorder),
        base_url="http://taller.test/api/v1",
    )
    return WorkshopClient(http=http, **kwargs), recorder


def must_not_call(request):
    raise AssertionError(f"Petición inesperada: {request.method} {request.url}")


# ============================================================
# Transporte y errores
# ============================================================


class TestTransport:

    async def test_envelope_is_unwrapped(self):
        payload = order_payload()
        client, recorder = client_for(
            lambda request: httpx.Response(200, json={"success": True, "data": payload})
        )

        order = await client.get_work_order(uuid.UUID(payload["id"]))

        assert order.order_number == "OT-2025-00007"
        assert order.status is S.RECIBIDO
        assert recorder.requests[0].url.path == f"/api/v1/workshop/work-orders/{payload['id']}"

    async def test_list_envelope(self):
        body = {
            "success": True,
            "data": [order_payload()],
            "total": 41,
            "page": 2,
            "limit": 20,
            "total_pages": 3,
        }
        client, recorder = client_for(lambda request: httpx.Response(200, json=body))

        page = await client.list_work_orders(status=S.LISTO, page=2)

        assert page.total == 41
        assert page.total_pages == 3
        assert len(page.data) == 1
        params = recorder.requests[0].url.params
        assert params["status"] == "listo"
        assert "technician_id" not in params

    @pytest.mark.parametrize(
        "error_code, status_code, expected",
        [
            ("RESOURCE_NOT_FOUND", 404, NotFoundError),
            ("INVALID_TRANSITION", 409, InvalidTransitionError),
            ("READ_ONLY_VIOLATION", 409, ReadOnlyViolationError),
            ("SALE_ALREADY_GENERATED", 409, SaleAlreadyGeneratedError),
            ("VALIDATION_ERROR", 422, BusinessValidationError),
        ],
    )
    async def test_error_code_mapping(self, error_code, status_code, expected):
        body = {"success": False, "message": "rechazado", "error_code": error_code, "extra": {"a": 1}}
        client, _ = client_for(lambda request: httpx.Response(status_code, json=body))

        with pytest.raises(expected) as exc_info:
            await client.get_work_order(uuid.uuid4())

        assert exc_info.value.detail == "rechazado"
        assert exc_info.value.extra == {"a": 1}

    async def test_unknown_code_falls_back_to_status(self):
        body = {"message": "otro conflicto", "error_code": "SOMETHING_NEW"}
        client, _ = client_for(lambda request: httpx.Response(409, json=body))

        with pytest.raises(ConflictError) as exc_info:
            await client.get_vehicle(uuid.uuid4())
        assert exc_info.value.error_code == "SOMETHING_NEW"

    async def test_non_json_error(self):
        client, _ = client_for(lambda request: httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(AppException) as exc_info:
            await client.get_vehicle(uuid.uuid4())
        assert exc_info.value.status_code == 502
        assert exc_info.value.detail == "Bad Gateway"

    async def test_network_error(self):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        client, _ = client_for(refuse)

        with pytest.raises(NetworkError) as exc_info:
            await client.list_vehicles()
        assert exc_info.value.error_code == "NETWORK_ERROR"

    async def test_user_header_sent(self):
        user_id = uuid.uuid4()
        client, recorder = client_for(
            lambda request: httpx.Response(200, json={"data": []}), user_id=user_id
        )

        await client.commission_technicians()

        assert recorder.requests[0].headers["X-User-Id"] == str(user_id)


# ============================================================
# Verificaciones locales
# ============================================================


class TestLocalChecks:
    """Rechazos que no llegan al servidor."""

    async def test_invalid_transition_not_sent(self):
        client, recorder = client_for(must_not_call)
        order = make_order(status="listo")

        with pytest.raises(InvalidTransitionError) as exc_info:
            await client.change_status(order, S.RECIBIDO)

        assert exc_info.value.extra["allowed"] == ["cancelado", "entregado"]
        assert recorder.requests == []

    async def test_valid_transition_sent(self):
        order = make_order(status="listo")
        delivered = order_payload(status="entregado", mileage_out=45200)
        client, recorder = client_for(lambda request: httpx.Response(200, json={"data": delivered}))

        result = await client.change_status(order, S.ENTREGADO, mileage_out=45200)

        assert result.status is S.ENTREGADO
        assert recorder.requests[0].method == "PATCH"
        assert b'"mileage_out":45200' in recorder.requests[0].content.replace(b" ", b"")

    async def test_checklist_read_only(self):
        client, recorder = client_for(must_not_call)

        with pytest.raises(ReadOnlyViolationError):
            await client.save_checklist(make_order(status="en_proceso"), Checklist(fuel_level=2))
        assert recorder.requests == []

    @pytest.mark.parametrize("status", ["entregado", "cancelado"])
    async def test_closed_order_items(self, status):
        client, recorder = client_for(must_not_call)
        order = make_order(status=status)
        item = WorkOrderItemCreate(
            product_name="Aceite", item_type=ItemType.REPUESTO, quantity=Decimal("1"), unit_price=Decimal("1")
        )

        with pytest.raises(WorkOrderClosedError):
            await client.add_item(order, item)
        with pytest.raises(WorkOrderClosedError):
            await client.remove_item(order, uuid.uuid4())
        assert recorder.requests == []

    async def test_order_with_sale_is_closed(self):
        client, recorder = client_for(must_not_call)
        order = make_order(status="listo", sale_id=str(uuid.uuid4()))

        with pytest.raises(SaleAlreadyGeneratedError):
            await client.generate_sale(order)
        with pytest.raises(WorkOrderClosedError):
            await client.remove_item(order, uuid.uuid4())
        assert recorder.requests == []

    async def test_sale_not_ready(self):
        client, recorder = client_for(must_not_call)
        in_progress = make_order(status="en_proceso")
        without_items = make_order(status="listo")

        with pytest.raises(SaleNotReadyError):
            await client.generate_sale(in_progress)
        with pytest.raises(SaleNotReadyError):
            await client.generate_sale(without_items)
        assert recorder.requests == []

    async def test_inverted_period(self):
        client, recorder = client_for(must_not_call)

        with pytest.raises(BusinessValidationError):
            await client.preview_commission(
                uuid.uuid4(), datetime.date(2025, 6, 30), datetime.date(2025, 6, 1)
            )
        with pytest.raises(BusinessValidationError):
            await client.create_settlement(
                uuid.uuid4(), datetime.date(2025, 6, 1), datetime.date(2025, 6, 30), Decimal("101")
            )
        assert recorder.requests == []


# ============================================================
# Operaciones
# ============================================================


class TestOperations:

    async def test_remove_item_refetches_order(self):
        order = make_order(status="en_proceso")
        refreshed = order_payload(status="en_proceso", id=str(order.id))

        def handler(request):
            if request.method == "DELETE":
                return httpx.Response(204)
            return httpx.Response(200, json={"data": refreshed})

        client, recorder = client_for(handler)

        result = await client.remove_item(order, uuid.uuid4())

        assert result.id == order.id
        assert [r.method for r in recorder.requests] == ["DELETE", "GET"]

    async def test_generate_sale(self):
        order_id = str(uuid.uuid4())
        order = WorkOrderRead.model_validate(
            order_payload(status="listo", id=order_id, items=[item_payload(order_id)])
        )
        sale_id = str(uuid.uuid4())
        body = {
            "data": {
                "sale": {
                    "id": sale_id,
                    "sale_number": "REM-2025-00003",
                    "total_amount": "59500",
                    "payment_status": "pendiente",
                    "paid_amount": "0",
                    "work_order_id": order_id,
                    "subtotal": "50000",
                    "discount_amount": "0",
                    "tax_amount": "9500",
                    "created_at": NOW,
                },
                "work_order": order_payload(status="entregado", id=order_id, sale_id=sale_id),
            }
        }
        client, recorder = client_for(lambda request: httpx.Response(201, json=body))

        result = await client.generate_sale(order)

        assert result.sale.sale_number == "REM-2025-00003"
        assert result.work_order.is_closed is True
        assert recorder.requests[0].url.path.endswith(f"/{order_id}/generate-sale")

    async def test_upload_photos_multipart(self):
        order_id = uuid.uuid4()
        client, recorder = client_for(
            lambda request: httpx.Response(201, json={"data": order_payload(id=str(order_id))})
        )

        await client.upload_photos(
            order_id,
            PhotoPhase.OUT,
            [("frente.jpg", "image/jpeg", b"\xff\xd8"), ("lado.jpg", "image/jpeg", b"\xff\xd8")],
        )

        request = recorder.requests[0]
        assert request.url.path.endswith(f"/{order_id}/photos/out")
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert request.content.count(b'name="photos"') == 2

    async def test_empty_photo_batch(self):
        client, recorder = client_for(must_not_call)
        with pytest.raises(BusinessValidationError):
            await client.upload_photos(uuid.uuid4(), PhotoPhase.IN, [])
        assert recorder.requests == []

    async def test_preview_params(self):
        technician_id = uuid.uuid4()
        body = {
            "data": {
                "technician": {"id": str(technician_id), "name": "Andrés Gómez"},
                "date_from": "2025-06-01",
                "date_to": "2025-06-30",
                "orders": [],
                "total_orders": 0,
                "base_amount": "0",
                "commission_percentage": "10",
                "commission_amount": "0",
            }
        }
        client, recorder = client_for(lambda request: httpx.Response(200, json=body))

        preview = await client.preview_commission(
            technician_id, datetime.date(2025, 6, 1), datetime.date(2025, 6, 30), Decimal("10")
        )

        assert preview.base_amount == Decimal("0")
        params = recorder.requests[0].url.params
        assert params["technician_id"] == str(technician_id)
        assert params["commission_percentage"] == "10"
