"""
Tests de los services sobre una base SQLite en memoria.

Cada test recibe un engine limpio (ver conftest.py).
"""

import datetime
import uuid
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.exceptions import (
    BusinessValidationError,
    DuplicateError,
    InvalidTransitionError,
    NoEligibleOrdersError,
    NotFoundError,
    ReadOnlyViolationError,
    SaleAlreadyGeneratedError,
    SaleNotReadyError,
    WorkOrderClosedError,
)
from taller.core.config import settings
from taller.core.timeutils import workshop_today, workshop_tz
from taller.models import Technician
from taller.schemas.checklist import Checklist, ChecklistState
from taller.schemas.commission import CommissionSettlementCreate
from taller.schemas.vehicle import VehicleCreate, VehicleUpdate
from taller.schemas.work_order import (
    ItemType,
    PhotoPhase,
    WorkOrderCreate,
    WorkOrderItemCreate,
    WorkOrderRead,
    WorkOrderStatus,
    WorkOrderUpdate,
)
from taller.services.checklist_service import checklist_service
from taller.services.commission_service import commission_service
from taller.services.photo_service import PhotoUpload, photo_service
from taller.services.sale_service import sale_service
from taller.services.vehicle_service import vehicle_service
from taller.services.work_order_service import work_order_service
from taller.services.workshop_report_service import workshop_report_service

S = WorkOrderStatus
YEAR = workshop_today().year


# ============================================================
# Helpers
# ============================================================


async def create_order(db, plate="ABC123", technician=None, customer=None, items=None, mileage_in=None):
    data = WorkOrderCreate(
        vehicle=VehicleCreate(plate=plate, brand="Mazda", model="3", customer_id=customer.id if customer else None),
        technician_id=technician.id if technician else None,
        mileage_in=mileage_in,
        problem_description="Ruido en la suspensión delantera",
        items=items,
    )
    order = await work_order_service.create(db, data)
    await db.commit()
    return order


async def move(db, order, *statuses, mileage_out=None):
    for status in statuses:
        order = await work_order_service.change_status(
            db, order.id, status, mileage_out=mileage_out if status == S.ENTREGADO else None
        )
    await db.commit()
    return order


def labor(amount: str) -> WorkOrderItemCreate:
    return WorkOrderItemCreate(
        product_name="Mano de obra",
        item_type=ItemType.MANO_OBRA,
        quantity=Decimal("1"),
        unit_price=Decimal(amount),
    )


def part(amount: str, name: str = "Pastillas de freno") -> WorkOrderItemCreate:
    return WorkOrderItemCreate(
        product_name=name,
        item_type=ItemType.REPUESTO,
        quantity=Decimal("1"),
        unit_price=Decimal(amount),
    )


# ============================================================
# VehicleService
# ============================================================


class TestVehicleService:

    async def test_duplicate_plate_rejected(self, db):
        await vehicle_service.create(db, VehicleCreate(plate="abc 123"))
        await db.commit()

        with pytest.raises(DuplicateError) as exc_info:
            await vehicle_service.create(db, VehicleCreate(plate="ABC-123"))
        assert exc_info.value.extra == {"field": "plate"}

    async def test_mileage_never_decreases(self, db):
        vehicle = await vehicle_service.create(db, VehicleCreate(plate="XYZ987", current_mileage=50000))
        await db.commit()

        vehicle = await vehicle_service.update(db, vehicle.id, VehicleUpdate(current_mileage=40000))
        assert vehicle.current_mileage == 50000

        vehicle = await vehicle_service.update(db, vehicle.id, VehicleUpdate(current_mileage=52000))
        assert vehicle.current_mileage == 52000

    async def test_unknown_owner(self, db):
        with pytest.raises(NotFoundError):
            await vehicle_service.create(db, VehicleCreate(plate="JKL456", customer_id=uuid.uuid4()))

    async def test_history_most_recent_first(self, db):
        first = await create_order(db, plate="HIS001")
        second = await work_order_service.create(
            db,
            WorkOrderCreate(vehicle_id=first.vehicle_id, problem_description="Cambio de aceite"),
        )
        await db.commit()

        vehicle, history = await vehicle_service.get_history(db, first.vehicle_id)
        assert vehicle.plate == "HIS001"
        assert [o.id for o in history] == [second.id, first.id]


# ============================================================
# WorkOrderService: creación y líneas
# ============================================================


class TestWorkOrderCreate:

    async def test_inline_vehicle_and_owner_default(self, db, customer, technician):
        order = await create_order(db, customer=customer, technician=technician, mileage_in=45000)

        assert order.order_number == f"OT-{YEAR}-00001"
        assert order.status == S.RECIBIDO.value
        assert order.customer_id == customer.id
        assert order.technician_id == technician.id
        assert order.vehicle.plate == "ABC123"
        assert order.vehicle.current_mileage == 45000
        assert order.received_at is not None

    async def test_sequential_numbers(self, db):
        first = await create_order(db, plate="SEQ001")
        second = await create_order(db, plate="SEQ002")
        assert first.order_number == f"OT-{YEAR}-00001"
        assert second.order_number == f"OT-{YEAR}-00002"

    async def test_inactive_technician_rejected(self, db, inactive_technician):
        with pytest.raises(BusinessValidationError) as exc_info:
            await create_order(db, technician=inactive_technician)
        assert exc_info.value.extra == {"field": "technician_id"}

    async def test_initial_items_and_totals(self, db, oil_filter):
        """150.000 de subtotal al 19%: IVA 28.500, total 178.500."""
        items = [
            WorkOrderItemCreate(product_id=oil_filter.id, quantity=Decimal("2"), unit_price=Decimal("35000")),
            labor("80000"),
        ]
        order = await create_order(db, items=items)

        assert len(order.items) == 2
        assert {i.product_name for i in order.items} == {"Filtro de aceite", "Mano de obra"}
        assert order.subtotal == Decimal("150000")
        assert order.tax_amount == Decimal("28500")
        assert order.total_amount == Decimal("178500")

    async def test_warehouse_carried_to_sale(self, db, warehouse):
        data = WorkOrderCreate(
            vehicle=VehicleCreate(plate="BOD001"),
            warehouse_id=warehouse.id,
            problem_description="Cambio de pastillas",
            items=[part("90000")],
        )
        order = await work_order_service.create(db, data)
        await db.commit()
        order = await move(db, order, S.EN_PROCESO, S.LISTO)

        sale, order = await sale_service.generate_from_work_order(db, order.id)
        assert order.warehouse.name == "Bodega principal"
        assert sale.warehouse_id == warehouse.id

    async def test_initial_checklist_stored(self, db):
        data = WorkOrderCreate(
            vehicle=VehicleCreate(plate="CHK001"),
            problem_description="Revisión general",
            checklist=Checklist.model_validate({"fuel_level": 1, "frenos": True}),
        )
        order = await work_order_service.create(db, data)
        assert order.checklist_in["items"] == {"frenos": "ok"}


class TestWorkOrderItems:

    async def test_service_product_classified_as_servicio(self, db, alignment):
        order = await create_order(db)
        order = await work_order_service.add_item(
            db,
            order.id,
            WorkOrderItemCreate(product_id=alignment.id, quantity=Decimal("1"), unit_price=Decimal("80000")),
        )
        await db.commit()

        assert order.items[0].item_type == ItemType.SERVICIO.value
        assert order.items[0].product_name == "Alineación y balanceo"

    async def test_unknown_product(self, db):
        order = await create_order(db)
        with pytest.raises(NotFoundError):
            await work_order_service.add_item(
                db,
                order.id,
                WorkOrderItemCreate(product_id=uuid.uuid4(), quantity=Decimal("1"), unit_price=Decimal("1")),
            )

    async def test_remove_item_recalculates_and_clamps_discount(self, db):
        order = await create_order(db, items=[part("100000"), labor("50000")])
        order = await work_order_service.update(
            db, order.id, WorkOrderUpdate(discount_amount=Decimal("120000"))
        )
        await db.commit()
        assert order.discount_amount == Decimal("120000")

        part_item = next(i for i in order.items if i.item_type == ItemType.REPUESTO.value)
        order = await work_order_service.remove_item(db, order.id, part_item.id)
        await db.commit()

        assert order.subtotal == Decimal("50000")
        assert order.discount_amount == Decimal("50000")
        assert order.tax_amount == Decimal("0")
        assert order.total_amount == Decimal("0")

    async def test_discount_above_subtotal_rejected(self, db):
        order = await create_order(db, items=[part("10000")])
        with pytest.raises(BusinessValidationError):
            await work_order_service.update(
                db, order.id, WorkOrderUpdate(discount_amount=Decimal("10000.01"))
            )

    async def test_remove_item_of_another_order(self, db):
        order_a = await create_order(db, plate="AAA111", items=[part("1000")])
        order_b = await create_order(db, plate="BBB222", items=[part("2000")])

        with pytest.raises(NotFoundError):
            await work_order_service.remove_item(db, order_a.id, order_b.items[0].id)

    async def test_items_frozen_after_cancel(self, db):
        order = await create_order(db, items=[part("1000")])
        await move(db, order, S.CANCELADO)

        with pytest.raises(WorkOrderClosedError):
            await work_order_service.add_item(db, order.id, part("500"))
        with pytest.raises(WorkOrderClosedError):
            await work_order_service.remove_item(db, order.id, order.items[0].id)

    async def test_closed_order_checked_before_item_lookup(self, db):
        order = await create_order(db)
        await move(db, order, S.CANCELADO)

        with pytest.raises(WorkOrderClosedError):
            await work_order_service.remove_item(db, order.id, uuid.uuid4())


# ============================================================
# WorkOrderService: estados
# ============================================================


class TestWorkOrderStatus:

    async def test_invalid_transition_leaves_state_unchanged(self, db):
        order = await create_order(db)
        order_id = order.id

        with pytest.raises(InvalidTransitionError):
            await work_order_service.change_status(db, order_id, S.LISTO)
        # rollback expira los objetos cargados
        await db.rollback()

        order = await work_order_service.get_by_id(db, order_id)
        assert order.status == S.RECIBIDO.value

    async def test_listo_back_to_recibido_rejected(self, db):
        order = await create_order(db)
        order = await move(db, order, S.EN_PROCESO, S.LISTO)

        with pytest.raises(InvalidTransitionError):
            await work_order_service.change_status(db, order.id, S.RECIBIDO)

    async def test_delivery_stamps_date_and_mileage(self, db):
        order = await create_order(db, mileage_in=45000, items=[part("10000")])
        order = await move(db, order, S.EN_PROCESO, S.LISTO, S.ENTREGADO, mileage_out=45200)

        assert order.status == S.ENTREGADO.value
        assert order.delivered_at is not None
        assert order.mileage_out == 45200
        assert order.vehicle.current_mileage == 45200
        # Entregar no genera la remisión
        assert order.sale_id is None
        assert order.total_amount == Decimal("11900")

    async def test_mileage_out_below_mileage_in_rejected(self, db):
        order = await create_order(db, mileage_in=45000)
        order = await move(db, order, S.EN_PROCESO, S.LISTO)

        with pytest.raises(BusinessValidationError):
            await work_order_service.change_status(db, order.id, S.ENTREGADO, mileage_out=44000)

    async def test_update_mileage_checked_against_stored_values(self, db):
        order = await create_order(db, mileage_in=1000)
        order = await move(db, order, S.EN_PROCESO)
        order = await work_order_service.update(db, order.id, WorkOrderUpdate(mileage_out=2000))
        await db.commit()
        assert order.mileage_out == 2000

        with pytest.raises(BusinessValidationError) as exc_info:
            await work_order_service.update(db, order.id, WorkOrderUpdate(mileage_out=500))
        assert exc_info.value.extra["field"] == "mileage_out"

        with pytest.raises(BusinessValidationError) as exc_info:
            await work_order_service.update(db, order.id, WorkOrderUpdate(mileage_in=5000))
        assert exc_info.value.extra["field"] == "mileage_in"
        assert exc_info.value.extra["mileage_out"] == 2000

    async def test_update_terminal_order_rejected(self, db):
        order = await create_order(db)
        await move(db, order, S.CANCELADO)

        with pytest.raises(WorkOrderClosedError):
            await work_order_service.update(db, order.id, WorkOrderUpdate(diagnosis="N/A"))

    async def test_list_filters(self, db, technician):
        first = await create_order(db, plate="LST001", technician=technician)
        await create_order(db, plate="LST002")
        await move(db, first, S.EN_PROCESO)

        orders, total = await work_order_service.get_all(db, status_filter=S.EN_PROCESO)
        assert total == 1
        assert orders[0].id == first.id

        orders, total = await work_order_service.get_all(db, search="lst002")
        assert total == 1
        assert orders[0].vehicle.plate == "LST002"

        orders, total = await work_order_service.get_all(
            db, date_from=workshop_today(), date_to=workshop_today()
        )
        assert total == 2


# ============================================================
# ChecklistService
# ============================================================


class TestChecklistService:

    async def test_save_replaces_whole_checklist(self, db):
        order = await create_order(db)

        await checklist_service.save(db, order.id, Checklist(items={"frenos": "ok", "pito": "defective"}))
        order = await checklist_service.save(db, order.id, Checklist(fuel_level=4, items={"radio": "ok"}))
        await db.commit()

        stored = Checklist.model_validate(order.checklist_in)
        assert stored.fuel_level == 4
        assert stored.state_of("radio") is ChecklistState.OK
        assert stored.state_of("frenos") is ChecklistState.UNSET

    async def test_read_only_after_recibido(self, db):
        order = await create_order(db)
        await move(db, order, S.EN_PROCESO)

        with pytest.raises(ReadOnlyViolationError):
            await checklist_service.save(db, order.id, Checklist(fuel_level=2))


# ============================================================
# SaleService
# ============================================================


class TestSaleService:

    async def test_generate_sale_closes_order(self, db, customer):
        order = await create_order(db, customer=customer, items=[part("100000"), labor("50000")])
        order = await move(db, order, S.EN_PROCESO, S.LISTO)

        sale, order = await sale_service.generate_from_work_order(db, order.id)
        await db.commit()

        assert sale.sale_number == f"REM-{YEAR}-00001"
        assert sale.total_amount == order.total_amount == Decimal("178500")
        assert sale.payment_status == "pendiente"
        assert sale.paid_amount == Decimal("0")
        assert sale.customer_id == customer.id
        assert len(sale.items) == 2
        assert order.sale_id == sale.id
        assert order.status == S.ENTREGADO.value
        assert order.delivered_at is not None
        assert WorkOrderRead.model_validate(order).sale.sale_number == sale.sale_number

    async def test_second_generation_rejected(self, db):
        order = await create_order(db, items=[part("1000")])
        order = await move(db, order, S.EN_PROCESO, S.LISTO)
        await sale_service.generate_from_work_order(db, order.id)
        await db.commit()

        with pytest.raises(SaleAlreadyGeneratedError):
            await sale_service.generate_from_work_order(db, order.id)

    async def test_order_not_ready(self, db):
        order = await create_order(db, items=[part("1000")])
        with pytest.raises(SaleNotReadyError):
            await sale_service.generate_from_work_order(db, order.id)

    async def test_order_without_items_not_ready(self, db):
        order = await create_order(db)
        order = await move(db, order, S.EN_PROCESO, S.LISTO)
        with pytest.raises(SaleNotReadyError):
            await sale_service.generate_from_work_order(db, order.id)

    async def test_items_frozen_after_sale(self, db):
        order = await create_order(db, items=[part("1000")])
        order = await move(db, order, S.EN_PROCESO, S.LISTO, S.ENTREGADO)
        await sale_service.generate_from_work_order(db, order.id)
        await db.commit()

        with pytest.raises(WorkOrderClosedError):
            await work_order_service.add_item(db, order.id, part("500"))


# ============================================================
# CommissionService
# ============================================================


class TestCommissionService:

    async def _delivered_orders(self, db, technician):
        first = await create_order(
            db, plate="COM001", technician=technician, items=[labor("80000"), part("300000")]
        )
        second = await create_order(db, plate="COM002", technician=technician, items=[labor("120000")])
        # Sin mano de obra: no es liquidable
        third = await create_order(db, plate="COM003", technician=technician, items=[part("50000")])
        for order in (first, second, third):
            await move(db, order, S.EN_PROCESO, S.LISTO, S.ENTREGADO)
        return first, second

    async def test_preview_and_create(self, db, technician):
        await self._delivered_orders(db, technician)
        today = workshop_today()

        preview = await commission_service.preview(db, technician.id, today, today, Decimal("10"))
        assert preview.total_orders == 2
        assert preview.base_amount == Decimal("200000")
        assert preview.commission_amount == Decimal("20000")

        settlement = await commission_service.create(
            db,
            CommissionSettlementCreate(
                technician_id=technician.id,
                date_from=today,
                date_to=today,
                commission_percentage=Decimal("10"),
            ),
        )
        await db.commit()

        assert settlement.settlement_number == f"LIQ-{YEAR}-0001"
        assert settlement.base_amount == Decimal("200000")
        assert settlement.commission_amount == Decimal("20000")
        assert len(settlement.items) == 2
        assert all(item.work_order.settled_at is not None for item in settlement.items)

        again = await commission_service.preview(db, technician.id, today, today)
        assert again.total_orders == 0
        assert again.base_amount == Decimal("0")
        assert again.commission_amount is None

    async def test_period_bounds_in_workshop_timezone(self, db, technician):
        day = workshop_today() - datetime.timedelta(days=10)

        def local(d, hour, minute=0, second=0):
            moment = datetime.datetime.combine(d, datetime.time(hour, minute, second), tzinfo=workshop_tz())
            return moment.astimezone(datetime.timezone.utc)

        delivered = {
            "PER001": local(day, 0),  # primer instante del día
            "PER002": local(day, 23, 30),
            "PER003": local(day - datetime.timedelta(days=1), 23, 59, 59),
            "PER004": local(day + datetime.timedelta(days=1), 0),
        }
        orders = {}
        for plate, moment in delivered.items():
            order = await create_order(db, plate=plate, technician=technician, items=[labor("10000")])
            order = await move(db, order, S.EN_PROCESO, S.LISTO, S.ENTREGADO)
            order.delivered_at = moment
            orders[plate] = order.order_number
        await db.commit()

        preview = await commission_service.preview(db, technician.id, day, day)
        assert [row.order_number for row in preview.orders] == [orders["PER001"], orders["PER002"]]
        assert preview.base_amount == Decimal("20000")

        wider = await commission_service.preview(
            db, technician.id, day - datetime.timedelta(days=1), day + datetime.timedelta(days=1)
        )
        assert wider.total_orders == 4

    async def test_other_technician_orders_excluded(self, db, technician):
        other = Technician(name="Jorge Díaz", document_number="80111222")
        db.add(other)
        await db.commit()

        await self._delivered_orders(db, technician)
        foreign = await create_order(db, plate="OTR001", technician=other, items=[labor("55000")])
        await move(db, foreign, S.EN_PROCESO, S.LISTO, S.ENTREGADO)
        today = workshop_today()

        preview = await commission_service.preview(db, technician.id, today, today)
        assert foreign.order_number not in [row.order_number for row in preview.orders]
        assert preview.base_amount == Decimal("200000")

        settlement = await commission_service.create(
            db,
            CommissionSettlementCreate(
                technician_id=technician.id,
                date_from=today,
                date_to=today,
                commission_percentage=Decimal("10"),
            ),
        )
        await db.commit()
        assert foreign.id not in {item.work_order_id for item in settlement.items}

        foreign = await work_order_service.get_by_id(db, foreign.id)
        assert foreign.settled_at is None
        pending = await commission_service.preview(db, other.id, today, today)
        assert pending.total_orders == 1
        assert pending.base_amount == Decimal("55000")

    async def test_no_eligible_orders(self, db, technician):
        today = workshop_today()
        with pytest.raises(NoEligibleOrdersError) as exc_info:
            await commission_service.create(
                db,
                CommissionSettlementCreate(
                    technician_id=technician.id,
                    date_from=today,
                    date_to=today,
                    commission_percentage=Decimal("10"),
                ),
            )
        assert exc_info.value.status_code == 422

    async def test_pending_count_per_technician(self, db, technician):
        await self._delivered_orders(db, technician)

        technicians = await commission_service.list_technicians(db)
        assert [(t.name, t.pending_orders) for t in technicians] == [("Andrés Gómez", 2)]

    async def test_inverted_range_rejected(self, db, technician):
        today = workshop_today()
        with pytest.raises(BusinessValidationError):
            await commission_service.preview(db, technician.id, today, today.replace(year=today.year - 1))

    async def test_percentage_out_of_range_rejected(self, db, technician):
        today = workshop_today()
        with pytest.raises(BusinessValidationError):
            await commission_service.preview(db, technician.id, today, today, Decimal("150"))


# ============================================================
# Reportes
# ============================================================


class TestWorkshopReport:

    async def test_report_summary(self, db, technician):
        delivered = await create_order(db, plate="REP001", technician=technician, items=[labor("100000"), part("50000")])
        await move(db, delivered, S.EN_PROCESO, S.LISTO, S.ENTREGADO)
        await create_order(db, plate="REP002", items=[part("20000")])
        cancelled = await create_order(db, plate="REP003")
        await move(db, cancelled, S.CANCELADO)

        today = workshop_today()
        report = await workshop_report_service.report(db, today, today)

        assert report.summary.total_orders == 3
        assert report.summary.completed == 1
        assert report.summary.in_progress == 1
        assert report.summary.cancelled == 1
        assert report.summary.total_revenue == Decimal("178500")
        assert report.summary.total_labor == Decimal("100000")
        assert report.summary.total_parts == Decimal("70000")
        assert report.summary.avg_resolution_days == Decimal("0.0")

        row = next(r for r in report.rows if r.order_number == delivered.order_number)
        assert row.technician == "Andrés Gómez"
        assert row.resolution_days == 0

    async def test_productivity_groups_unassigned(self, db, technician):
        delivered = await create_order(db, plate="PRO001", technician=technician, items=[labor("100000")])
        await move(db, delivered, S.EN_PROCESO, S.LISTO, S.ENTREGADO)
        await create_order(db, plate="PRO002")

        today = workshop_today()
        rows = await workshop_report_service.productivity(db, today, today)

        assert [r.technician_name for r in rows] == ["Andrés Gómez", "Sin asignar"]
        assert rows[0].completed_orders == 1
        assert rows[0].labor_revenue == Decimal("100000")
        assert rows[0].total_revenue == Decimal("119000")
        assert rows[1].technician_id is None
        assert rows[1].in_progress_orders == 1


# ============================================================
# PhotoService
# ============================================================


def jpeg(name: str = "frente.jpg") -> PhotoUpload:
    return PhotoUpload(filename=name, content_type="image/jpeg", content=b"\xff\xd8\xff\xe0fake")


def stored_file(photo: dict) -> Path:
    # /uploads/... se sirve desde settings.upload_dir
    relative = photo["url"].removeprefix("/uploads/")
    return Path(settings.upload_dir) / relative


async def broken_commit(self):
    raise RuntimeError("commit fallido")


class TestPhotoService:

    async def test_upload_and_delete(self, db):
        order = await create_order(db)

        order = await photo_service.upload_photos(db, order.id, PhotoPhase.IN, [jpeg(), jpeg("lado.jpg")])
        await photo_service.commit(db)
        assert [p["filename"] for p in order.photos_in] == ["frente.jpg", "lado.jpg"]
        assert order.photos_in[0]["url"].startswith(f"/uploads/work-orders/{order.id}/")
        assert order.photos_out == []
        first = stored_file(order.photos_in[0])
        assert first.is_file()

        order = await photo_service.delete_photo(db, order.id, PhotoPhase.IN, 0)
        # Hasta el commit el archivo sigue en disco
        assert first.is_file()
        await photo_service.commit(db)
        assert [p["filename"] for p in order.photos_in] == ["lado.jpg"]
        assert not first.exists()

    async def test_failed_commit_discards_new_files(self, db, monkeypatch):
        order = await create_order(db)
        order = await photo_service.upload_photos(db, order.id, PhotoPhase.IN, [jpeg()])
        written = stored_file(order.photos_in[0])
        assert written.is_file()

        monkeypatch.setattr(AsyncSession, "commit", broken_commit)
        with pytest.raises(RuntimeError):
            await photo_service.commit(db)
        assert not written.exists()

    async def test_failed_commit_keeps_deleted_file(self, db, monkeypatch):
        order = await create_order(db)
        order = await photo_service.upload_photos(db, order.id, PhotoPhase.IN, [jpeg()])
        await photo_service.commit(db)
        kept = stored_file(order.photos_in[0])

        monkeypatch.setattr(AsyncSession, "commit", broken_commit)
        await photo_service.delete_photo(db, order.id, PhotoPhase.IN, 0)
        with pytest.raises(RuntimeError):
            await photo_service.commit(db)
        assert kept.is_file()

    async def test_phase_limit(self, db):
        order = await create_order(db)
        with pytest.raises(BusinessValidationError):
            await photo_service.upload_photos(db, order.id, PhotoPhase.OUT, [jpeg() for _ in range(4)])

    async def test_only_images(self, db):
        order = await create_order(db)
        with pytest.raises(BusinessValidationError):
            await photo_service.upload_photos(
                db,
                order.id,
                PhotoPhase.IN,
                [PhotoUpload(filename="factura.pdf", content_type="application/pdf", content=b"%PDF")],
            )

    async def test_delete_out_of_range(self, db):
        order = await create_order(db)
        with pytest.raises(NotFoundError):
            await photo_service.delete_photo(db, order.id, PhotoPhase.IN, 3)

    async def test_cancelled_order_rejected(self, db):
        order = await create_order(db)
        await move(db, order, S.CANCELADO)
        with pytest.raises(WorkOrderClosedError):
            await photo_service.upload_photos(db, order.id, PhotoPhase.IN, [jpeg()])
