"""
Service Layer de las Órdenes de Trabajo
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Lógica de negocio de las órdenes: creación, actualización,
transiciones de estado y gestión de líneas con recálculo de totales.
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.config import settings
from taller.core.exceptions import (
    BusinessValidationError,
    InvalidTransitionError,
    NotFoundError,
    WorkOrderClosedError,
)
from taller.core.timeutils import day_range_utc, workshop_today
from taller.models import Product, Vehicle, Warehouse, WorkOrder, WorkOrderItem
from taller.models.mixins import utcnow
from taller.schemas.work_order import (
    ItemType,
    WorkOrderCreate,
    WorkOrderItemCreate,
    WorkOrderStatus,
    WorkOrderUpdate,
    ensure_transition,
    is_terminal,
    validate_mileage_coherence,
)
from taller.services.numbering import next_document_number
from taller.services.technician_service import technician_service
from taller.services.vehicle_service import vehicle_service
from taller.services.work_order_totals import calculate_totals, line_total

# Logger de este módulo
logger = logging.getLogger(__name__)


class WorkOrderService:
    """
    Service de las órdenes de trabajo.

    Es la autoridad sobre la máquina de estados y sobre el cierre de
    la orden: ningún cambio llega a la base de datos sin pasar por
    las validaciones de este service.
    """

    # -------------------------------------------------------------------
    # Validaciones internas
    # -------------------------------------------------------------------

    def _check_open(self, work_order: WorkOrder) -> None:
        """
        Verifica que la orden admita cambios en sus líneas.

        Raises:
            WorkOrderClosedError: si ya tiene remisión o está en estado terminal
        """
        if work_order.sale_id is not None:
            logger.warning("Orden %s cerrada: ya tiene remisión", work_order.order_number)
            raise WorkOrderClosedError(
                f"La orden {work_order.order_number} ya tiene una venta generada",
                extra={"sale_id": str(work_order.sale_id)},
            )
        if is_terminal(work_order.status):
            logger.warning(
                "Orden %s cerrada: estado %s", work_order.order_number, work_order.status
            )
            raise WorkOrderClosedError(
                f"La orden {work_order.order_number} está en estado '{work_order.status}'",
                extra={"status": work_order.status},
            )

    async def _get_warehouse(self, db: AsyncSession, warehouse_id: uuid.UUID) -> Warehouse:
        result = await db.execute(
            select(Warehouse).where(Warehouse.id == warehouse_id, Warehouse.is_active == True)
        )
        warehouse = result.scalar_one_or_none()
        if warehouse is None:
            raise NotFoundError(f"Bodega con ID {warehouse_id} no encontrada")
        return warehouse

    async def _get_product(self, db: AsyncSession, product_id: uuid.UUID) -> Product:
        result = await db.execute(
            select(Product).where(Product.id == product_id, Product.is_active == True)
        )
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFoundError(f"Producto con ID {product_id} no encontrado")
        return product

    async def _build_item(self, db: AsyncSession, data: WorkOrderItemCreate) -> WorkOrderItem:
        """
        Construye la línea a partir de los datos validados.

        El nombre se copia del catálogo cuando no se envía; un producto
        de tipo servicio sin item_type explícito se clasifica como servicio.
        """
        product_name = data.product_name
        item_type = data.item_type

        if data.product_id is not None:
            product = await self._get_product(db, data.product_id)
            if not product_name:
                product_name = product.name
            if "item_type" not in data.model_fields_set and product.product_type == "service":
                item_type = ItemType.SERVICIO

        return WorkOrderItem(
            product_id=data.product_id,
            product_name=product_name,
            item_type=item_type.value,
            quantity=data.quantity,
            unit_price=data.unit_price,
            total=line_total(data.quantity, data.unit_price),
        )

    def _recalculate(self, work_order: WorkOrder) -> None:
        """Recalcula subtotal, IVA y total a partir de las líneas actuales."""
        totals = calculate_totals(
            work_order.items,
            work_order.discount_amount,
            work_order.tax_rate,
        )
        work_order.subtotal = totals.subtotal
        work_order.discount_amount = totals.discount_amount
        work_order.tax_amount = totals.tax_amount
        work_order.total_amount = totals.total_amount

    def mark_delivered(self, work_order: WorkOrder, mileage_out: Optional[int] = None) -> None:
        """
        Pasa la orden a entregado: fecha de entrega y kilometraje del vehículo.

        No toca líneas, totales, checklist ni remisión.
        """
        if mileage_out is not None:
            self._set_mileage_out(work_order, mileage_out)
        work_order.status = WorkOrderStatus.ENTREGADO.value
        work_order.delivered_at = utcnow()
        if work_order.vehicle is not None:
            work_order.vehicle.register_mileage(work_order.mileage_out or work_order.mileage_in)

    def _set_mileage_out(self, work_order: WorkOrder, mileage_out: int) -> None:
        if work_order.mileage_in is not None and mileage_out < work_order.mileage_in:
            raise BusinessValidationError(
                "El kilometraje de salida no puede ser menor al de ingreso",
                extra={"field": "mileage_out", "mileage_in": work_order.mileage_in},
            )
        work_order.mileage_out = mileage_out

    # -------------------------------------------------------------------
    # Consultas
    # -------------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        status_filter: Optional[WorkOrderStatus] = None,
        technician_id: Optional[uuid.UUID] = None,
        vehicle_id: Optional[uuid.UUID] = None,
        customer_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        date_from: Optional[datetime.date] = None,
        date_to: Optional[datetime.date] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[WorkOrder], int]:
        """
        Lista paginada de órdenes, de la más reciente a la más antigua.

        Args:
            db: sesión de base de datos
            status_filter: estado
            technician_id / vehicle_id / customer_id: filtros por referencia
            search: busca en número de orden, placa y problema reportado
            date_from / date_to: rango de fecha de ingreso (inclusivo)
            page: página (desde 1)
            limit: elementos por página

        Returns:
            Tupla (órdenes, total)
        """
        conditions = []

        if status_filter:
            conditions.append(WorkOrder.status == WorkOrderStatus(status_filter).value)
        if technician_id:
            conditions.append(WorkOrder.technician_id == technician_id)
        if vehicle_id:
            conditions.append(WorkOrder.vehicle_id == vehicle_id)
        if customer_id:
            conditions.append(WorkOrder.customer_id == customer_id)
        if date_from:
            start, _ = day_range_utc(date_from, date_from)
            conditions.append(WorkOrder.received_at >= start)
        if date_to:
            _, end = day_range_utc(date_to, date_to)
            conditions.append(WorkOrder.received_at <= end)
        if search:
            search_term = f"%{search.strip()}%"
            conditions.append(
                WorkOrder.order_number.ilike(search_term)
                | Vehicle.plate.ilike(search_term)
                | WorkOrder.problem_description.ilike(search_term)
            )

        query = select(WorkOrder).join(WorkOrder.vehicle)
        count_query = select(func.count(WorkOrder.id)).join(WorkOrder.vehicle)
        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        query = (
            query.order_by(WorkOrder.received_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await db.execute(query)
        work_orders = list(result.scalars().all())

        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperadas %d órdenes de %d", len(work_orders), total)
        return work_orders, total

    async def get_by_id(
        self,
        db: AsyncSession,
        work_order_id: uuid.UUID,
        for_update: bool = False,
    ) -> WorkOrder:
        """
        Orden completa (líneas, vehículo, técnico, remisión).

        Args:
            for_update: bloquea la fila hasta el fin de la transacción

        Raises:
            NotFoundError: si la orden no existe
        """
        query = (
            select(WorkOrder)
            .where(WorkOrder.id == work_order_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=WorkOrder)

        result = await db.execute(query)
        work_order = result.scalar_one_or_none()

        if not work_order:
            logger.warning("Orden de trabajo no encontrada: %s", work_order_id)
            raise NotFoundError(f"Orden de trabajo con ID {work_order_id} no encontrada")

        return work_order

    # -------------------------------------------------------------------
    # Creación y actualización
    # -------------------------------------------------------------------

    async def create(self, db: AsyncSession, data: WorkOrderCreate) -> WorkOrder:
        """
        Crea una orden de trabajo en estado recibido.

        Steps:
        1. Resuelve el vehículo (existente o creado en línea)
        2. Cliente: el enviado o el propietario del vehículo
        3. Valida técnico (activo) y bodega
        4. Genera el número OT-YYYY-NNNNN
        5. Guarda checklist y líneas iniciales y calcula totales

        Raises:
            NotFoundError: vehículo, cliente, técnico, bodega o producto inexistente
            DuplicateError: placa/VIN duplicados en el vehículo en línea
            BusinessValidationError: técnico inactivo
        """
        if data.vehicle is not None:
            vehicle = await vehicle_service.create(db, data.vehicle)
        else:
            vehicle = await vehicle_service.get_by_id(db, data.vehicle_id)

        customer_id = data.customer_id or vehicle.customer_id
        if data.customer_id is not None:
            await vehicle_service.get_customer(db, data.customer_id)

        if data.technician_id is not None:
            await technician_service.get_active(db, data.technician_id)

        if data.warehouse_id is not None:
            await self._get_warehouse(db, data.warehouse_id)

        order_number = await next_document_number(
            db, WorkOrder.order_number, "OT", workshop_today().year, 5
        )

        work_order = WorkOrder(
            order_number=order_number,
            vehicle_id=vehicle.id,
            customer_id=customer_id,
            technician_id=data.technician_id,
            warehouse_id=data.warehouse_id,
            status=WorkOrderStatus.RECIBIDO.value,
            received_at=utcnow(),
            promised_at=data.promised_at,
            mileage_in=data.mileage_in,
            problem_description=data.problem_description,
            notes=data.notes,
            checklist_in=data.checklist.to_storage() if data.checklist else None,
            photos_in=[],
            photos_out=[],
            tax_rate=settings.workshop_tax_rate,
            discount_amount=Decimal("0"),
        )
        work_order.vehicle = vehicle
        work_order.items = [await self._build_item(db, item) for item in data.items or []]
        self._recalculate(work_order)

        vehicle.register_mileage(data.mileage_in)

        db.add(work_order)
        await db.flush()

        logger.info(
            "Orden de trabajo creada: %s (vehículo %s)", work_order.order_number, vehicle.plate
        )
        return await self.get_by_id(db, work_order.id)

    async def update(
        self,
        db: AsyncSession,
        work_order_id: uuid.UUID,
        data: WorkOrderUpdate,
    ) -> WorkOrder:
        """
        Actualiza una orden no terminal.

        NOTA: el estado NO se cambia aquí; usar change_status().

        Raises:
            NotFoundError: si la orden o alguna referencia no existe
            WorkOrderClosedError: si la orden está en estado terminal
            BusinessValidationError: descuento mayor al subtotal, kilometraje incoherente
        """
        work_order = await self.get_by_id(db, work_order_id, for_update=True)

        if is_terminal(work_order.status):
            logger.warning(
                "Actualización rechazada, orden %s en estado %s",
                work_order.order_number,
                work_order.status,
            )
            raise WorkOrderClosedError(
                f"La orden {work_order.order_number} está en estado '{work_order.status}'",
                extra={"status": work_order.status},
            )

        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("customer_id") is not None:
            await vehicle_service.get_customer(db, update_data["customer_id"])
        if update_data.get("technician_id") is not None:
            await technician_service.get_active(db, update_data["technician_id"])
        if update_data.get("warehouse_id") is not None:
            await self._get_warehouse(db, update_data["warehouse_id"])
        if "problem_description" in update_data and update_data["problem_description"] is None:
            update_data.pop("problem_description")

        mileage_out = update_data.pop("mileage_out", None)
        discount = update_data.pop("discount_amount", None)

        for field, value in update_data.items():
            setattr(work_order, field, value)

        if mileage_out is not None:
            self._set_mileage_out(work_order, mileage_out)
        # Valores efectivos: lo enviado combinado con lo ya guardado
        try:
            validate_mileage_coherence(work_order.mileage_in, work_order.mileage_out)
        except ValueError as e:
            raise BusinessValidationError(
                str(e),
                extra={
                    "field": "mileage_in" if "mileage_in" in update_data else "mileage_out",
                    "mileage_in": work_order.mileage_in,
                    "mileage_out": work_order.mileage_out,
                },
            )
        if work_order.vehicle is not None:
            work_order.vehicle.register_mileage(work_order.mileage_in)

        if discount is not None:
            work_order.discount_amount = discount
        self._recalculate(work_order)

        await db.flush()

        logger.info("Orden de trabajo actualizada: %s", work_order.order_number)
        return await self.get_by_id(db, work_order.id)

    # -------------------------------------------------------------------
    # Máquina de estados
    # -------------------------------------------------------------------

    async def change_status(
        self,
        db: AsyncSession,
        work_order_id: uuid.UUID,
        new_status: WorkOrderStatus,
        mileage_out: Optional[int] = None,
    ) -> WorkOrder:
        """
        Cambia el estado de la orden según next_states().

        Al pasar a entregado se registra la fecha de entrega y el
        kilometraje del vehículo; no se genera la remisión.

        Raises:
            NotFoundError: si la orden no existe
            InvalidTransitionError: si la transición no está permitida
        """
        work_order = await self.get_by_id(db, work_order_id, for_update=True)
        old_status = work_order.status
        target = WorkOrderStatus(new_status)

        try:
            ensure_transition(old_status, target)
        except InvalidTransitionError:
            logger.warning(
                "Transición no permitida en %s: %s -> %s",
                work_order.order_number,
                old_status,
                target.value,
            )
            raise

        if target == WorkOrderStatus.ENTREGADO:
            self.mark_delivered(work_order, mileage_out)
        else:
            if mileage_out is not None:
                self._set_mileage_out(work_order, mileage_out)
            work_order.status = target.value

        await db.flush()

        logger.info(
            "Estado de la orden %s: %s -> %s",
            work_order.order_number,
            old_status,
            target.value,
        )
        return await self.get_by_id(db, work_order.id)

    # -------------------------------------------------------------------
    # Líneas de la orden
    # -------------------------------------------------------------------

    async def add_item(
        self,
        db: AsyncSession,
        work_order_id: uuid.UUID,
        item_data: WorkOrderItemCreate,
    ) -> WorkOrder:
        """
        Agrega una línea y recalcula los totales.

        Returns:
            WorkOrder: la orden recargada

        Raises:
            NotFoundError: si la orden o el producto no existen
            WorkOrderClosedError: si la orden está cerrada
        """
        work_order = await self.get_by_id(db, work_order_id, for_update=True)
        self._check_open(work_order)

        item = await self._build_item(db, item_data)
        work_order.items.append(item)
        self._recalculate(work_order)

        await db.flush()

        logger.info(
            "Línea agregada a %s: %s (%s) total=%s",
            work_order.order_number,
            item.product_name,
            item.item_type,
            item.total,
        )
        return await self.get_by_id(db, work_order.id)

    async def remove_item(
        self,
        db: AsyncSession,
        work_order_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> WorkOrder:
        """
        Elimina una línea y recalcula los totales.

        Si el descuento queda mayor que el nuevo subtotal se ajusta al subtotal.

        Raises:
            NotFoundError: si la línea no existe o no pertenece a la orden
            WorkOrderClosedError: si la orden está cerrada
        """
        work_order = await self.get_by_id(db, work_order_id, for_update=True)
        self._check_open(work_order)

        item = next((i for i in work_order.items if i.id == item_id), None)
        if item is None:
            raise NotFoundError(
                f"Línea {item_id} no encontrada en la orden {work_order.order_number}"
            )

        work_order.items.remove(item)

        remaining = sum((i.total for i in work_order.items), Decimal("0"))
        if work_order.discount_amount > remaining:
            logger.info(
                "Descuento de %s ajustado de %s a %s",
                work_order.order_number,
                work_order.discount_amount,
                remaining,
            )
            work_order.discount_amount = remaining
        self._recalculate(work_order)

        await db.flush()

        logger.info("Línea %s eliminada de %s", item_id, work_order.order_number)
        return await self.get_by_id(db, work_order.id)


# Instancia global del service
work_order_service = WorkOrderService()
