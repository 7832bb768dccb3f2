"""
Service de evidencias fotográficas de la orden
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Fotos de ingreso (in) y de salida (out). Los archivos se guardan en
{upload_dir}/work-orders/{id}/ y se publican en /uploads.
"""

import logging
import uuid
from pathlib import Path
from typing import NamedTuple

from sqlalchemy.ext.asyncio import AsyncSession

from taller.core.config import settings
from taller.core.exceptions import BusinessValidationError, NotFoundError, WorkOrderClosedError
from taller.models import WorkOrder
from taller.models.mixins import utcnow
from taller.schemas.work_order import PhotoPhase, WorkOrderStatus
from taller.services.work_order_service import work_order_service

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/heic": ".heic",
}


class PhotoUpload(NamedTuple):
    """Archivo recibido, ya leído en memoria."""
    filename: str
    content_type: str
    content: bytes


def _photos_attr(phase: PhotoPhase) -> str:
    return "photos_in" if PhotoPhase(phase) == PhotoPhase.IN else "photos_out"


# Claves en session.info con los archivos pendientes de confirmar
_WRITTEN_KEY = "photo_files_written"
_REMOVED_KEY = "photo_files_removed"


def _unlink(paths: list[Path]) -> None:
    for path in paths:
        path.unlink(missing_ok=True)


class PhotoService:
    """
    Alta y baja de fotos por fase.

    La lista se reemplaza completa en cada cambio; dos cargas simultáneas
    sobre la misma orden conservan la última escritura.

    Los archivos siguen a la transacción: usar commit() de este service
    en lugar de db.commit(). Si el commit falla se borran los archivos
    nuevos y se conservan los que se iban a eliminar.
    """

    def _order_dir(self, work_order_id: uuid.UUID) -> Path:
        return Path(settings.upload_dir) / "work-orders" / str(work_order_id)

    async def commit(self, db: AsyncSession) -> None:
        """Confirma la transacción y aplica los cambios de archivos pendientes."""
        written = db.info.pop(_WRITTEN_KEY, [])
        removed = db.info.pop(_REMOVED_KEY, [])
        try:
            await db.commit()
        except Exception:
            logger.error("Commit fallido, se descartan %d fotos nuevas", len(written))
            _unlink(written)
            raise
        _unlink(removed)

    def _check_not_cancelled(self, work_order: WorkOrder) -> None:
        if work_order.status == WorkOrderStatus.CANCELADO.value:
            logger.warning("Fotos rechazadas: %s está cancelada", work_order.order_number)
            raise WorkOrderClosedError(
                f"La orden {work_order.order_number} está cancelada",
                extra={"status": work_order.status},
            )

    def _validate_upload(self, upload: PhotoUpload) -> None:
        content_type = (upload.content_type or "").lower()
        if not content_type.startswith("image/"):
            raise BusinessValidationError(
                f"El archivo {upload.filename} no es una imagen",
                extra={"filename": upload.filename, "content_type": content_type},
            )
        if not upload.content:
            raise BusinessValidationError(
                f"El archivo {upload.filename} está vacío",
                extra={"filename": upload.filename},
            )
        if len(upload.content) > settings.max_photo_size_mb * 1024 * 1024:
            raise BusinessValidationError(
                f"La foto {upload.filename} supera el tamaño máximo de "
                f"{settings.max_photo_size_mb} MB",
                extra={"filename": upload.filename, "size": len(upload.content)},
            )

    async def upload_photos(
        self,
        db: AsyncSession,
        work_order_id: uuid.UUID,
        phase: PhotoPhase,
        uploads: list[PhotoUpload],
    ) -> WorkOrder:
        """
        Guarda un lote de fotos y las agrega a la fase indicada.

        Se valida el lote completo antes de escribir archivos.

        Raises:
            NotFoundError: si la orden no existe
            WorkOrderClosedError: si la orden está cancelada
            BusinessValidationError: tipo, tamaño o cantidad de fotos no permitidos
        """
        work_order = await work_order_service.get_by_id(db, work_order_id, for_update=True)
        self._check_not_cancelled(work_order)

        phase = PhotoPhase(phase)
        attr = _photos_attr(phase)
        photos = list(getattr(work_order, attr) or [])

        if not uploads:
            raise BusinessValidationError("No se recibieron fotos", extra={"field": "photos"})
        if len(photos) + len(uploads) > settings.max_photos_per_phase:
            raise BusinessValidationError(
                f"Máximo {settings.max_photos_per_phase} fotos por fase",
                extra={"phase": phase.value, "current": len(photos), "received": len(uploads)},
            )
        for upload in uploads:
            self._validate_upload(upload)

        target_dir = self._order_dir(work_order.id)
        target_dir.mkdir(parents=True, exist_ok=True)

        written: list[Path] = []
        for upload in uploads:
            content_type = upload.content_type.lower()
            extension = (
                _EXTENSIONS.get(content_type) or Path(upload.filename or "").suffix.lower() or ".img"
            )
            stored_name = f"{phase.value}-{uuid.uuid4().hex}{extension}"
            stored = target_dir / stored_name
            stored.write_bytes(upload.content)
            written.append(stored)
            photos.append(
                {
                    "url": f"/uploads/work-orders/{work_order.id}/{stored_name}",
                    "filename": upload.filename or stored_name,
                    "content_type": content_type,
                    "uploaded_at": utcnow().isoformat(),
                }
            )

        # Columna JSON: lista nueva para que el cambio se detecte
        setattr(work_order, attr, photos)
        try:
            await db.flush()
        except Exception:
            _unlink(written)
            raise
        db.info.setdefault(_WRITTEN_KEY, []).extend(written)

        logger.info(
            "%d fotos agregadas a %s (%s)", len(uploads), work_order.order_number, attr
        )
        return await work_order_service.get_by_id(db, work_order.id)

    async def delete_photo(
        self,
        db: AsyncSession,
        work_order_id: uuid.UUID,
        phase: PhotoPhase,
        index: int,
    ) -> WorkOrder:
        """
        Elimina la foto en la posición `index` de la fase.

        Raises:
            NotFoundError: si la orden o la foto no existen
            WorkOrderClosedError: si la orden está cancelada
        """
        work_order = await work_order_service.get_by_id(db, work_order_id, for_update=True)
        self._check_not_cancelled(work_order)

        attr = _photos_attr(phase)
        photos = list(getattr(work_order, attr) or [])
        if index < 0 or index >= len(photos):
            raise NotFoundError(f"Foto {index} no encontrada en {attr}")

        removed = photos.pop(index)
        setattr(work_order, attr, photos)
        await db.flush()

        # El archivo se borra solo cuando el commit se confirma
        stored = self._order_dir(work_order.id) / Path(removed.get("url", "")).name
        db.info.setdefault(_REMOVED_KEY, []).append(stored)

        logger.info("Foto %s eliminada de %s", removed.get("url"), work_order.order_number)
        return await work_order_service.get_by_id(db, work_order.id)


photo_service = PhotoService()
