"""
Numeración de documentos
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Consecutivos anuales con prefijo:
- OT-YYYY-NNNNN  órdenes de trabajo
- REM-YYYY-NNNNN remisiones
- LIQ-YYYY-NNNN  liquidaciones de comisión
"""

import logging
import zlib

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from taller.core.exceptions import ConflictError

logger = logging.getLogger(__name__)


def _lock_key(prefix: str, year: int) -> int:
    """Clave del advisory lock, distinta por prefijo y año."""
    return zlib.crc32(f"{prefix}-{year}".encode())


async def next_document_number(
    db: AsyncSession,
    column: InstrumentedAttribute,
    prefix: str,
    year: int,
    width: int,
) -> str:
    """
    Genera el siguiente número del consecutivo anual.

    En PostgreSQL toma un advisory lock de transacción: SELECT FOR UPDATE
    no bloquea nada cuando todavía no hay documentos en el año.
    La restricción unique de la columna cubre los demás motores.

    Args:
        db: sesión de base de datos
        column: columna del número (ej. WorkOrder.order_number)
        prefix: prefijo del documento (OT, REM, LIQ)
        year: año del consecutivo
        width: dígitos del consecutivo

    Returns:
        str: número formateado, ej. "OT-2025-00001"

    Raises:
        ConflictError: si se agota el consecutivo del año
    """
    if db.get_bind().dialect.name == "postgresql":
        await db.execute(
            text("SELECT pg_advisory_xact_lock(:lock_key)"),
            {"lock_key": _lock_key(prefix, year)},
        )

    year_prefix = f"{prefix}-{year}-"
    result = await db.execute(
        select(column)
        .where(column.like(f"{year_prefix}%"))
        .order_by(column.desc())
        .limit(1)
    )
    last_number = result.scalar_one_or_none()

    if last_number:
        try:
            sequence = int(last_number.rsplit("-", 1)[1]) + 1
        except (IndexError, ValueError):
            logger.error("Formato de número inválido en base de datos: %s", last_number)
            raise ConflictError(f"No fue posible generar el número: formato inválido '{last_number}'")
    else:
        sequence = 1

    if sequence >= 10 ** width:
        raise ConflictError(f"Se alcanzó el máximo de documentos {prefix} para el año {year}")

    return f"{year_prefix}{sequence:0{width}d}"
