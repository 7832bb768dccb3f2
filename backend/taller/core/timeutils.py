"""
Utilidades de fecha/hora del taller
Proyecto: Taller (Órdenes de Trabajo y Liquidación de Comisiones)

Las fechas de calendario (vencimientos, períodos de liquidación,
reportes) se interpretan en la zona horaria del taller; los instantes
se guardan en UTC.
"""

import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from taller.core.config import settings


def workshop_tz() -> ZoneInfo:
    """Zona horaria configurada del taller."""
    return ZoneInfo(settings.timezone)


def workshop_today() -> datetime.date:
    """Fecha actual en la zona horaria del taller."""
    return datetime.datetime.now(workshop_tz()).date()


def as_utc(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """
    Normaliza un instante a UTC con tzinfo.

    Algunos drivers (SQLite) devuelven datetimes sin zona: se asumen UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def local_date(value: Optional[datetime.datetime]) -> Optional[datetime.date]:
    """Fecha de calendario del taller correspondiente a un instante."""
    if value is None:
        return None
    return as_utc(value).astimezone(workshop_tz()).date()


def day_range_utc(
    date_from: datetime.date,
    date_to: datetime.date,
) -> tuple[datetime.datetime, datetime.datetime]:
    """
    Límites UTC del período [date_from 00:00, date_to 23:59:59.999999].

    Returns:
        (inicio, fin) ambos inclusivos
    """
    tz = workshop_tz()
    start = datetime.datetime.combine(date_from, datetime.time.min, tzinfo=tz)
    end = datetime.datetime.combine(date_to, datetime.time.max, tzinfo=tz)
    return start.astimezone(datetime.timezone.utc), end.astimezone(datetime.timezone.utc)
