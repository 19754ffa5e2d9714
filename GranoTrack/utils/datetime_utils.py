"""
Utilidades centralizadas para manejo de fechas y timestamps.
Todas las operaciones usan America/Guatemala como zona horaria de referencia.

Convención del sistema:
- Si un datetime llega **naive** (sin tzinfo), se interpreta como **hora de Guatemala**.
- Si un datetime llega **aware** (con tzinfo), se convierte a **Guatemala** y se
  persiste como naive (sin tzinfo).
- Las fechas de muestreo, entrada de lote y fumigación son `date` (sin hora).
"""
from datetime import datetime, date
from typing import Optional
from zoneinfo import ZoneInfo

GUATEMALA_TZ = ZoneInfo("America/Guatemala")


def now_guatemala() -> datetime:
    """
    Retorna el datetime actual en zona horaria de Guatemala (naive para DATETIME).
    """
    return datetime.now(GUATEMALA_TZ).replace(tzinfo=None, microsecond=0)


def today_guatemala() -> date:
    """
    Retorna la fecha actual (date) en zona horaria de Guatemala.
    """
    return datetime.now(GUATEMALA_TZ).date()


def to_guatemala_naive(dt: datetime) -> datetime:
    """
    Normaliza un datetime a hora de Guatemala SIN tzinfo (naive) para persistencia.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=None, microsecond=0)
    return dt.astimezone(GUATEMALA_TZ).replace(tzinfo=None, microsecond=0)


def as_date(value: Optional[date | datetime]) -> Optional[date]:
    """Reduce un datetime a su fecha (Guatemala); deja pasar date y None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_guatemala_naive(value).date()
    return value


def days_between(start: date, end: date) -> int:
    """Días completos entre dos fechas (end - start), puede ser negativo."""
    return (end - start).days


def month_key(d: date) -> str:
    """Clave YYYY-MM usada para agrupar muestreos por mes."""
    return f"{d.year}-{d.month:02d}"
