"""
Utilidades de fechas para la zona horaria de Bolivia (UTC-4, sin horario de verano).

El backend guarda las fechas en UTC; aquí se convierten a hora local para
mostrar y para calcular rangos de reportes.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Optional, Union

from cajapos.core.config import settings

BOLIVIA_TZ = timezone(timedelta(hours=settings.TIMEZONE_OFFSET_HOURS), name="BOT")

MONTHS_SHORT = ["ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic"]
DAY_NAMES = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]

DateInput = Union[datetime, date, str]


def to_datetime(value: DateInput) -> datetime:
    """Normalizar a datetime con zona; los valores sin zona se toman como UTC"""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=BOLIVIA_TZ)

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def to_bolivia_time(value: DateInput) -> datetime:
    return to_datetime(value).astimezone(BOLIVIA_TZ)


def get_current_bolivia_time() -> datetime:
    return datetime.now(timezone.utc).astimezone(BOLIVIA_TZ)


def format_date(value: DateInput, include_time: bool = True) -> str:
    """
    Formatear para la interfaz.

    Ejemplo: "19 oct 2026, 14:05" o "19 oct 2026" sin hora.
    """
    local = to_bolivia_time(value)
    text = f"{local.day} {MONTHS_SHORT[local.month - 1]} {local.year}"
    if include_time:
        text += f", {local:%H:%M}"
    return text


def get_start_of_day(value: Optional[DateInput] = None) -> datetime:
    local = to_bolivia_time(value) if value is not None else get_current_bolivia_time()
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def get_end_of_day(value: Optional[DateInput] = None) -> datetime:
    local = to_bolivia_time(value) if value is not None else get_current_bolivia_time()
    return local.replace(hour=23, minute=59, second=59, microsecond=999000)


def to_bolivia_iso_string(value: Optional[DateInput] = None) -> str:
    local = to_bolivia_time(value) if value is not None else get_current_bolivia_time()
    return local.isoformat(timespec="milliseconds")


def get_day_range(value: Optional[DateInput] = None) -> Dict[str, datetime]:
    return {"start": get_start_of_day(value), "end": get_end_of_day(value)}


def is_today(value: DateInput) -> bool:
    return to_bolivia_time(value).date() == get_current_bolivia_time().date()


def get_day_name(value: DateInput) -> str:
    return DAY_NAMES[to_bolivia_time(value).weekday()]
