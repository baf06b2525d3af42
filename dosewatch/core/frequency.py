"""
Calendario de frecuencias: ventanas de fechas, próxima dosis y ocurrencias esperadas.

Funciones puras. Todos los instantes se manejan como datetime naive en UTC;
los límites de día y mes se calculan en la zona horaria de la clínica.
"""
import calendar
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Callable, Dict, Optional
from zoneinfo import ZoneInfo

DAY = timedelta(days=1)


@dataclass(frozen=True)
class DateRange:
    """Rango cerrado [start, end] en UTC naive"""
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= to_utc_naive(instant) <= self.end


def utcnow() -> datetime:
    """Instante actual en UTC naive"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(instant: datetime) -> datetime:
    """Normalizar un datetime a UTC naive (los naive se asumen en UTC)"""
    if instant.tzinfo is not None:
        return instant.astimezone(timezone.utc).replace(tzinfo=None)
    return instant


def resolve_timezone(tz=None) -> tzinfo:
    """Aceptar un tzinfo, un nombre IANA o None (UTC)"""
    if tz is None:
        return timezone.utc
    if isinstance(tz, tzinfo):
        return tz
    if str(tz).strip().upper() == "UTC":
        return timezone.utc
    return ZoneInfo(str(tz))


def _to_local(instant: datetime, tz: tzinfo) -> datetime:
    return to_utc_naive(instant).replace(tzinfo=timezone.utc).astimezone(tz)


def _from_local(local: datetime) -> datetime:
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day(instant: datetime, tz=None) -> datetime:
    tz = resolve_timezone(tz)
    local = _to_local(instant, tz)
    return _from_local(datetime(local.year, local.month, local.day, tzinfo=tz))


def end_of_day(instant: datetime, tz=None) -> datetime:
    tz = resolve_timezone(tz)
    local = _to_local(instant, tz)
    return _from_local(datetime(local.year, local.month, local.day, 23, 59, 59, 999999, tzinfo=tz))


def start_of_month(instant: datetime, tz=None) -> datetime:
    tz = resolve_timezone(tz)
    local = _to_local(instant, tz)
    return _from_local(datetime(local.year, local.month, 1, tzinfo=tz))


def end_of_month(instant: datetime, tz=None) -> datetime:
    tz = resolve_timezone(tz)
    local = _to_local(instant, tz)
    last_day = calendar.monthrange(local.year, local.month)[1]
    return _from_local(datetime(local.year, local.month, last_day, 23, 59, 59, 999999, tzinfo=tz))


def local_date(instant: datetime, tz=None) -> date:
    """Fecha de calendario del instante en la zona de la clínica"""
    return _to_local(instant, resolve_timezone(tz)).date()


def date_start(day: date, tz=None) -> datetime:
    """Medianoche de una fecha de calendario de la clínica, en UTC naive"""
    tz = resolve_timezone(tz)
    return _from_local(datetime(day.year, day.month, day.day, tzinfo=tz))


def add_months(instant: datetime, months: int) -> datetime:
    """Sumar meses de calendario ajustando al último día del mes destino"""
    month_index = instant.month - 1 + months
    year = instant.year + month_index // 12
    month = month_index % 12 + 1
    day = min(instant.day, calendar.monthrange(year, month)[1])
    return instant.replace(year=year, month=month, day=day)


def days_between(start: datetime, end: datetime) -> int:
    """Valor absoluto de ceil((end - start) / 1 día)"""
    delta = to_utc_naive(end) - to_utc_naive(start)
    return abs(math.ceil(delta / DAY))


def _daily_window(reference: datetime, tz) -> DateRange:
    return DateRange(start_of_day(reference, tz), end_of_day(reference, tz))


def _monthly_window(reference: datetime, tz) -> DateRange:
    return DateRange(start_of_month(reference, tz), end_of_month(reference, tz))


def _trailing_week_window(reference: datetime, tz) -> DateRange:
    # Ventana móvil de 7 días hacia atrás, no la semana de calendario
    reference = to_utc_naive(reference)
    return DateRange(reference - timedelta(days=7), reference)


def _next_calendar_month(last: datetime, tz: tzinfo) -> datetime:
    # El mes se suma sobre la fecha local de la clínica
    return _from_local(add_months(_to_local(last, tz), 1))


@dataclass(frozen=True)
class FrequencyRule:
    """Comportamiento de calendario asociado a una frecuencia"""
    window: Callable[[datetime, tzinfo], DateRange]
    advance: Callable[[datetime, tzinfo], datetime]
    occurrences: Callable[[int], int]


FREQUENCY_RULES: Dict[str, FrequencyRule] = {
    "DAILY": FrequencyRule(
        window=_daily_window,
        advance=lambda last, tz: last + timedelta(days=1),
        occurrences=lambda days: days,
    ),
    "TWICE_DAILY": FrequencyRule(
        window=_daily_window,
        advance=lambda last, tz: last + timedelta(hours=12),
        occurrences=lambda days: days * 2,
    ),
    "WEEKLY": FrequencyRule(
        window=_trailing_week_window,
        advance=lambda last, tz: last + timedelta(days=7),
        occurrences=lambda days: math.ceil(days / 7),
    ),
    "MONTHLY": FrequencyRule(
        window=_monthly_window,
        advance=_next_calendar_month,
        # Aproximación fija de 30 días, no meses de calendario
        occurrences=lambda days: math.ceil(days / 30),
    ),
}


def normalize_frequency(frequency) -> Optional[str]:
    """
    Clave canónica de la tabla de reglas para una frecuencia.

    Acepta MedicationFrequency, SessionFrequency o texto libre
    ("Twice Daily", "twice_daily", "weekly"...). Devuelve None si no se reconoce.
    """
    if frequency is None:
        return None
    value = getattr(frequency, "value", frequency)
    key = str(value).strip().upper().replace(" ", "_").replace("-", "_")
    return key if key in FREQUENCY_RULES else None


def rule_for(frequency) -> Optional[FrequencyRule]:
    key = normalize_frequency(frequency)
    return FREQUENCY_RULES[key] if key else None


def date_range(frequency, reference: datetime, tz=None) -> DateRange:
    """
    Ventana de la frecuencia alrededor de `reference`.

    DAILY: día de calendario. MONTHLY: mes de calendario. WEEKLY: los 7 días
    anteriores a `reference`. Cualquier otro valor usa el día de calendario.
    """
    rule = rule_for(frequency)
    window = rule.window if rule else _daily_window
    return window(reference, resolve_timezone(tz))


def next_due_date(last: datetime, frequency, tz=None) -> datetime:
    """Fecha de la próxima dosis; una frecuencia desconocida devuelve `last` sin cambios"""
    rule = rule_for(frequency)
    if rule is None:
        return last
    return rule.advance(to_utc_naive(last), resolve_timezone(tz))


def expected_occurrences(frequency, start: datetime, end: datetime) -> int:
    """Número teórico de dosis o sesiones entre dos instantes"""
    rule = rule_for(frequency)
    if rule is None:
        return 0
    return rule.occurrences(days_between(start, end))
