"""
Clave de ventana ("bucket") de una dispensación
"""
from dataclasses import dataclass
from datetime import datetime

from dosewatch.core.frequency import normalize_frequency, start_of_day, start_of_month
from dosewatch.models.dispensation import BucketType


@dataclass(frozen=True)
class Bucket:
    bucket_type: BucketType
    bucket_start: datetime


def bucket_for(instant: datetime, frequency, tz=None) -> Bucket:
    """
    MONTHLY se agrupa por mes de calendario; el resto (incluido TWICE_DAILY,
    cuyo límite se controla por conteo) por día de calendario.
    """
    if normalize_frequency(frequency) == "MONTHLY":
        return Bucket(BucketType.MONTH, start_of_month(instant, tz))
    return Bucket(BucketType.DAY, start_of_day(instant, tz))
