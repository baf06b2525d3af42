"""
Cálculo de porcentajes para tasas de asistencia y adherencia
"""
import math


def round_half_up(value: float) -> int:
    """Redondeo comercial (0.5 hacia arriba), no el redondeo bancario de round()"""
    return int(math.floor(value + 0.5))


def percentage(numerator: float, denominator: float) -> int:
    """Porcentaje entero redondeado; 0 si el denominador es 0"""
    if not denominator:
        return 0
    return round_half_up(100 * numerator / denominator)


def clamp_percentage(value: int) -> int:
    return min(100, max(0, value))
