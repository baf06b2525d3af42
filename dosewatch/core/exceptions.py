"""
Errores de dominio del motor de dispensación y adherencia
"""
from typing import Optional


class DoseWatchError(Exception):
    """Error base de la aplicación"""
    pass


class DuplicateDispensationError(DoseWatchError):
    """
    Dispensación rechazada por existir otra en la misma ventana de dosificación.

    Se lanza tanto desde la verificación previa como al traducir una violación
    de la restricción única de la base de datos.
    """

    def __init__(self, reason: str, hours_since_last: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.hours_since_last = hours_since_last


class NotFoundError(DoseWatchError):
    """Entidad referenciada inexistente"""

    def __init__(self, entity: str, entity_id=None):
        message = f"{entity} not found"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id
        self.message = message
