"""
Servicio de registro de actividad (no crítico)
"""
from sqlalchemy.orm import Session
from typing import Optional, Dict, Any

from dosewatch.models.activity_log import ActivityLog, ActivityType
import logging

logger = logging.getLogger(__name__)


class ActivityService:
    """Registro de actividad del personal; sus fallos nunca interrumpen la operación principal"""

    def __init__(self, db: Session):
        self.db = db

    def log(
            self,
            activity_type: ActivityType,
            description: str,
            user_id: Optional[int] = None,
            details: Optional[Dict[str, Any]] = None
    ) -> Optional[ActivityLog]:
        """Registrar actividad; devuelve None si no se pudo guardar"""
        try:
            entry = ActivityLog(
                type=activity_type,
                description=description,
                user_id=user_id,
                details=details or {}
            )
            self.db.add(entry)
            self.db.commit()
            return entry
        except Exception as e:
            self.db.rollback()
            logger.warning(f"No se pudo registrar la actividad '{description}': {e}")
            return None
