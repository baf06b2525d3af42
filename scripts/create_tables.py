#!/usr/bin/env python3
"""
Crea las tablas de DoseWatch y comprueba que el esquema quedó completo
"""
import logging
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dosewatch.core.config import get_settings
from dosewatch.core.database import check_connection, create_tables, missing_tables

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("dosewatch.scripts.create_tables")


def main() -> int:
    settings = get_settings()
    logger.info(f"Esquema DoseWatch en {settings.DB_NAME} ({settings.ENVIRONMENT})")

    if not check_connection():
        return 1

    create_tables()
    missing = missing_tables()
    if missing:
        logger.error(f"Tablas ausentes tras la creación: {', '.join(missing)}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
