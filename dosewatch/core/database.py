"""
Configuración de base de datos con SQLAlchemy
"""
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
import logging

# Crear Base ANTES de importar config para evitar import circular
Base = declarative_base()

from dosewatch.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def build_engine(database_url: str, echo: bool = False):
    """
    Crear engine según el backend: pool de conexiones para MySQL,
    conexión única compartida para SQLite en memoria
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=20,
        max_overflow=30,
        pool_pre_ping=True,
        pool_recycle=3600,  # Reciclar conexiones cada hora
        echo=echo,
    )


engine = build_engine(settings.database_url, echo=settings.DEBUG)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency para obtener sesión de base de datos
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """
    Crear todas las tablas si no existen
    """
    # Importar todos los modelos para que se registren
    from dosewatch import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("✅ Tablas creadas/verificadas exitosamente")
    except Exception as e:
        logger.error(f"❌ Error al crear tablas: {e}")
        raise


def missing_tables(bind=None) -> list:
    """Tablas del modelo que aún no existen en la base de datos"""
    from dosewatch import models  # noqa: F401

    existing = set(inspect(bind or engine).get_table_names())
    return sorted(name for name in Base.metadata.tables if name not in existing)


def check_connection() -> bool:
    """
    Probar conexión a la base de datos
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True
    except Exception as e:
        logger.error(f"❌ Error de conexión a la base de datos: {e}")
        return False
