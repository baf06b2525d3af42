"""
Configuración de la aplicación DoseWatch (MySQL por defecto, URL sobreescribible)
"""
from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # Información del proyecto
    PROJECT_NAME: str = Field(default="DoseWatch API")
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="production")
    DEBUG: bool = Field(default=False)

    # Configuración del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8081)

    # Seguridad (los tokens los emite el proveedor de identidad)
    SECRET_KEY: str = Field(...)
    ALGORITHM: str = Field(default="HS256")

    # Base de datos MySQL
    DB_HOST: str = Field(default="localhost")
    DB_PORT: int = Field(default=3306)
    DB_NAME: str = Field(default="dosewatch")
    DB_USER: str = Field(default="dosewatch_user")
    DB_PASSWORD: str = Field(default="")
    DB_CHARSET: str = Field(default="utf8mb4")
    DATABASE_URL: Optional[str] = Field(default=None)

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173"
        ]
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    # Calendario de la clínica: define los límites de día y mes
    DEFAULT_TIMEZONE: str = Field(default="UTC")

    # Tabla de seguimiento
    TRACKING_PAGE_SIZE: int = Field(default=100, ge=1)
    MAX_PAGE_SIZE: int = Field(default=1000, ge=1)

    # Ventana de la tasa de adherencia materializada en la inscripción
    ADHERENCE_WINDOW_DAYS: int = Field(default=7, ge=1)

    @property
    def database_url(self) -> str:
        """Construir URL de conexión (MySQL salvo que se indique DATABASE_URL)"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+pymysql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            f"?charset={self.DB_CHARSET}"
        )

    @property
    def is_production(self) -> bool:
        """Verificar si estamos en producción"""
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Obtener configuración con cache"""
    return Settings()
