"""
Archivo principal de la aplicación FastAPI - DoseWatch
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from dosewatch.core.config import get_settings
from dosewatch.core.database import create_tables, check_connection
from dosewatch.core.exceptions import DuplicateDispensationError, NotFoundError
from dosewatch.api import api_router
import logging

settings = get_settings()

# Configurar logging
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gestión del ciclo de vida de la aplicación"""
    # Startup
    logger.info("🚀 Iniciando DoseWatch API...")
    logger.info(f"🌍 Ambiente: {settings.ENVIRONMENT}")
    logger.info(f"🕒 Zona horaria de la clínica: {settings.DEFAULT_TIMEZONE}")

    # Verificar conexión a la base de datos
    if check_connection():
        logger.info("✅ Conexión a la base de datos exitosa")

        # Crear tablas si no existen
        try:
            create_tables()
            logger.info("✅ Esquema de base de datos verificado")
        except Exception as e:
            logger.error(f"❌ Error al verificar esquema: {e}")
    else:
        logger.error("❌ Error de conexión a la base de datos")
        logger.warning("⚠️ La aplicación continuará pero sin base de datos")

    logger.info("🎯 DoseWatch API lista para recibir requests")
    yield

    # Shutdown
    logger.info("🛑 Cerrando DoseWatch API...")


def create_application() -> FastAPI:
    """Factory function para crear la aplicación FastAPI"""

    app_config = {
        "title": settings.PROJECT_NAME,
        "description": """
## DoseWatch API

Seguimiento de dispensación de medicamentos y asistencia en programas de salud.

### Características principales:
- 💊 Dispensación con prevención de duplicados por ventana de dosificación
- 📋 Tabla de seguimiento con próxima dosis y adherencia
- ⏰ Dosis para hoy y vencidas
- 📈 Progreso de asistencia y adherencia por inscripción
        """,
        "version": settings.VERSION,
        "lifespan": lifespan,
    }

    app = FastAPI(**app_config)

    # Configurar middlewares
    setup_middlewares(app)

    # Configurar manejo de errores de dominio
    setup_exception_handlers(app)

    # Configurar rutas
    setup_routes(app)

    return app


def setup_middlewares(app: FastAPI):
    """Configurar middlewares de la aplicación"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )
    logger.info(f"🌐 Orígenes permitidos: {settings.CORS_ORIGINS}")


def setup_exception_handlers(app: FastAPI):
    """Traducir errores de dominio a respuestas HTTP"""

    @app.exception_handler(DuplicateDispensationError)
    async def duplicate_dispensation_handler(request: Request, exc: DuplicateDispensationError):
        content = {"detail": exc.reason}
        if exc.hours_since_last is not None:
            content["hours_since_last"] = exc.hours_since_last
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})


def setup_routes(app: FastAPI):
    """Configurar rutas de la aplicación"""

    # Endpoint raíz
    @app.get("/")
    async def root():
        return {
            "message": f"🏥 {settings.PROJECT_NAME}",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "documentation": "/docs",
            "health": "/health",
            "api": "/api"
        }

    # Health check general
    @app.get("/health")
    async def health_check():
        """Health check completo de la aplicación"""
        db_status = "connected" if check_connection() else "disconnected"

        return {
            "status": "healthy" if db_status == "connected" else "degraded",
            "service": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "database": {
                "status": db_status
            },
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    # Incluir router principal de la API
    app.include_router(
        api_router,
        prefix="/api"
    )

    logger.info("🛣️ Rutas configuradas correctamente")


# Crear la aplicación
app = create_application()


# Solo para desarrollo con uvicorn run
if __name__ == "__main__":
    import uvicorn

    logger.info("🚀 Iniciando servidor de desarrollo...")
    logger.info(f"🌐 URL: http://{settings.HOST}:{settings.PORT}")

    uvicorn.run(
        "dosewatch.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
