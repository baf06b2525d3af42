"""
Dependencias globales de la aplicación
"""
from fastapi import Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import Optional

from dosewatch.core.database import get_db
from dosewatch.core.config import get_settings
from dosewatch.core.security import verify_token
from dosewatch.models.user import User

settings = get_settings()

# El login lo resuelve el proveedor de identidad; aquí sólo se valida el token
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="api/auth/login",
    auto_error=False
)


async def get_current_user(
        token: Optional[str] = Depends(oauth2_scheme),
        db: Session = Depends(get_db)
) -> User:
    """
    Obtener usuario actual del token JWT
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudo validar las credenciales",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    payload = verify_token(token)
    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    try:
        user = db.get(User, int(user_id))
    except ValueError:
        raise credentials_exception

    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Usuario inactivo"
        )

    return user


# Dependencias para paginación de la tabla de seguimiento
class TrackingPageParams:
    def __init__(self, page: int = 1, limit: Optional[int] = None):
        self.page = max(1, page)
        self.limit = min(limit or settings.TRACKING_PAGE_SIZE, settings.MAX_PAGE_SIZE)


def get_tracking_page_params(
        page: int = Query(1, ge=1, description="Página (desde 1)"),
        limit: Optional[int] = Query(None, ge=1, description="Filas por página")
) -> TrackingPageParams:
    """
    Parámetros de paginación
    """
    return TrackingPageParams(page=page, limit=limit)
