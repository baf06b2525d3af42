"""
Utilidades de seguridad: tokens JWT emitidos por el proveedor de identidad
"""
from jose import JWTError, jwt
from fastapi import HTTPException, status

from dosewatch.core.config import get_settings

settings = get_settings()


def verify_token(token: str) -> dict:
    """
    Verificar y decodificar token JWT
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido",
            headers={"WWW-Authenticate": "Bearer"},
        )
