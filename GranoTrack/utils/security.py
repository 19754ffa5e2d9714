from typing import Optional
from jose import jwt, JWTError
from fastapi.security import OAuth2PasswordBearer

from config.settings import settings

# Los tokens los emite el portal; este servicio solo los valida.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

def create_access_token(claims: dict) -> str:
    return jwt.encode(dict(claims), settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
