from fastapi import Depends, HTTPException, status

from enums.roles import Role
from utils.security import oauth2_scheme, decode_access_token
from utils.permissions import ViewerContext

def get_viewer(token: str = Depends(oauth2_scheme)) -> ViewerContext:
    payload = decode_access_token(token)
    if not payload or "role" not in payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido o expirado")
    try:
        role = Role(payload["role"])
    except ValueError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Rol no reconocido")
    cliente_id = payload.get("cliente_id")
    if role == Role.cliente and cliente_id is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="El token de cliente no trae cliente_id")
    return ViewerContext(role=role, cliente_id=int(cliente_id) if cliente_id is not None else None)

def require_admin(viewer: ViewerContext = Depends(get_viewer)) -> ViewerContext:
    if not viewer.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operación solo para administradores")
    return viewer
