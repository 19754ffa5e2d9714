"""
Visibilidad de silos por usuario.

El contexto del usuario se pasa EXPLÍCITAMENTE a cada consulta (ViewerContext);
ningún servicio lee el usuario actual de estado global.

- admin: ve todos los silos
- cliente: solo los silos cuyo cliente_id coincide con el suyo
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Set

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from enums.roles import Role
from models.silo import Silo
from services.catalog_service import format_silo_label, parse_silo_label


@dataclass(frozen=True)
class ViewerContext:
    role: Role
    cliente_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


ADMIN_VIEWER = ViewerContext(role=Role.admin)


def visible_silos(db: Session, viewer: ViewerContext) -> list[Silo]:
    """Silos activos que el usuario puede ver, ordenados por número."""
    q = db.query(Silo).filter(Silo.is_active.is_(True))
    if not viewer.is_admin:
        q = q.filter(Silo.cliente_id == viewer.cliente_id)
    return q.order_by(Silo.numero).all()


def visible_silo_labels(db: Session, viewer: ViewerContext) -> Optional[Set[str]]:
    """
    Etiquetas AP-NN visibles.

    None significa "sin restricción" (admin), para no filtrar filas del historial
    cuyo silo no está dado de alta en el catálogo.
    """
    if viewer.is_admin:
        return None
    return {format_silo_label(s.numero) for s in visible_silos(db, viewer)}


def can_view_silo(db: Session, viewer: ViewerContext, silo_label: str) -> bool:
    if viewer.is_admin:
        return True
    numero = parse_silo_label(silo_label)
    if numero is None:
        return False
    silo = db.query(Silo).filter(Silo.numero == numero).first()
    return silo is not None and silo.cliente_id == viewer.cliente_id


def ensure_viewer_can_see_silo(db: Session, viewer: ViewerContext, silo_label: str) -> None:
    if not can_view_silo(db, viewer, silo_label):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"El silo {silo_label} no está asignado a su cuenta"
        )
