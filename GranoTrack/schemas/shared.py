# schemas/shared.py
from __future__ import annotations

from typing import List

from pydantic import BaseModel


# -------------------------------------------------------------------
# Base común para todos los schemas (Pydantic v2)
# -------------------------------------------------------------------
class ORMModel(BaseModel):
    """
    Modelo base para schemas.
    - from_attributes=True: permite construir el schema desde objetos ORM.
    - populate_by_name=True: habilita usar 'alias' si decides nombrar distinto.
    - str_strip_whitespace=True: limpia espacios en strings.
    """
    model_config = {
        "from_attributes": True,
        "populate_by_name": True,
        "str_strip_whitespace": True,
    }


class Msg(BaseModel):
    """Respuesta simple con mensaje plano (útil para deletes, acciones, etc.)."""
    detail: str


class WithWarnings(ORMModel):
    """Advertencias de calidad de datos; nunca bloquean el cálculo."""
    advertencias: List[str] = []


__all__ = [
    "ORMModel",
    "Msg",
    "WithWarnings",
]
