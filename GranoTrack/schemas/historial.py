from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import field_validator

from schemas.shared import ORMModel, WithWarnings


class HistorialPerdidaOut(ORMModel):
    historial_id: int
    muestreo_id: int
    lote_id: Optional[int] = None
    silo: str
    fecha_semana: date
    tipo_grano: Optional[str] = None

    total_gorgojos_vivos: Decimal
    total_piojillo: Decimal
    total_tons: Decimal

    acido_urico: Decimal
    dano_gorgojos_adultos_kg: Decimal
    dano_gorgojos_total_kg: Decimal
    dano_piojillo_kg: Decimal
    dano_total_plaga_kg: Decimal
    perdida_economica: Decimal

    advertencias: List[str] = []

    created_at: datetime
    updated_at: datetime

    @field_validator("advertencias", mode="before")
    @classmethod
    def split_advertencias(cls, v):
        # en la BD se guardan separadas por coma
        if isinstance(v, str):
            return [a for a in v.split(",") if a]
        return v or []


class MetricasAcumuladasOut(WithWarnings):
    acido_urico: Decimal
    dano_gorgojos_adultos_kg: Decimal
    dano_gorgojos_total_kg: Decimal
    dano_piojillo_kg: Decimal
    dano_total_plaga_kg: Decimal
    perdida_economica: Decimal
    total_gorgojos_vivos: Decimal
    total_piojillo: Decimal
    n_registros: int
    primera_semana: Optional[date] = None
    ultima_semana: Optional[date] = None

    nivel_acido_urico: Optional[str] = None
    nivel_perdida: Optional[str] = None


class AcumuladoPorTipoOut(ORMModel):
    tipos: Dict[str, MetricasAcumuladasOut]


class ResumenLoteOut(WithWarnings):
    lote_id: int
    origen: Optional[str] = None
    tipo_grano: Optional[str] = None
    fecha_entrada: Optional[date] = None
    silo_actual: str
    silo_numero: int
    n_registros: int
    perdida_total: Decimal
    acido_urico_acumulado: Decimal
    dano_total_kg: Decimal
    primera_semana: Optional[date] = None
    ultima_semana: Optional[date] = None
    dias_almacenados: Optional[int] = None
    ultima_gasificacion: Optional[date] = None
    nivel_perdida: Optional[str] = None


class ClasificacionOut(ORMModel):
    valor: Decimal
    tipo: str
    nivel: str


__all__ = [
    "HistorialPerdidaOut",
    "MetricasAcumuladasOut",
    "AcumuladoPorTipoOut",
    "ResumenLoteOut",
    "ClasificacionOut",
]
