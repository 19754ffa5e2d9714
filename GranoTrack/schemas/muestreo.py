from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import Field, condecimal

from schemas.historial import HistorialPerdidaOut
from schemas.shared import ORMModel, WithWarnings

Conteo = Annotated[int, Field(ge=0)]

# =====================================================
# 🟢 INPUT SCHEMAS
# =====================================================

class MuestraIn(ORMModel):
    """Renglón del reporte tal como lo entrega la extracción del PDF."""
    silo: Optional[str] = Field(None, max_length=20, description="Etiqueta del silo, p. ej. AP-07")
    muestra: Optional[str] = Field(None, max_length=20, description="Arriba / Abajo")
    barco: Optional[str] = Field(None, max_length=120)
    tipo_grano: Optional[str] = Field(None, max_length=80)
    fecha_almacenamiento: Optional[date] = None
    dias_almacenamiento: Conteo = 0

    piojillo_acaro: Conteo = 0
    trib_vivos: Conteo = 0
    trib_muertos: Conteo = 0
    rhyz_vivos: Conteo = 0
    rhyz_muertos: Conteo = 0
    chry_vivos: Conteo = 0
    chry_muertos: Conteo = 0
    sito_vivos: Conteo = 0
    sito_muertos: Conteo = 0
    steg_vivos: Conteo = 0
    steg_muertos: Conteo = 0

    observaciones: condecimal(ge=0, max_digits=14, decimal_places=3) = Field(
        Decimal("0"), description="Toneladas observadas en el silo"
    )


class MuestreoCreate(ORMModel):
    """Borrador del reporte (ingesta)."""
    numero_reporte: str = Field(..., min_length=1, max_length=40)
    cliente: str = Field(..., min_length=1, max_length=120)
    fecha_reporte: date
    fecha_servicio: Optional[date] = None
    muestras: List[MuestraIn] = Field(default_factory=list)

    @property
    def fecha_semana(self) -> date:
        return self.fecha_servicio or self.fecha_reporte


class MuestreoUpdate(MuestreoCreate):
    """Reemplazo completo del reporte y sus muestras."""


# =====================================================
# 🟣 OUTPUT SCHEMAS
# =====================================================

class MetricasDanoOut(ORMModel):
    acido_urico: Decimal
    dano_gorgojos_adultos_kg: Decimal
    dano_gorgojos_total_kg: Decimal
    dano_piojillo_kg: Decimal
    dano_total_plaga_kg: Decimal
    perdida_economica: Decimal


class MetricasSiloOut(MetricasDanoOut, WithWarnings):
    """Resultado por silo de un muestreo (sin persistir o ya guardado)."""
    silo: str
    tipo_grano: Optional[str] = None
    barco: Optional[str] = None
    n_muestras: int
    prom_gorgojos_vivos: Decimal
    prom_piojillo: Decimal
    max_tons: Decimal
    tons_usadas: Decimal
    costo_por_kg: Decimal
    lote_id: Optional[int] = None
    nivel_acido_urico: str
    nivel_perdida: str


class CalculoMuestreoOut(WithWarnings):
    nivel_riesgo: str
    silos: List[MetricasSiloOut]


class MuestraOut(MuestraIn):
    muestra_id: int
    muestreo_id: int


class MuestraConMetricasOut(MuestraOut):
    """Muestra + valores derivados de su silo, leídos del historial."""
    acido_urico: Optional[Decimal] = None
    dano_gorgojos_adultos_kg: Optional[Decimal] = None
    dano_gorgojos_total_kg: Optional[Decimal] = None
    dano_piojillo_kg: Optional[Decimal] = None
    dano_total_plaga_kg: Optional[Decimal] = None
    perdida_economica: Optional[Decimal] = None


class MuestreoOut(ORMModel):
    muestreo_id: int
    numero_reporte: str
    cliente: str
    fecha_reporte: date
    fecha_servicio: Optional[date] = None
    nivel_riesgo: str
    total_muestras: int = 0
    silos: List[str] = []
    created_at: datetime
    updated_at: datetime


class MuestreoDetailOut(MuestreoOut, WithWarnings):
    metricas: List[HistorialPerdidaOut] = []
