# services/aggregation_service.py
"""
Agrega las muestras de UN muestreo por silo.

Por silo:
- prom_gorgojos_vivos: promedio por muestra de (trib + rhyz + chry + sito + steg vivos)
- prom_piojillo: promedio por muestra de piojillo/ácaro
- max_tons: MÁXIMO de observaciones (tonelaje). No se promedia: es la estimación
  del llenado del silo y no debe diluirse entre muestras.
- tipo_grano / barco: primer valor no vacío del grupo

Acepta filas ORM (Muestra) o schemas (MuestraIn): solo se leen atributos.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from enums.enums import AdvertenciaEnum, NivelRiesgoReporteEnum
from services.calculation_service import to_decimal, quantize_metric
from services.catalog_service import normalize_silo_label, resolve_grain_type

logger = logging.getLogger(__name__)

ESPECIES = ("trib", "rhyz", "chry", "sito", "steg")


@dataclass
class AgregadoSilo:
    silo: str
    prom_gorgojos_vivos: Decimal
    prom_piojillo: Decimal
    max_tons: Decimal
    tipo_grano: Optional[str]
    barco: Optional[str]
    n_muestras: int
    advertencias: List[str] = field(default_factory=list)


# ==================== CONTEOS POR MUESTRA ====================

def _count(muestra, attr: str) -> int:
    return int(getattr(muestra, attr, 0) or 0)


def count_live_weevils(muestra) -> int:
    """Gorgojos vivos de las cinco especies (sin piojillo)."""
    return sum(_count(muestra, f"{e}_vivos") for e in ESPECIES)


def count_dead_insects(muestra) -> int:
    return sum(_count(muestra, f"{e}_muertos") for e in ESPECIES)


def count_total_insects(muestra) -> int:
    """Vivos + muertos + piojillo, como se reporta en el encabezado del muestreo."""
    return count_live_weevils(muestra) + count_dead_insects(muestra) + _count(muestra, "piojillo_acaro")


# ==================== AGRUPACIÓN ====================

def group_by_silo(muestras: Iterable) -> "OrderedDict[str, list]":
    """
    Agrupa por etiqueta de silo normalizada (AP-7 y AP-07 son el mismo silo).
    Las muestras sin silo se ignoran.
    """
    grupos: "OrderedDict[str, list]" = OrderedDict()
    for m in muestras:
        silo = normalize_silo_label(getattr(m, "silo", None))
        if silo is None:
            continue
        grupos.setdefault(silo, []).append(m)
    return grupos


def count_samples_without_silo(muestras: Iterable) -> int:
    return sum(1 for m in muestras if normalize_silo_label(getattr(m, "silo", None)) is None)


def _first_non_empty(values: Iterable[Optional[str]]) -> Optional[str]:
    for v in values:
        if v:
            return v
    return None


def aggregate_group(silo: str, muestras: List) -> AgregadoSilo:
    n = len(muestras)
    advertencias: List[str] = []

    total_vivos = sum(count_live_weevils(m) for m in muestras)
    total_piojillo = sum(_count(m, "piojillo_acaro") for m in muestras)
    max_tons = max((to_decimal(getattr(m, "observaciones", 0)) for m in muestras), default=Decimal("0"))

    tipos = [resolve_grain_type(getattr(m, "tipo_grano", None)) for m in muestras]
    tipo_grano = _first_non_empty(tipos)
    if tipo_grano is None:
        advertencias.append(AdvertenciaEnum.tipo_grano_faltante.value)
    elif len({t.lower() for t in tipos if t}) > 1:
        advertencias.append(AdvertenciaEnum.tipo_grano_inconsistente.value)
        logger.warning("Silo %s con tipos de grano distintos %s; se usa '%s'", silo, tipos, tipo_grano)

    barco = _first_non_empty(" ".join((getattr(m, "barco", None) or "").split()) for m in muestras)

    return AgregadoSilo(
        silo=silo,
        prom_gorgojos_vivos=quantize_metric(Decimal(total_vivos) / Decimal(n)),
        prom_piojillo=quantize_metric(Decimal(total_piojillo) / Decimal(n)),
        max_tons=max_tons if max_tons > 0 else Decimal("0"),
        tipo_grano=tipo_grano,
        barco=barco,
        n_muestras=n,
        advertencias=advertencias,
    )


def aggregate_samples(muestras: Iterable) -> List[AgregadoSilo]:
    """Un agregado por silo, en el orden en que aparecen los silos en el reporte."""
    return [aggregate_group(silo, grupo) for silo, grupo in group_by_silo(muestras).items()]


# ==================== NIVEL DE RIESGO DEL REPORTE ====================

def calculate_report_risk_level(muestras: Iterable) -> NivelRiesgoReporteEnum:
    """
    Nivel del reporte según insectos totales promedio POR SILO (no por muestra).

    > 10 crítico, > 5 alto, > 0 medio, 0 bajo.
    """
    muestras = list(muestras)
    n_silos = len(group_by_silo(muestras))
    if n_silos == 0:
        return NivelRiesgoReporteEnum.bajo

    promedio = Decimal(sum(count_total_insects(m) for m in muestras)) / Decimal(n_silos)
    if promedio > 10:
        return NivelRiesgoReporteEnum.critico
    if promedio > 5:
        return NivelRiesgoReporteEnum.alto
    if promedio > 0:
        return NivelRiesgoReporteEnum.medio
    return NivelRiesgoReporteEnum.bajo
