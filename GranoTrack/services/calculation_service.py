"""
Servicio de cálculos de daño por plagas y pérdida económica.

Entrada: el agregado de un silo dentro de un muestreo (ver aggregation_service)
y el costo por kg del grano. Funciones puras, sin acceso a BD.

Cada valor se redondea a 6 decimales ANTES de usarse en los cálculos que dependen
de él, así:
- dano_gorgojos_total_kg == dano_gorgojos_adultos_kg * 6 exactamente
- dano_total_plaga_kg == dano_gorgojos_total_kg + dano_piojillo_kg exactamente
- recalcular desde las mismas muestras da los mismos valores que quedaron en BD
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List

from enums.enums import AdvertenciaEnum

Q6 = Decimal("0.000001")

FACTOR_LARVAS = Decimal("6")          # larvas no visibles por cada adulto
DIAS_SEMANA = Decimal("7")
CONSUMO_GORGOJO = Decimal("0.000001")  # kg de grano por gorgojo por kg almacenado por día
CONSUMO_PIOJILLO = Decimal("0.00000033")


def to_decimal(value: Any) -> Decimal:
    """Convierte int/float/str/Decimal/None a Decimal (None -> 0)."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_metric(value: Decimal) -> Decimal:
    return value.quantize(Q6)


@dataclass
class MetricasDano:
    """Los seis valores derivados de un (muestreo, silo)."""
    acido_urico: Decimal
    dano_gorgojos_adultos_kg: Decimal
    dano_gorgojos_total_kg: Decimal
    dano_piojillo_kg: Decimal
    dano_total_plaga_kg: Decimal
    perdida_economica: Decimal
    advertencias: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "acido_urico": self.acido_urico,
            "dano_gorgojos_adultos_kg": self.dano_gorgojos_adultos_kg,
            "dano_gorgojos_total_kg": self.dano_gorgojos_total_kg,
            "dano_piojillo_kg": self.dano_piojillo_kg,
            "dano_total_plaga_kg": self.dano_total_plaga_kg,
            "perdida_economica": self.perdida_economica,
        }


# ==================== CÁLCULOS BÁSICOS ====================

def calculate_acido_urico(prom_gorgojos_vivos: Decimal, tons: Decimal) -> Decimal:
    """
    Ácido úrico (mg/100g), proxy de contaminación.

    Fórmula:
    acido_urico = ((gorgojos × 0.1 + gorgojos × 6 × 0.1) × 7 / 10) × (tons / 1000)
    """
    g = to_decimal(prom_gorgojos_vivos)
    base = (g * Decimal("0.1") + g * FACTOR_LARVAS * Decimal("0.1")) * DIAS_SEMANA / Decimal("10")
    return quantize_metric(base * (to_decimal(tons) / Decimal("1000")))


def calculate_dano_gorgojos_adultos_kg(prom_gorgojos_vivos: Decimal, tons: Decimal) -> Decimal:
    """
    Fórmula:
    dano_adultos_kg = gorgojos × (tons × 1000) × 0.000001 × 7
    """
    tons_kg = to_decimal(tons) * Decimal("1000")
    return quantize_metric(to_decimal(prom_gorgojos_vivos) * tons_kg * CONSUMO_GORGOJO * DIAS_SEMANA)


def calculate_dano_gorgojos_total_kg(dano_adultos_kg: Decimal) -> Decimal:
    """Adultos × 6 (incluye larvas no visibles)."""
    return quantize_metric(to_decimal(dano_adultos_kg) * FACTOR_LARVAS)


def calculate_dano_piojillo_kg(prom_piojillo: Decimal, tons: Decimal) -> Decimal:
    """
    Fórmula:
    dano_piojillo_kg = piojillo × (tons × 1000) × 0.00000033 × 7
    """
    tons_kg = to_decimal(tons) * Decimal("1000")
    return quantize_metric(to_decimal(prom_piojillo) * tons_kg * CONSUMO_PIOJILLO * DIAS_SEMANA)


def calculate_perdida_economica(dano_total_kg: Decimal, costo_por_kg: Decimal) -> Decimal:
    """Pérdida semanal (Q.) = daño total kg × costo por kg."""
    return quantize_metric(to_decimal(dano_total_kg) * to_decimal(costo_por_kg))


# ==================== CÁLCULO COMPLETO ====================

def calculate_damage(agregado, costo_por_kg: Any) -> MetricasDano:
    """
    Métricas de daño de un silo en un muestreo.

    `agregado` necesita prom_gorgojos_vivos, prom_piojillo y max_tons.
    Costo 0 (no resuelto) deja la pérdida en 0 y agrega la advertencia `costo_no_resuelto`.
    """
    tons = to_decimal(agregado.max_tons)

    acido = calculate_acido_urico(agregado.prom_gorgojos_vivos, tons)
    adultos = calculate_dano_gorgojos_adultos_kg(agregado.prom_gorgojos_vivos, tons)
    total_gorgojos = calculate_dano_gorgojos_total_kg(adultos)
    piojillo = calculate_dano_piojillo_kg(agregado.prom_piojillo, tons)
    total_plaga = quantize_metric(total_gorgojos + piojillo)

    costo = to_decimal(costo_por_kg)
    advertencias = []
    if costo <= 0:
        advertencias.append(AdvertenciaEnum.costo_no_resuelto.value)
        costo = Decimal("0")

    return MetricasDano(
        acido_urico=acido,
        dano_gorgojos_adultos_kg=adultos,
        dano_gorgojos_total_kg=total_gorgojos,
        dano_piojillo_kg=piojillo,
        dano_total_plaga_kg=total_plaga,
        perdida_economica=calculate_perdida_economica(total_plaga, costo),
        advertencias=advertencias,
    )

