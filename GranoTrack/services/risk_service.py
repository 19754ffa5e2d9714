# services/risk_service.py
"""
Clasificación de riesgo. Escalas cerradas en el límite superior:

Ácido úrico (mg/100g):   <= 5 tolerable | (5, 10] moderadamente peligroso | > 10 crítico
Pérdida económica (Q.):  <= 5,000 bajo | (5,000, 25,000] moderado | (25,000, 50,000] alto | > 50,000 crítico

Sirven igual para un valor semanal que para un acumulado.
"""
from decimal import Decimal
from typing import Any, Union

from enums.enums import NivelAcidoUricoEnum, NivelPerdidaEnum, TipoMetricaEnum
from services.calculation_service import to_decimal

LIMITE_ACIDO_TOLERABLE = Decimal("5")
LIMITE_ACIDO_MODERADO = Decimal("10")

LIMITE_PERDIDA_BAJA = Decimal("5000")
LIMITE_PERDIDA_MODERADA = Decimal("25000")
LIMITE_PERDIDA_ALTA = Decimal("50000")


def classify_acido_urico(valor: Any) -> NivelAcidoUricoEnum:
    x = to_decimal(valor)
    if x <= LIMITE_ACIDO_TOLERABLE:
        return NivelAcidoUricoEnum.tolerable
    if x <= LIMITE_ACIDO_MODERADO:
        return NivelAcidoUricoEnum.moderadamente_peligroso
    return NivelAcidoUricoEnum.critico


def classify_perdida_economica(valor: Any) -> NivelPerdidaEnum:
    x = to_decimal(valor)
    if x <= LIMITE_PERDIDA_BAJA:
        return NivelPerdidaEnum.bajo
    if x <= LIMITE_PERDIDA_MODERADA:
        return NivelPerdidaEnum.moderado
    if x <= LIMITE_PERDIDA_ALTA:
        return NivelPerdidaEnum.alto
    return NivelPerdidaEnum.critico


def classify_risk(valor: Any, kind: Union[TipoMetricaEnum, str]) -> Union[NivelAcidoUricoEnum, NivelPerdidaEnum]:
    """Despacho por tipo de métrica. Un tipo desconocido es error de programación."""
    kind = TipoMetricaEnum(kind)
    if kind == TipoMetricaEnum.acido_urico:
        return classify_acido_urico(valor)
    return classify_perdida_economica(valor)
