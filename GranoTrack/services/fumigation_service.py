# services/fumigation_service.py
"""
Recomendación de fumigación (gasificación y encarpado) por silo.

Entradas, con filtro de residencia actual:
- pérdida económica acumulada del silo
- ácido úrico acumulado del silo
- días desde la última gasificación registrada para el silo (None si nunca)

Se recomienda cuando:
1. días > 45 y pérdida > 0 y ácido úrico > 0, o
2. no hay gasificación previa y (pérdida > 5,000 o ácido úrico > 5)

Los silos sin lotes no se evalúan.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from config.settings import settings
from models.fumigacion import Fumigacion
from services.accumulation_service import accumulate_for_silo
from services.calculation_service import to_decimal
from services.catalog_service import format_silo_label, get_resident_batches
from utils.datetime_utils import as_date, today_guatemala
from utils.permissions import ViewerContext, visible_silos

logger = logging.getLogger(__name__)


@dataclass
class Recomendacion:
    recomendar: bool
    razones: List[str] = field(default_factory=list)


# ==================== GASIFICACIONES ====================

def get_last_gasification(db: Session, silo_label: str) -> Optional[Fumigacion]:
    return (
        db.query(Fumigacion)
        .filter(
            Fumigacion.silo == silo_label,
            Fumigacion.servicio_id == settings.SERVICIO_GASIFICACION_ID,
        )
        .order_by(Fumigacion.fecha_fumigacion.desc(), Fumigacion.fumigacion_id.desc())
        .first()
    )


def days_since(fecha: Optional[date], hoy: Optional[date] = None) -> Optional[int]:
    """Días entre `fecha` y hoy; nunca negativo. None si no hay fecha."""
    if fecha is None:
        return None
    hoy = hoy or today_guatemala()
    return max(0, (as_date(hoy) - as_date(fecha)).days)


# ==================== REGLAS ====================

def evaluate_recommendation(perdida: Any, acido_urico: Any, dias: Optional[int]) -> Recomendacion:
    perdida = to_decimal(perdida)
    acido = to_decimal(acido_urico)
    razones: List[str] = []

    if dias is not None:
        if dias > settings.DIAS_MAX_SIN_GASIFICACION and perdida > 0 and acido > 0:
            razones.append(
                f"Han pasado {dias} días desde la última gasificación "
                f"(máximo {settings.DIAS_MAX_SIN_GASIFICACION}) y hay pérdida acumulada"
            )
        return Recomendacion(recomendar=bool(razones), razones=razones)

    umbral_perdida = Decimal(str(settings.UMBRAL_PERDIDA_SIN_GASIFICACION))
    umbral_acido = Decimal(str(settings.UMBRAL_ACIDO_URICO_SIN_GASIFICACION))
    if perdida > umbral_perdida:
        razones.append(f"Sin gasificación previa y pérdida acumulada mayor a Q.{umbral_perdida:,.2f}")
    if acido > umbral_acido:
        razones.append(f"Sin gasificación previa y ácido úrico acumulado mayor a {umbral_acido} mg/100g")
    return Recomendacion(recomendar=bool(razones), razones=razones)


# ==================== POR SILO ====================

def get_fumigation_recommendation(
    db: Session,
    silo_numero: int,
    viewer: ViewerContext,
    hoy: Optional[date] = None,
) -> Optional[dict]:
    """None si el silo no tiene lotes residentes."""
    label = format_silo_label(silo_numero)
    acumulado = accumulate_for_silo(db, label, viewer)

    if not get_resident_batches(db, silo_numero):
        return None

    ultima = get_last_gasification(db, label)
    fecha_ultima = ultima.fecha_fumigacion if ultima else None
    dias = days_since(fecha_ultima, hoy)

    rec = evaluate_recommendation(acumulado.perdida_economica, acumulado.acido_urico, dias)
    if rec.recomendar:
        logger.info("Fumigación recomendada para %s: %s", label, "; ".join(rec.razones))

    return {
        "silo": label,
        "silo_numero": silo_numero,
        "recomendar": rec.recomendar,
        "razones": rec.razones,
        "perdida_acumulada": acumulado.perdida_economica,
        "acido_urico_acumulado": acumulado.acido_urico,
        "ultima_gasificacion": fecha_ultima,
        "dias_desde_gasificacion": dias,
    }


def list_recommendations(db: Session, viewer: ViewerContext, hoy: Optional[date] = None) -> List[dict]:
    """Una evaluación por silo visible con grano."""
    resultado = []
    for silo in visible_silos(db, viewer):
        rec = get_fumigation_recommendation(db, silo.numero, viewer, hoy=hoy)
        if rec is not None:
            resultado.append(rec)
    return resultado


def count_silos_needing_fumigation(db: Session, viewer: ViewerContext, hoy: Optional[date] = None) -> int:
    return sum(1 for r in list_recommendations(db, viewer, hoy=hoy) if r["recomendar"])
