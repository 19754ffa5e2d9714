# services/ledger_service.py
"""
Historial de pérdidas (ledger).

Una fila por (muestreo, silo) con el lote resuelto cuando se puede. Es la única
copia de los valores derivados: la vista por muestra los lee de aquí.

Reglas:
- El único camino de escritura es replace_report: borra TODAS las filas del
  muestreo e inserta las nuevas en UNA transacción. Si algo falla se hace
  rollback completo y se lanza LedgerWriteError; nunca se reintenta fila por fila.
- query_by_filter es el único camino de lectura para los servicios de acumulación.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from enums.enums import AdvertenciaEnum
from models.historial_perdida import HistorialPerdida
from models.muestreo import Muestreo
from services.aggregation_service import AgregadoSilo, aggregate_samples
from services.calculation_service import MetricasDano, calculate_damage, to_decimal
from services.catalog_service import resolve_batch_for_group, resolve_cost_per_kg
from utils.errors import LedgerWriteError

logger = logging.getLogger(__name__)


@dataclass
class MetricasSilo:
    """Resultado de un silo dentro de un muestreo, antes de persistir."""
    agregado: AgregadoSilo
    metricas: MetricasDano
    costo_por_kg: Decimal
    tons_usadas: Decimal
    lote_id: Optional[int] = None
    advertencias: List[str] = field(default_factory=list)


# ==================== CÁLCULO POR SILO ====================

def derive_silo_metrics(db: Session, muestras: Iterable, fecha_semana: date) -> List[MetricasSilo]:
    """
    Agregador + resolución de lote + costo + calculadora, sin escribir nada.

    Si todas las muestras del silo reportan 0 t y hay lote resuelto, se usa la
    cantidad del lote (ver USAR_CANTIDAD_LOTE_SIN_TONELAJE).
    """
    resultado: List[MetricasSilo] = []

    for agregado in aggregate_samples(muestras):
        advertencias = list(agregado.advertencias)

        lote = resolve_batch_for_group(db, agregado.silo, agregado.barco, agregado.tipo_grano, fecha_semana)
        if lote is None:
            advertencias.append(AdvertenciaEnum.lote_no_resuelto.value)

        tons = agregado.max_tons
        if tons <= 0 and lote is not None and settings.USAR_CANTIDAD_LOTE_SIN_TONELAJE:
            tons = lote.cantidad_toneladas
            advertencias.append(AdvertenciaEnum.tonelaje_desde_lote.value)
            logger.warning(
                "Silo %s sin tonelaje en el reporte; se usan %s t del lote %s",
                agregado.silo, tons, lote.lote_id
            )

        costo = resolve_cost_per_kg(db, agregado.tipo_grano)
        metricas = calculate_damage(replace(agregado, max_tons=tons), costo)
        advertencias.extend(metricas.advertencias)

        resultado.append(MetricasSilo(
            agregado=agregado,
            metricas=metricas,
            costo_por_kg=costo,
            tons_usadas=to_decimal(tons),
            lote_id=lote.lote_id if lote is not None else None,
            advertencias=advertencias,
        ))

    return resultado


def build_registros(muestreo_id: int, fecha_semana: date, metricas_silos: Iterable[MetricasSilo]) -> List[HistorialPerdida]:
    registros = []
    for ms in metricas_silos:
        m = ms.metricas
        registros.append(HistorialPerdida(
            muestreo_id=muestreo_id,
            lote_id=ms.lote_id,
            silo=ms.agregado.silo,
            fecha_semana=fecha_semana,
            tipo_grano=ms.agregado.tipo_grano,
            total_gorgojos_vivos=ms.agregado.prom_gorgojos_vivos,
            total_piojillo=ms.agregado.prom_piojillo,
            total_tons=ms.tons_usadas,
            acido_urico=m.acido_urico,
            dano_gorgojos_adultos_kg=m.dano_gorgojos_adultos_kg,
            dano_gorgojos_total_kg=m.dano_gorgojos_total_kg,
            dano_piojillo_kg=m.dano_piojillo_kg,
            dano_total_plaga_kg=m.dano_total_plaga_kg,
            perdida_economica=m.perdida_economica,
            advertencias=",".join(ms.advertencias) or None,
        ))
    return registros


# ==================== ESCRITURA ====================

def replace_report(
    db: Session,
    muestreo_id: int,
    registros: List[HistorialPerdida],
    commit: bool = True,
) -> List[HistorialPerdida]:
    """
    Reemplaza el historial del muestreo: borrar + insertar en la misma transacción.

    Con commit=False la transacción queda abierta para que el llamador la cierre
    junto con otros cambios (p. ej. las filas del muestreo).
    """
    try:
        borradas = (
            db.query(HistorialPerdida)
            .filter(HistorialPerdida.muestreo_id == muestreo_id)
            .delete(synchronize_session=False)
        )
        for r in registros:
            r.muestreo_id = muestreo_id
        db.add_all(registros)
        db.flush()
        if commit:
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Rollback del historial del muestreo %s", muestreo_id)
        raise LedgerWriteError(muestreo_id, str(e)) from e

    logger.info(
        "Historial del muestreo %s reemplazado: %s filas borradas, %s insertadas",
        muestreo_id, borradas, len(registros)
    )
    return registros


def upsert_for_report(db: Session, muestreo: Muestreo, commit: bool = True) -> List[MetricasSilo]:
    """Recalcula el muestreo y reemplaza su historial."""
    metricas_silos = derive_silo_metrics(db, muestreo.muestras, muestreo.fecha_semana)
    registros = build_registros(muestreo.muestreo_id, muestreo.fecha_semana, metricas_silos)
    replace_report(db, muestreo.muestreo_id, registros, commit=commit)
    return metricas_silos


def delete_for_report(db: Session, muestreo_id: int, commit: bool = True) -> int:
    """Borra el historial del muestreo. Se usa al eliminar el muestreo."""
    try:
        borradas = (
            db.query(HistorialPerdida)
            .filter(HistorialPerdida.muestreo_id == muestreo_id)
            .delete(synchronize_session=False)
        )
        if commit:
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Rollback al borrar el historial del muestreo %s", muestreo_id)
        raise LedgerWriteError(muestreo_id, str(e)) from e
    logger.info("Historial del muestreo %s borrado (%s filas)", muestreo_id, borradas)
    return borradas


# ==================== LECTURA ====================

def query_by_filter(
    db: Session,
    lote_ids: Optional[Iterable[int]] = None,
    silos: Optional[Iterable[str]] = None,
    fecha_desde: Optional[date] = None,
    fecha_hasta: Optional[date] = None,
    tipo_grano: Optional[str] = None,
) -> List[HistorialPerdida]:
    """
    Filas del historial. None en un filtro = sin filtro; una colección vacía = ninguna fila.
    """
    q = db.query(HistorialPerdida)

    if lote_ids is not None:
        lote_ids = list(lote_ids)
        if not lote_ids:
            return []
        q = q.filter(HistorialPerdida.lote_id.in_(lote_ids))
    if silos is not None:
        silos = list(silos)
        if not silos:
            return []
        q = q.filter(HistorialPerdida.silo.in_(silos))
    if fecha_desde:
        q = q.filter(HistorialPerdida.fecha_semana >= fecha_desde)
    if fecha_hasta:
        q = q.filter(HistorialPerdida.fecha_semana <= fecha_hasta)
    if tipo_grano:
        q = q.filter(HistorialPerdida.tipo_grano.ilike(f"%{tipo_grano}%"))

    return q.order_by(HistorialPerdida.fecha_semana, HistorialPerdida.historial_id).all()


def get_for_report(db: Session, muestreo_id: int) -> List[HistorialPerdida]:
    return (
        db.query(HistorialPerdida)
        .filter(HistorialPerdida.muestreo_id == muestreo_id)
        .order_by(HistorialPerdida.historial_id)
        .all()
    )
