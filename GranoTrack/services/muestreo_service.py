# services/muestreo_service.py
"""
Muestreos: cálculo sin guardar, alta, edición (reemplazo completo) y baja.

El muestreo y su historial de pérdidas cambian en la MISMA transacción.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, List, Optional, Set, Tuple

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from enums.enums import AdvertenciaEnum
from models.historial_perdida import HistorialPerdida
from models.muestreo import Muestreo, Muestra
from schemas.muestreo import MuestreoCreate, MuestreoUpdate
from services import ledger_service
from services.aggregation_service import calculate_report_risk_level, count_samples_without_silo
from services.catalog_service import normalize_silo_label
from services.ledger_service import MetricasSilo
from services.risk_service import classify_acido_urico, classify_perdida_economica
from utils.errors import LedgerWriteError
from utils.permissions import ViewerContext, visible_silo_labels
from utils.transactions import uow

logger = logging.getLogger(__name__)


# ==================== HELPERS INTERNOS ====================

def _metricas_silo_to_dict(ms: MetricasSilo) -> dict:
    a = ms.agregado
    m = ms.metricas
    return {
        "silo": a.silo,
        "tipo_grano": a.tipo_grano,
        "barco": a.barco,
        "n_muestras": a.n_muestras,
        "prom_gorgojos_vivos": a.prom_gorgojos_vivos,
        "prom_piojillo": a.prom_piojillo,
        "max_tons": a.max_tons,
        "tons_usadas": ms.tons_usadas,
        "costo_por_kg": ms.costo_por_kg,
        "lote_id": ms.lote_id,
        **m.as_dict(),
        "nivel_acido_urico": classify_acido_urico(m.acido_urico).value,
        "nivel_perdida": classify_perdida_economica(m.perdida_economica).value,
        "advertencias": ms.advertencias,
    }


def _report_warnings(muestras) -> List[str]:
    sin_silo = count_samples_without_silo(muestras)
    if sin_silo:
        logger.warning("%s muestras sin silo; no se incluyen en el cálculo", sin_silo)
        return [AdvertenciaEnum.silo_faltante.value]
    return []


def _build_muestras(draft: MuestreoCreate) -> List[Muestra]:
    muestras = []
    for mi in draft.muestras:
        data = mi.model_dump()
        data["silo"] = normalize_silo_label(data.get("silo"))
        muestras.append(Muestra(**data))
    return muestras


def _ensure_numero_disponible(db: Session, numero_reporte: str, excluir_id: Optional[int] = None) -> None:
    q = db.query(Muestreo).filter(Muestreo.numero_reporte == numero_reporte)
    if excluir_id is not None:
        q = q.filter(Muestreo.muestreo_id != excluir_id)
    if q.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Ya existe un muestreo con número de reporte {numero_reporte}"
        )


def _visible_muestras(m: Muestreo, labels: Optional[Set[str]]) -> List[Muestra]:
    if labels is None:
        return list(m.muestras)
    return [mu for mu in m.muestras if mu.silo in labels]


def _summary(m: Muestreo, labels: Optional[Set[str]] = None) -> dict:
    muestras = _visible_muestras(m, labels)
    silos = []
    for mu in muestras:
        if mu.silo and mu.silo not in silos:
            silos.append(mu.silo)
    return {
        "muestreo_id": m.muestreo_id,
        "numero_reporte": m.numero_reporte,
        "cliente": m.cliente,
        "fecha_reporte": m.fecha_reporte,
        "fecha_servicio": m.fecha_servicio,
        "nivel_riesgo": m.nivel_riesgo,
        "total_muestras": len(muestras),
        "silos": silos,
        "created_at": m.created_at,
        "updated_at": m.updated_at,
    }


def _visible_registros(db: Session, muestreo_id: int, labels: Optional[Set[str]]) -> List[HistorialPerdida]:
    registros = ledger_service.get_for_report(db, muestreo_id)
    if labels is None:
        return registros
    return [r for r in registros if r.silo in labels]


def _detail(db: Session, m: Muestreo, labels: Optional[Set[str]] = None) -> dict:
    """
    Encabezado + historial del muestreo, limitado a los silos visibles.

    Las advertencias por silo se leen del historial, así que una consulta
    posterior muestra las mismas que la respuesta del alta.
    """
    data = _summary(m, labels)
    registros = _visible_registros(db, m.muestreo_id, labels)
    advertencias = _report_warnings(m.muestras)
    for r in registros:
        for a in r.lista_advertencias:
            if a not in advertencias:
                advertencias.append(a)
    data["metricas"] = registros
    data["advertencias"] = advertencias
    return data


@contextmanager
def _guardar(db: Session, muestreo_id: Optional[int] = None):
    """
    uow + traducción de fallas de BD a LedgerWriteError.

    El commit de uow es el que escribe el historial; si falla ahí (o en un
    flush previo) el guardado se bloquea igual que si fallara replace_report.
    Los IntegrityError siguen su camino (409).
    """
    try:
        with uow(db):
            yield
    except IntegrityError:
        raise
    except SQLAlchemyError as e:
        logger.exception("No se pudo guardar el muestreo %s", muestreo_id)
        raise LedgerWriteError(muestreo_id, str(e)) from e


# ==================== CÁLCULO (SIN GUARDAR) ====================

def compute_report_derived_values(db: Session, draft: MuestreoCreate) -> dict:
    """Vista previa: métricas por silo del borrador, sin tocar la BD."""
    metricas_silos = ledger_service.derive_silo_metrics(db, draft.muestras, draft.fecha_semana)
    return {
        "nivel_riesgo": calculate_report_risk_level(draft.muestras).value,
        "silos": [_metricas_silo_to_dict(ms) for ms in metricas_silos],
        "advertencias": _report_warnings(draft.muestras),
    }


# ==================== ESCRITURA ====================

def create_report(db: Session, draft: MuestreoCreate) -> dict:
    _ensure_numero_disponible(db, draft.numero_reporte)

    with _guardar(db):
        muestreo = Muestreo(
            numero_reporte=draft.numero_reporte,
            cliente=draft.cliente,
            fecha_reporte=draft.fecha_reporte,
            fecha_servicio=draft.fecha_servicio,
            nivel_riesgo=calculate_report_risk_level(draft.muestras).value,
        )
        muestreo.muestras = _build_muestras(draft)
        db.add(muestreo)
        db.flush()
        ledger_service.upsert_for_report(db, muestreo, commit=False)

    db.refresh(muestreo)
    logger.info("Muestreo %s (%s) creado", muestreo.muestreo_id, muestreo.numero_reporte)
    return _detail(db, muestreo)


def update_report(db: Session, muestreo_id: int, draft: MuestreoUpdate) -> dict:
    """Reemplazo completo: encabezado, muestras e historial."""
    muestreo = _get_or_404(db, muestreo_id)
    _ensure_numero_disponible(db, draft.numero_reporte, excluir_id=muestreo_id)

    with _guardar(db, muestreo_id):
        muestreo.numero_reporte = draft.numero_reporte
        muestreo.cliente = draft.cliente
        muestreo.fecha_reporte = draft.fecha_reporte
        muestreo.fecha_servicio = draft.fecha_servicio
        muestreo.nivel_riesgo = calculate_report_risk_level(draft.muestras).value
        muestreo.muestras = _build_muestras(draft)
        db.flush()
        ledger_service.upsert_for_report(db, muestreo, commit=False)

    db.refresh(muestreo)
    logger.info("Muestreo %s actualizado", muestreo_id)
    return _detail(db, muestreo)


def delete_report(db: Session, muestreo_id: int) -> None:
    muestreo = _get_or_404(db, muestreo_id)
    with _guardar(db, muestreo_id):
        ledger_service.delete_for_report(db, muestreo_id, commit=False)
        db.delete(muestreo)
    logger.info("Muestreo %s eliminado", muestreo_id)


# ==================== LECTURA ====================

def _get_or_404(db: Session, muestreo_id: int) -> Muestreo:
    muestreo = db.get(Muestreo, muestreo_id)
    if not muestreo:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Muestreo no encontrado")
    return muestreo


def _visible_report(db: Session, muestreo_id: int, viewer: ViewerContext) -> Tuple[Muestreo, Optional[Set[str]]]:
    """
    Muestreo + etiquetas visibles (None para admin).

    El cliente solo ve el muestreo si alguna muestra cae en uno de sus silos,
    y de él solo ve esos silos.
    """
    muestreo = _get_or_404(db, muestreo_id)
    labels = visible_silo_labels(db, viewer)
    if labels is not None and not any(mu.silo in labels for mu in muestreo.muestras):
        # Para el cliente un muestreo ajeno simplemente no existe
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Muestreo no encontrado")
    return muestreo, labels


def get_report(db: Session, muestreo_id: int, viewer: ViewerContext) -> dict:
    muestreo, labels = _visible_report(db, muestreo_id, viewer)
    return _detail(db, muestreo, labels)


def list_reports(db: Session, viewer: ViewerContext, limit: int = 100, offset: int = 0) -> List[dict]:
    q = db.query(Muestreo).options(selectinload(Muestreo.muestras))

    labels = visible_silo_labels(db, viewer)
    if labels is not None:
        if not labels:
            return []
        q = q.filter(Muestreo.muestras.any(Muestra.silo.in_(labels)))

    muestreos = (
        q.order_by(Muestreo.fecha_reporte.desc(), Muestreo.muestreo_id.desc())
        .offset(offset).limit(limit).all()
    )
    return [_summary(m, labels) for m in muestreos]


def get_report_samples(db: Session, muestreo_id: int, viewer: ViewerContext) -> List[dict]:
    """
    Renglones del reporte con los valores derivados de su silo.

    Los valores se leen del historial (una fila por silo), así todas las
    muestras de un mismo silo muestran exactamente los mismos números.
    """
    muestreo, labels = _visible_report(db, muestreo_id, viewer)

    por_silo: Dict[str, dict] = {}
    for r in _visible_registros(db, muestreo_id, labels):
        por_silo.setdefault(r.silo, {
            "acido_urico": r.acido_urico,
            "dano_gorgojos_adultos_kg": r.dano_gorgojos_adultos_kg,
            "dano_gorgojos_total_kg": r.dano_gorgojos_total_kg,
            "dano_piojillo_kg": r.dano_piojillo_kg,
            "dano_total_plaga_kg": r.dano_total_plaga_kg,
            "perdida_economica": r.perdida_economica,
        })

    filas = []
    for mu in _visible_muestras(muestreo, labels):
        fila = {c.key: getattr(mu, c.key) for c in Muestra.__table__.columns}
        fila.update(por_silo.get(mu.silo, {}))
        filas.append(fila)
    return filas
