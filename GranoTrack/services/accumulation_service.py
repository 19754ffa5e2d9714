# services/accumulation_service.py
"""
Acumulados del historial de pérdidas.

Aquí se SUMA; el promedio solo existe dentro de un (muestreo, silo) en
aggregation_service. Todos los alcances devuelven MetricasAcumuladas.

Alcances:
- lote: filas del lote desde su fecha de entrada
- silo: filas del silo SOLO de los lotes que hoy residen en él. Lo que dejó un
  lote que ya salió (o que ya no está en ningún silo) aporta 0
- periodo / año: por fecha de reporte, sin filtro de residencia
- tipo_grano / global

Cada consulta recibe el ViewerContext explícito.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from config.settings import settings
from enums.enums import AdvertenciaEnum, AlcanceAcumuladoEnum
from models.fumigacion import Fumigacion
from models.historial_perdida import HistorialPerdida
from models.lote import LoteGrano
from services import ledger_service
from services.calculation_service import to_decimal
from services.catalog_service import (
    format_silo_label,
    parse_silo_label,
    get_resident_batches,
    get_all_resident_batches,
)
from utils.datetime_utils import days_between
from utils.permissions import ViewerContext, ensure_viewer_can_see_silo, visible_silo_labels

logger = logging.getLogger(__name__)

CAMPOS_SUMA = (
    "acido_urico",
    "dano_gorgojos_adultos_kg",
    "dano_gorgojos_total_kg",
    "dano_piojillo_kg",
    "dano_total_plaga_kg",
    "perdida_economica",
    "total_gorgojos_vivos",
    "total_piojillo",
)


@dataclass
class MetricasAcumuladas:
    acido_urico: Decimal = Decimal("0")
    dano_gorgojos_adultos_kg: Decimal = Decimal("0")
    dano_gorgojos_total_kg: Decimal = Decimal("0")
    dano_piojillo_kg: Decimal = Decimal("0")
    dano_total_plaga_kg: Decimal = Decimal("0")
    perdida_economica: Decimal = Decimal("0")
    total_gorgojos_vivos: Decimal = Decimal("0")
    total_piojillo: Decimal = Decimal("0")
    n_registros: int = 0
    primera_semana: Optional[date] = None
    ultima_semana: Optional[date] = None
    advertencias: List[str] = field(default_factory=list)

    def add(self, registro: HistorialPerdida) -> None:
        for campo in CAMPOS_SUMA:
            setattr(self, campo, getattr(self, campo) + to_decimal(getattr(registro, campo)))
        self.n_registros += 1
        f = registro.fecha_semana
        if self.primera_semana is None or f < self.primera_semana:
            self.primera_semana = f
        if self.ultima_semana is None or f > self.ultima_semana:
            self.ultima_semana = f

    def merge(self, otro: "MetricasAcumuladas") -> None:
        for campo in CAMPOS_SUMA:
            setattr(self, campo, getattr(self, campo) + getattr(otro, campo))
        self.n_registros += otro.n_registros
        for f in (otro.primera_semana, otro.ultima_semana):
            if f is None:
                continue
            if self.primera_semana is None or f < self.primera_semana:
                self.primera_semana = f
            if self.ultima_semana is None or f > self.ultima_semana:
                self.ultima_semana = f
        for a in otro.advertencias:
            if a not in self.advertencias:
                self.advertencias.append(a)


@dataclass
class AccumulationScope:
    """Petición de acumulado desde la capa de presentación."""
    kind: AlcanceAcumuladoEnum
    lote_id: Optional[int] = None
    silo: Optional[str] = None
    fecha_desde: Optional[date] = None
    fecha_hasta: Optional[date] = None
    anio: Optional[int] = None
    tipo_grano: Optional[str] = None


def sum_registros(registros: Iterable[HistorialPerdida]) -> MetricasAcumuladas:
    acumulado = MetricasAcumuladas()
    for r in registros:
        acumulado.add(r)
    return acumulado


def _filter_visible(db: Session, registros: List[HistorialPerdida], viewer: ViewerContext) -> List[HistorialPerdida]:
    labels = visible_silo_labels(db, viewer)
    if labels is None:
        return registros
    return [r for r in registros if r.silo in labels]


def _ensure_viewer_can_see_batch(viewer: ViewerContext, lote: LoteGrano) -> None:
    if viewer.is_admin:
        return
    if lote.silo is None or lote.silo.cliente_id != viewer.cliente_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="El lote no está en un silo asignado a su cuenta"
        )


# ==================== POR LOTE ====================

def accumulate_for_batch(db: Session, lote: LoteGrano) -> MetricasAcumuladas:
    """
    Acumulado desde que el lote entró.

    Sin fecha de entrada se suman todas sus filas y se marca la advertencia.
    """
    registros = ledger_service.query_by_filter(db, lote_ids=[lote.lote_id], fecha_desde=lote.fecha_entrada)
    acumulado = sum_registros(registros)
    if lote.fecha_entrada is None:
        acumulado.advertencias.append(AdvertenciaEnum.fecha_entrada_faltante.value)
    return acumulado


def accumulate_for_batch_id(db: Session, lote_id: int, viewer: ViewerContext) -> MetricasAcumuladas:
    lote = db.get(LoteGrano, lote_id)
    if not lote:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lote no encontrado")
    _ensure_viewer_can_see_batch(viewer, lote)
    return accumulate_for_batch(db, lote)


def accumulate_for_current_batches(db: Session, silo_numero: int) -> MetricasAcumuladas:
    """Suma de accumulate_for_batch sobre los lotes que hoy están en el silo."""
    acumulado = MetricasAcumuladas()
    for lote in get_resident_batches(db, silo_numero):
        acumulado.merge(accumulate_for_batch(db, lote))
    return acumulado


# ==================== POR SILO (RESIDENCIA ACTUAL) ====================

def accumulate_for_silo(db: Session, silo_label: str, viewer: ViewerContext) -> MetricasAcumuladas:
    """
    Filas del silo restringidas a los lotes que residen HOY en él.

    Silo vacío => acumulado en cero.
    """
    label = silo_label
    numero = parse_silo_label(silo_label)
    if numero is not None:
        label = format_silo_label(numero)
    ensure_viewer_can_see_silo(db, viewer, label)

    if numero is None:
        return MetricasAcumuladas()

    residentes = get_resident_batches(db, numero)
    if not residentes:
        return MetricasAcumuladas()

    registros = ledger_service.query_by_filter(
        db,
        lote_ids=[l.lote_id for l in residentes],
        silos=[label],
    )
    return sum_registros(registros)


# ==================== POR PERIODO ====================

def accumulate_for_period(
    db: Session,
    fecha_desde: Optional[date],
    fecha_hasta: Optional[date],
    viewer: ViewerContext,
    tipo_grano: Optional[str] = None,
) -> MetricasAcumuladas:
    """Por fecha de reporte, sin importar dónde esté hoy el grano."""
    registros = ledger_service.query_by_filter(
        db, fecha_desde=fecha_desde, fecha_hasta=fecha_hasta, tipo_grano=tipo_grano
    )
    return sum_registros(_filter_visible(db, registros, viewer))


def accumulate_for_year(db: Session, anio: int, viewer: ViewerContext) -> MetricasAcumuladas:
    return accumulate_for_period(db, date(anio, 1, 1), date(anio, 12, 31), viewer)


def accumulate_by_grain_type(
    db: Session,
    viewer: ViewerContext,
    fecha_desde: Optional[date] = None,
    fecha_hasta: Optional[date] = None,
) -> Dict[str, MetricasAcumuladas]:
    registros = ledger_service.query_by_filter(db, fecha_desde=fecha_desde, fecha_hasta=fecha_hasta)
    por_tipo: Dict[str, MetricasAcumuladas] = OrderedDict()
    for r in _filter_visible(db, registros, viewer):
        tipo = r.tipo_grano or "Sin tipo"
        por_tipo.setdefault(tipo, MetricasAcumuladas()).add(r)
    return por_tipo


def accumulate_global(db: Session, viewer: ViewerContext) -> MetricasAcumuladas:
    return accumulate_for_period(db, None, None, viewer)


# ==================== DESPACHO ====================

def get_accumulated(db: Session, scope: AccumulationScope, viewer: ViewerContext) -> MetricasAcumuladas:
    kind = scope.kind

    if kind == AlcanceAcumuladoEnum.lote:
        if scope.lote_id is None:
            raise HTTPException(status_code=422, detail="lote_id es requerido para el alcance 'lote'")
        return accumulate_for_batch_id(db, scope.lote_id, viewer)

    if kind == AlcanceAcumuladoEnum.silo:
        if not scope.silo:
            raise HTTPException(status_code=422, detail="silo es requerido para el alcance 'silo'")
        return accumulate_for_silo(db, scope.silo, viewer)

    if kind == AlcanceAcumuladoEnum.periodo:
        if scope.anio is not None:
            return accumulate_for_year(db, scope.anio, viewer)
        if scope.fecha_desde and scope.fecha_hasta and scope.fecha_hasta < scope.fecha_desde:
            raise HTTPException(status_code=422, detail="fecha_hasta debe ser >= fecha_desde")
        return accumulate_for_period(db, scope.fecha_desde, scope.fecha_hasta, viewer)

    if kind == AlcanceAcumuladoEnum.tipo_grano:
        if not scope.tipo_grano:
            raise HTTPException(status_code=422, detail="tipo_grano es requerido para el alcance 'tipo_grano'")
        return accumulate_for_period(db, scope.fecha_desde, scope.fecha_hasta, viewer, tipo_grano=scope.tipo_grano)

    return accumulate_global(db, viewer)


# ==================== RESUMEN POR LOTE ====================

def _last_gasification_for_batch(db: Session, lote_id: int) -> Optional[date]:
    f = (
        db.query(Fumigacion)
        .filter(
            Fumigacion.lote_id == lote_id,
            Fumigacion.servicio_id == settings.SERVICIO_GASIFICACION_ID,
        )
        .order_by(Fumigacion.fecha_fumigacion.desc())
        .first()
    )
    return f.fecha_fumigacion if f else None


def summarize_batches(db: Session, viewer: ViewerContext) -> List[dict]:
    """
    Resumen de la página "Historial de pérdidas": un renglón por lote que hoy
    está en un silo visible y que tiene al menos un registro.

    dias_almacenados = última semana registrada - fecha de entrada
    (None si no hay fecha de entrada o si el registro es anterior a la entrada).
    """
    labels = visible_silo_labels(db, viewer)
    resumen = []

    for lote in get_all_resident_batches(db):
        silo_label = format_silo_label(lote.silo.numero)
        if labels is not None and silo_label not in labels:
            continue

        acumulado = accumulate_for_batch(db, lote)
        if acumulado.n_registros == 0:
            continue

        dias = None
        if lote.fecha_entrada and acumulado.ultima_semana:
            if acumulado.ultima_semana >= lote.fecha_entrada:
                dias = days_between(lote.fecha_entrada, acumulado.ultima_semana)
            else:
                logger.warning(
                    "Lote %s con registro (%s) anterior a su entrada (%s)",
                    lote.lote_id, acumulado.ultima_semana, lote.fecha_entrada
                )

        resumen.append({
            "lote_id": lote.lote_id,
            "origen": lote.origen,
            "tipo_grano": lote.subtipo_grano or lote.tipo_grano,
            "fecha_entrada": lote.fecha_entrada,
            "silo_actual": silo_label,
            "silo_numero": lote.silo.numero,
            "n_registros": acumulado.n_registros,
            "perdida_total": acumulado.perdida_economica,
            "acido_urico_acumulado": acumulado.acido_urico,
            "dano_total_kg": acumulado.dano_total_plaga_kg,
            "primera_semana": acumulado.primera_semana,
            "ultima_semana": acumulado.ultima_semana,
            "dias_almacenados": dias,
            "ultima_gasificacion": _last_gasification_for_batch(db, lote.lote_id),
            "advertencias": acumulado.advertencias,
        })

    resumen.sort(key=lambda r: (r["silo_numero"], r["lote_id"]))
    return resumen
