"""
Endpoints del historial de pérdidas y sus acumulados.
"""
from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.orm import Session

from utils.db import get_db
from utils.dependencies import get_viewer
from utils.permissions import ViewerContext, visible_silo_labels

from enums.enums import AlcanceAcumuladoEnum
from schemas.historial import (
    HistorialPerdidaOut,
    MetricasAcumuladasOut,
    AcumuladoPorTipoOut,
    ResumenLoteOut,
)
from services import ledger_service
from services.accumulation_service import (
    AccumulationScope,
    MetricasAcumuladas,
    get_accumulated,
    accumulate_by_grain_type,
    summarize_batches,
)
from services.catalog_service import normalize_silo_label
from services.risk_service import classify_acido_urico, classify_perdida_economica

router = APIRouter(prefix="/historial", tags=["historial"])


def _with_levels(acumulado: MetricasAcumuladas) -> dict:
    data = asdict(acumulado)
    data["nivel_acido_urico"] = classify_acido_urico(acumulado.acido_urico).value
    data["nivel_perdida"] = classify_perdida_economica(acumulado.perdida_economica).value
    return data


@router.get("", response_model=List[HistorialPerdidaOut], summary="Registros del historial de pérdidas")
def listar_historial(
    lote_id: Optional[List[int]] = Query(None),
    silo: Optional[List[str]] = Query(None),
    fecha_desde: Optional[date] = Query(None),
    fecha_hasta: Optional[date] = Query(None),
    tipo_grano: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    viewer: ViewerContext = Depends(get_viewer),
):
    if fecha_desde and fecha_hasta and fecha_hasta < fecha_desde:
        raise HTTPException(status_code=422, detail="fecha_hasta debe ser >= fecha_desde")

    silos = [normalize_silo_label(s) for s in silo] if silo else None
    visibles = visible_silo_labels(db, viewer)
    if visibles is not None:
        silos = [s for s in silos if s in visibles] if silos is not None else sorted(visibles)

    return ledger_service.query_by_filter(
        db,
        lote_ids=lote_id,
        silos=silos,
        fecha_desde=fecha_desde,
        fecha_hasta=fecha_hasta,
        tipo_grano=tipo_grano,
    )


@router.get(
    "/acumulado",
    response_model=MetricasAcumuladasOut,
    summary="Acumulado por alcance",
    description=(
        "Suma del historial según el alcance:\n\n"
        "- `lote`: desde la fecha de entrada del lote (`lote_id`)\n"
        "- `silo`: solo lotes que HOY residen en el silo (`silo`)\n"
        "- `periodo`: por fecha de reporte (`fecha_desde`/`fecha_hasta` o `anio`), sin filtro de residencia\n"
        "- `tipo_grano`: por periodo y tipo de grano (`tipo_grano`)\n"
        "- `global`: todo lo visible"
    )
)
def obtener_acumulado(
    alcance: AlcanceAcumuladoEnum = Query(...),
    lote_id: Optional[int] = Query(None, gt=0),
    silo: Optional[str] = Query(None),
    fecha_desde: Optional[date] = Query(None),
    fecha_hasta: Optional[date] = Query(None),
    anio: Optional[int] = Query(None, ge=2000, le=2100),
    tipo_grano: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    viewer: ViewerContext = Depends(get_viewer),
):
    scope = AccumulationScope(
        kind=alcance,
        lote_id=lote_id,
        silo=silo,
        fecha_desde=fecha_desde,
        fecha_hasta=fecha_hasta,
        anio=anio,
        tipo_grano=tipo_grano,
    )
    return _with_levels(get_accumulated(db, scope, viewer))


@router.get("/acumulado/tipos", response_model=AcumuladoPorTipoOut, summary="Acumulado por tipo de grano")
def obtener_acumulado_por_tipo(
    fecha_desde: Optional[date] = Query(None),
    fecha_hasta: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    viewer: ViewerContext = Depends(get_viewer),
):
    por_tipo = accumulate_by_grain_type(db, viewer, fecha_desde=fecha_desde, fecha_hasta=fecha_hasta)
    return {"tipos": {t: _with_levels(a) for t, a in por_tipo.items()}}


@router.get("/lotes", response_model=List[ResumenLoteOut], summary="Resumen acumulado por lote")
def obtener_resumen_lotes(
    db: Session = Depends(get_db),
    viewer: ViewerContext = Depends(get_viewer),
):
    resumen = summarize_batches(db, viewer)
    for r in resumen:
        r["nivel_perdida"] = classify_perdida_economica(r["perdida_total"]).value
    return resumen
