from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from utils.db import get_db
from utils.dependencies import get_viewer, require_admin
from utils.permissions import ViewerContext

from schemas.muestreo import (
    MuestreoCreate,
    MuestreoUpdate,
    MuestreoOut,
    MuestreoDetailOut,
    MuestraConMetricasOut,
    CalculoMuestreoOut,
)
from schemas.shared import Msg
from services import muestreo_service

router = APIRouter(prefix="/muestreos", tags=["muestreos"])


@router.post(
    "/calcular",
    response_model=CalculoMuestreoOut,
    summary="Calcular métricas de un muestreo sin guardar",
    description=(
        "Vista previa del reporte extraído:\n\n"
        "- Agrupa las muestras por silo (promedio de gorgojos vivos y piojillo, tonelaje MÁXIMO)\n"
        "- Ácido úrico, daño en kg y pérdida económica semanal por silo\n"
        "- Nivel de riesgo del reporte\n\n"
        "Los problemas de datos (grano sin costo, silo vacío, lote no encontrado) "
        "se devuelven en `advertencias`, nunca como error."
    )
)
def calcular_muestreo(
    payload: MuestreoCreate,
    db: Session = Depends(get_db),
    _: ViewerContext = Depends(require_admin),
):
    return muestreo_service.compute_report_derived_values(db, payload)


@router.post(
    "",
    response_model=MuestreoDetailOut,
    status_code=status.HTTP_201_CREATED,
    summary="Registrar muestreo",
    description=(
        "Guarda el muestreo, sus muestras y el historial de pérdidas por silo "
        "en una sola transacción.\n\n"
        "- `409` si el número de reporte ya existe\n"
        "- `503` si no se pudo escribir el historial (no se guarda nada; reintentar)"
    )
)
def crear_muestreo(
    payload: MuestreoCreate,
    db: Session = Depends(get_db),
    _: ViewerContext = Depends(require_admin),
):
    return muestreo_service.create_report(db, payload)


@router.get("", response_model=List[MuestreoOut], summary="Listar muestreos visibles")
def listar_muestreos(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    viewer: ViewerContext = Depends(get_viewer),
):
    return muestreo_service.list_reports(db, viewer, limit=limit, offset=offset)


@router.get("/{muestreo_id}", response_model=MuestreoDetailOut, summary="Detalle de muestreo")
def obtener_muestreo(
    muestreo_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    viewer: ViewerContext = Depends(get_viewer),
):
    return muestreo_service.get_report(db, muestreo_id, viewer)


@router.get(
    "/{muestreo_id}/muestras",
    response_model=List[MuestraConMetricasOut],
    summary="Muestras con valores derivados de su silo",
)
def obtener_muestras(
    muestreo_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    viewer: ViewerContext = Depends(get_viewer),
):
    return muestreo_service.get_report_samples(db, muestreo_id, viewer)


@router.put(
    "/{muestreo_id}",
    response_model=MuestreoDetailOut,
    summary="Reemplazar muestreo",
    description="Reemplaza encabezado, muestras e historial de pérdidas en una sola transacción."
)
def actualizar_muestreo(
    payload: MuestreoUpdate,
    muestreo_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    _: ViewerContext = Depends(require_admin),
):
    return muestreo_service.update_report(db, muestreo_id, payload)


@router.delete("/{muestreo_id}", response_model=Msg, summary="Eliminar muestreo")
def eliminar_muestreo(
    muestreo_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    _: ViewerContext = Depends(require_admin),
):
    muestreo_service.delete_report(db, muestreo_id)
    return Msg(detail="Muestreo eliminado")
