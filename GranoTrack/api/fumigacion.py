from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Path, HTTPException
from sqlalchemy.orm import Session

from utils.db import get_db
from utils.dependencies import get_viewer
from utils.permissions import ViewerContext

from schemas.fumigacion import RecomendacionFumigacionOut
from services.fumigation_service import get_fumigation_recommendation, list_recommendations

router = APIRouter(prefix="/fumigacion", tags=["fumigacion"])


@router.get(
    "/recomendaciones",
    response_model=List[RecomendacionFumigacionOut],
    summary="Recomendación de fumigación por silo",
    description=(
        "Evalúa cada silo visible con grano.\n\n"
        "Se recomienda gasificar si:\n"
        "- pasaron más de 45 días desde la última gasificación y hay pérdida y ácido úrico acumulados, o\n"
        "- nunca se ha gasificado y la pérdida acumulada supera Q.5,000 o el ácido úrico supera 5 mg/100g\n\n"
        "Los acumulados solo cuentan los lotes que hoy están en el silo."
    )
)
def recomendaciones(
    db: Session = Depends(get_db),
    viewer: ViewerContext = Depends(get_viewer),
):
    return list_recommendations(db, viewer)


@router.get(
    "/silos/{numero}",
    response_model=RecomendacionFumigacionOut,
    summary="Recomendación de fumigación de un silo",
)
def recomendacion_silo(
    numero: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    viewer: ViewerContext = Depends(get_viewer),
):
    rec = get_fumigation_recommendation(db, numero, viewer)
    if rec is None:
        raise HTTPException(status_code=404, detail="El silo no tiene grano; no se evalúa fumigación")
    return rec
