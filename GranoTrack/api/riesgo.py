from decimal import Decimal

from fastapi import APIRouter, Depends, Query

from enums.enums import TipoMetricaEnum
from schemas.historial import ClasificacionOut
from services.risk_service import classify_risk
from utils.dependencies import get_viewer
from utils.permissions import ViewerContext

router = APIRouter(prefix="/riesgo", tags=["riesgo"])


@router.get(
    "/clasificar",
    response_model=ClasificacionOut,
    summary="Clasificar un valor de ácido úrico o pérdida económica",
)
def clasificar(
    valor: Decimal = Query(...),
    tipo: TipoMetricaEnum = Query(...),
    _: ViewerContext = Depends(get_viewer),
):
    return {"valor": valor, "tipo": tipo.value, "nivel": classify_risk(valor, tipo).value}
