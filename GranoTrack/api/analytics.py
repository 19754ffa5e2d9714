"""
Endpoints de analytics para el dashboard de monitoreo de granos.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Dict, Any

from utils.db import get_db
from utils.dependencies import get_viewer
from utils.permissions import ViewerContext

from services.analytics_service import get_dashboard_summary

router = APIRouter(prefix="/analytics", tags=["Analytics"])


# ==========================================
# GET - Dashboard general
# ==========================================

@router.get(
    "/dashboard",
    response_model=Dict[str, Any],
    summary="Dashboard de monitoreo de granos",
    description=(
            "Retorna los KPIs del dashboard:\n\n"
            "- Muestreos registrados y muestreos por mes\n"
            "- Silos con grano / silos totales\n"
            "- Lotes y toneladas por tipo de grano\n"
            "- Pérdida económica y ácido úrico acumulados\n"
            "- Fumigaciones registradas y silos que requieren fumigación\n\n"
            "**Permisos:**\n"
            "- Admin: todos los silos\n"
            "- Cliente: solo los silos asignados a su cuenta"
    )
)
def get_dashboard(
        db: Session = Depends(get_db),
        viewer: ViewerContext = Depends(get_viewer)
) -> Dict[str, Any]:
    return get_dashboard_summary(db, viewer)
