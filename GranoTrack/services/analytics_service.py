# services/analytics_service.py
"""
Servicio de analytics para preparar datos del dashboard.
Consumido por api/analytics.py

Todo se filtra por los silos visibles para el usuario (ViewerContext).
"""
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from models.fumigacion import Fumigacion
from services.accumulation_service import accumulate_global
from services.catalog_service import format_silo_label, get_all_resident_batches
from services.fumigation_service import count_silos_needing_fumigation
from services.muestreo_service import list_reports
from services.risk_service import classify_acido_urico, classify_perdida_economica
from utils.datetime_utils import month_key
from utils.permissions import ViewerContext, visible_silos


# ==================== HELPERS INTERNOS ====================

def _resident_batches_by_silo(db: Session, labels: set) -> Dict[str, list]:
    por_silo: Dict[str, list] = {}
    for lote in get_all_resident_batches(db):
        label = format_silo_label(lote.silo.numero)
        if label in labels:
            por_silo.setdefault(label, []).append(lote)
    return por_silo


def _reports_per_month(muestreos: List[dict]) -> List[Dict[str, Any]]:
    conteo: Dict[str, int] = OrderedDict()
    for m in sorted(muestreos, key=lambda x: x["fecha_reporte"]):
        key = month_key(m["fecha_reporte"])
        conteo[key] = conteo.get(key, 0) + 1
    return [{"mes": k, "total": v} for k, v in conteo.items()]


# ==================== DASHBOARD ====================

def get_dashboard_summary(db: Session, viewer: ViewerContext, hoy: Optional[date] = None) -> Dict[str, Any]:
    """
    KPIs del dashboard de monitoreo de granos.

    - Silos con grano / silos totales, lotes y toneladas por tipo de grano
    - Pérdida y ácido úrico acumulados (todo el historial visible)
    - Fumigaciones registradas y silos que requieren fumigación
    - Muestreos por mes y último muestreo
    """
    silos = visible_silos(db, viewer)
    labels = {format_silo_label(s.numero) for s in silos}
    lotes_por_silo = _resident_batches_by_silo(db, labels)

    toneladas_por_tipo: Dict[str, Decimal] = OrderedDict()
    lotes_por_tipo: Dict[str, int] = OrderedDict()
    total_lotes = 0
    for lotes in lotes_por_silo.values():
        for lote in lotes:
            tipo = lote.tipo_grano or "Sin tipo"
            toneladas_por_tipo[tipo] = toneladas_por_tipo.get(tipo, Decimal("0")) + lote.cantidad_toneladas
            lotes_por_tipo[tipo] = lotes_por_tipo.get(tipo, 0) + 1
            total_lotes += 1

    acumulado = accumulate_global(db, viewer)
    muestreos = list_reports(db, viewer, limit=10000)

    total_fumigaciones = 0
    if labels:
        total_fumigaciones = db.query(Fumigacion).filter(Fumigacion.silo.in_(labels)).count()

    return {
        "total_muestreos": len(muestreos),
        "total_silos": len(silos),
        "silos_con_grano": len(lotes_por_silo),
        "total_lotes": total_lotes,
        "toneladas_por_tipo": [
            {"tipo_grano": t, "toneladas": v} for t, v in toneladas_por_tipo.items()
        ],
        "lotes_por_tipo": [
            {"tipo_grano": t, "lotes": v} for t, v in lotes_por_tipo.items()
        ],
        "perdida_total": acumulado.perdida_economica,
        "acido_urico_total": acumulado.acido_urico,
        "nivel_perdida": classify_perdida_economica(acumulado.perdida_economica).value,
        "nivel_acido_urico": classify_acido_urico(acumulado.acido_urico).value,
        "total_fumigaciones": total_fumigaciones,
        "silos_requieren_fumigacion": count_silos_needing_fumigation(db, viewer, hoy=hoy),
        "muestreos_por_mes": _reports_per_month(muestreos),
        "ultimo_muestreo": muestreos[0] if muestreos else None,
    }
