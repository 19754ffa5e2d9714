from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional

from schemas.shared import ORMModel


class RecomendacionFumigacionOut(ORMModel):
    silo: str
    silo_numero: int
    recomendar: bool
    razones: List[str] = []
    perdida_acumulada: Decimal
    acido_urico_acumulado: Decimal
    ultima_gasificacion: Optional[date] = None
    dias_desde_gasificacion: Optional[int] = None
