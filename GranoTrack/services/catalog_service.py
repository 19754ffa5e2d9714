# services/catalog_service.py
"""
Consultas al catálogo e inventario (solo lectura).

- Costo por kg según tipo/variedad de grano
- Etiquetas de silo (AP-NN)
- Residencia de lotes: actual y reconstruida a una fecha con el historial de traspasos
- Resolución del lote al que pertenece un grupo de muestras
"""
from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from models.variedad import VariedadGrano
from models.silo import Silo
from models.lote import LoteGrano, MovimientoLote

logger = logging.getLogger(__name__)

_SILO_LABEL_RE = re.compile(r"^(?:AP|SILO)?[\s\-]*0*(\d+)$", re.IGNORECASE)
_TOKEN_SPLIT_RE = re.compile(r"[\s\-]+")


# ==================== ETIQUETAS DE SILO ====================

def format_silo_label(numero: int) -> str:
    """7 -> 'AP-07'"""
    return f"AP-{int(numero):02d}"


def parse_silo_label(label: Optional[str]) -> Optional[int]:
    """
    Número de silo a partir de la etiqueta.

    Acepta 'AP-07', 'AP-7', 'ap 07', 'Silo 7' y '7'. None si no se reconoce.
    """
    if not label:
        return None
    m = _SILO_LABEL_RE.match(label.strip())
    if not m:
        return None
    return int(m.group(1))


def normalize_silo_label(label: Optional[str]) -> Optional[str]:
    """Etiqueta canónica AP-NN; si no se reconoce, la etiqueta limpia en mayúsculas."""
    if label is None or not label.strip():
        return None
    numero = parse_silo_label(label)
    if numero is None:
        return label.strip().upper()
    return format_silo_label(numero)


def resolve_grain_type(raw_label: Optional[str]) -> Optional[str]:
    """
    Normalización mínima del tipo de grano extraído del PDF.

    La conciliación difusa contra el catálogo la hace el módulo de ingesta.
    """
    if raw_label is None:
        return None
    cleaned = " ".join(raw_label.split())
    return cleaned or None


# ==================== COSTOS ====================

def resolve_cost_per_kg(db: Session, tipo_grano_label: Optional[str]) -> Decimal:
    """
    Costo por kg (Q.) para la etiqueta de grano del reporte, p. ej. 'Cwrs - Trigo'.

    Prioridad:
    1. Variedad activa cuyo nombre (o 'variedad - tipo' / 'tipo - variedad') aparece en la etiqueta
    2. Variedad activa cuyo tipo base aparece en la etiqueta
    3. 0 si no hay coincidencia o la variedad no tiene costo
    """
    if not tipo_grano_label:
        return Decimal("0")

    texto = tipo_grano_label.lower()
    variedades = (
        db.query(VariedadGrano)
        .filter(VariedadGrano.activo.is_(True), VariedadGrano.costo_por_kg.isnot(None))
        .order_by(VariedadGrano.variedad_id)
        .all()
    )

    for v in variedades:
        tipo = (v.tipo_grano or "").lower().strip()
        var = (v.variedad or "").lower().strip()
        if not var:
            continue
        if var in texto or f"{var} - {tipo}" in texto or f"{tipo} - {var}" in texto:
            return Decimal(str(v.costo_por_kg))

    for v in variedades:
        tipo = (v.tipo_grano or "").lower().strip()
        if tipo and tipo in texto:
            return Decimal(str(v.costo_por_kg))

    logger.warning("Sin costo por kg para el grano '%s'", tipo_grano_label)
    return Decimal("0")


# ==================== RESIDENCIA ====================

def get_resident_batches(db: Session, silo_numero: int) -> List[LoteGrano]:
    """Lotes activos que están HOY en el silo."""
    return (
        db.query(LoteGrano)
        .join(Silo, LoteGrano.silo_id == Silo.silo_id)
        .filter(Silo.numero == silo_numero, LoteGrano.is_active.is_(True))
        .order_by(LoteGrano.fecha_entrada, LoteGrano.lote_id)
        .all()
    )


def get_all_resident_batches(db: Session) -> List[LoteGrano]:
    """Todos los lotes activos con silo asignado (inventario actual)."""
    return (
        db.query(LoteGrano)
        .options(selectinload(LoteGrano.silo))
        .filter(LoteGrano.is_active.is_(True), LoteGrano.silo_id.isnot(None))
        .all()
    )


def get_batch_movement_history(db: Session, lote_id: int) -> List[MovimientoLote]:
    return (
        db.query(MovimientoLote)
        .filter(MovimientoLote.lote_id == lote_id)
        .order_by(MovimientoLote.fecha, MovimientoLote.movimiento_id)
        .all()
    )


def silo_at_date(lote: LoteGrano, fecha: date) -> Optional[int]:
    """
    Número del silo donde estaba el lote en `fecha`.

    - Antes de la fecha de entrada: None
    - Sin traspasos: el silo actual
    - Con traspasos: el origen del primero, luego el destino de cada traspaso hasta `fecha`
    """
    if lote.fecha_entrada and fecha < lote.fecha_entrada:
        return None

    silo_actual = lote.silo.numero if lote.silo is not None else None
    movimientos = sorted(lote.movimientos, key=lambda m: (m.fecha, m.movimiento_id or 0))
    if not movimientos:
        return silo_actual

    numero = movimientos[0].silo_origen
    for mov in movimientos:
        if mov.fecha > fecha:
            break
        numero = mov.silo_destino
    return numero


# ==================== RESOLUCIÓN DE LOTE ====================

def _tokens(texto: str) -> List[str]:
    return [p for p in _TOKEN_SPLIT_RE.split(texto) if p]


def _barco_matches(lote: LoteGrano, barco: Optional[str]) -> bool:
    muestra_barco = (barco or "").lower().strip()
    if not muestra_barco:
        return True
    lote_barco = (lote.origen or "").lower().strip()
    if not lote_barco:
        return False
    return lote_barco in muestra_barco or muestra_barco in lote_barco


def _grain_matches(lote: LoteGrano, tipo_grano: Optional[str]) -> bool:
    muestra_tipo = (tipo_grano or "").lower().strip()
    if not muestra_tipo:
        return True
    lote_tipo = (lote.subtipo_grano or lote.tipo_grano or "").lower().strip()
    if not lote_tipo:
        return False
    if lote_tipo in muestra_tipo or muestra_tipo in lote_tipo:
        return True
    # 'Malta - Malta' vs 'Malta'
    return any(
        lp == mp or lp in mp or mp in lp
        for lp in _tokens(lote_tipo)
        for mp in _tokens(muestra_tipo)
    )


def resolve_batch_for_group(
    db: Session,
    silo_label: str,
    barco: Optional[str],
    tipo_grano: Optional[str],
    fecha: date,
) -> Optional[LoteGrano]:
    """
    Lote al que pertenece un grupo de muestras (silo, barco, grano) en la fecha del reporte.

    Si hay varios candidatos gana el de entrada más reciente y luego el de mayor cantidad.
    """
    numero = parse_silo_label(silo_label)
    if numero is None:
        return None

    # Solo lotes que pudieron estar en el silo: residencia actual o algún traspaso que lo mencione
    lotes = (
        db.query(LoteGrano)
        .outerjoin(Silo, LoteGrano.silo_id == Silo.silo_id)
        .options(selectinload(LoteGrano.movimientos), selectinload(LoteGrano.silo))
        .filter(
            or_(
                Silo.numero == numero,
                LoteGrano.movimientos.any(
                    or_(MovimientoLote.silo_origen == numero, MovimientoLote.silo_destino == numero)
                ),
            ),
            or_(LoteGrano.fecha_entrada.is_(None), LoteGrano.fecha_entrada <= fecha),
        )
        .all()
    )
    candidatos = [
        lote for lote in lotes
        if silo_at_date(lote, fecha) == numero
        and _barco_matches(lote, barco)
        and _grain_matches(lote, tipo_grano)
    ]
    if not candidatos:
        logger.info(
            "Sin lote para silo %s (barco=%r, grano=%r, fecha=%s)",
            silo_label, barco, tipo_grano, fecha
        )
        return None

    candidatos.sort(
        key=lambda l: (l.fecha_entrada or date.min, Decimal(str(l.cantidad or 0))),
        reverse=True,
    )
    return candidatos[0]
