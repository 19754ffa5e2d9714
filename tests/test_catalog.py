from datetime import date
from decimal import Decimal

import pytest

from services.catalog_service import (
    format_silo_label,
    get_batch_movement_history,
    get_resident_batches,
    normalize_silo_label,
    parse_silo_label,
    resolve_batch_for_group,
    resolve_cost_per_kg,
    silo_at_date,
)
from conftest import make_lote, make_silo, make_variedad, move_lote


@pytest.mark.parametrize("label,numero", [
    ("AP-01", 1), ("AP-1", 1), ("ap-01", 1), ("Silo 1", 1), ("12", 12), ("AP 07", 7),
])
def test_parse_silo_label(label, numero):
    assert parse_silo_label(label) == numero


def test_etiquetas_no_reconocidas():
    assert parse_silo_label("Bodega norte") is None
    assert parse_silo_label("") is None
    assert normalize_silo_label("  ") is None
    assert normalize_silo_label("ap-7") == "AP-07"
    assert format_silo_label(3) == "AP-03"


def test_costo_por_variedad_y_por_tipo(db):
    make_variedad(db, tipo_grano="Trigo", variedad="Cwrs", costo="2.5")
    make_variedad(db, tipo_grano="Maíz", variedad="Amarillo", costo="1.8")

    assert resolve_cost_per_kg(db, "Cwrs - Trigo") == Decimal("2.5")
    assert resolve_cost_per_kg(db, "MAÍZ AMARILLO") == Decimal("1.8")
    # sin variedad conocida cae al tipo base
    assert resolve_cost_per_kg(db, "Trigo Hrw") == Decimal("2.5")


def test_costo_no_resuelto_es_cero(db):
    make_variedad(db, tipo_grano="Trigo", variedad="Cwrs", costo="2.5")
    assert resolve_cost_per_kg(db, "Soya") == Decimal("0")
    assert resolve_cost_per_kg(db, None) == Decimal("0")


def test_silo_a_una_fecha_con_traspasos(db):
    s1 = make_silo(db, 1)
    s2 = make_silo(db, 2)
    lote = make_lote(db, s1, fecha_entrada=date(2024, 1, 1))
    move_lote(db, lote, s2, date(2024, 3, 1))

    assert silo_at_date(lote, date(2023, 12, 31)) is None
    assert silo_at_date(lote, date(2024, 2, 1)) == 1
    assert silo_at_date(lote, date(2024, 3, 1)) == 2
    assert [m.silo_destino for m in get_batch_movement_history(db, lote.lote_id)] == [2]
    assert get_resident_batches(db, 1) == []
    assert [l.lote_id for l in get_resident_batches(db, 2)] == [lote.lote_id]


def test_resolucion_de_lote_prefiere_entrada_mas_reciente(db):
    s1 = make_silo(db, 1)
    viejo = make_lote(db, s1, fecha_entrada=date(2024, 1, 1), cantidad="900")
    nuevo = make_lote(db, s1, fecha_entrada=date(2024, 1, 15), cantidad="100")
    make_lote(db, s1, origen="MV Atlas", fecha_entrada=date(2024, 1, 20))

    lote = resolve_batch_for_group(db, "AP-01", "Ocean", "Cwrs - Trigo", date(2024, 2, 1))
    assert lote.lote_id == nuevo.lote_id
    assert lote.lote_id != viejo.lote_id


def test_resolucion_de_lote_sin_coincidencia(db):
    s1 = make_silo(db, 1)
    make_lote(db, s1, tipo_grano="Maíz", subtipo_grano="Amarillo")
    assert resolve_batch_for_group(db, "AP-01", "Ocean", "Cwrs - Trigo", date(2024, 2, 1)) is None
    assert resolve_batch_for_group(db, "AP-09", None, None, date(2024, 2, 1)) is None


def test_resolucion_de_lote_con_traspasos_y_lotes_de_otros_silos(db):
    s1 = make_silo(db, 1)
    s2 = make_silo(db, 2)
    s3 = make_silo(db, 3)
    trasladado = make_lote(db, s1, fecha_entrada=date(2024, 1, 1))
    move_lote(db, trasladado, s2, date(2024, 3, 1))
    make_lote(db, s3, fecha_entrada=date(2024, 1, 10))

    # antes del traspaso el lote estaba en AP-01
    assert resolve_batch_for_group(db, "AP-01", "Ocean", "Cwrs - Trigo", date(2024, 2, 1)).lote_id == trasladado.lote_id
    assert resolve_batch_for_group(db, "AP-01", "Ocean", "Cwrs - Trigo", date(2024, 3, 5)) is None
    assert resolve_batch_for_group(db, "AP-02", "Ocean", "Cwrs - Trigo", date(2024, 3, 5)).lote_id == trasladado.lote_id
    # entrada posterior a la fecha del reporte
    assert resolve_batch_for_group(db, "AP-03", "Ocean", "Cwrs - Trigo", date(2024, 1, 5)) is None


def test_resolucion_de_lote_vaciado_para_reportes_anteriores(db):
    s1 = make_silo(db, 1)
    lote = make_lote(db, s1, fecha_entrada=date(2024, 1, 1))
    lote.is_active = False
    db.commit()

    assert resolve_batch_for_group(db, "AP-01", "Ocean", "Cwrs - Trigo", date(2024, 2, 1)).lote_id == lote.lote_id
