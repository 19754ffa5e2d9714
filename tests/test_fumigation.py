from datetime import date, timedelta

import pytest

from services.fumigation_service import (
    count_silos_needing_fumigation,
    days_since,
    evaluate_recommendation,
    get_fumigation_recommendation,
    get_last_gasification,
    list_recommendations,
)
from utils.permissions import ADMIN_VIEWER
from conftest import make_gasificacion, make_lote, make_muestreo, make_registro, make_silo

HOY = date(2024, 6, 1)


@pytest.mark.parametrize("perdida,acido,dias,recomendar", [
    (100, 1, 46, True),
    (100, 0, 46, False),
    (0, 1, 46, False),
    (100000, 50, 45, False),
    (6000, 0, None, True),
    (0, "5.5", None, True),
    (4000, 3, None, False),
    (5000, 5, None, False),
])
def test_reglas_de_recomendacion(perdida, acido, dias, recomendar):
    rec = evaluate_recommendation(perdida, acido, dias)
    assert rec.recomendar is recomendar
    assert bool(rec.razones) is recomendar


def test_dias_desde_gasificacion():
    assert days_since(date(2024, 1, 1), date(2024, 2, 16)) == 46
    assert days_since(date(2024, 3, 1), date(2024, 2, 1)) == 0
    assert days_since(None, HOY) is None


@pytest.fixture
def silo_con_grano(db):
    s1 = make_silo(db, 1)
    make_silo(db, 2)
    lote = make_lote(db, s1)
    m = make_muestreo(db)
    make_registro(db, m, "AP-01", lote=lote, fecha=date(2024, 4, 1), perdida="100", acido="1")
    return lote


def test_recomienda_tras_46_dias_sin_gasificar(db, silo_con_grano):
    make_gasificacion(db, "AP-01", HOY - timedelta(days=90))
    make_gasificacion(db, "AP-01", HOY - timedelta(days=46))

    rec = get_fumigation_recommendation(db, 1, ADMIN_VIEWER, hoy=HOY)

    assert rec["recomendar"] is True
    assert rec["dias_desde_gasificacion"] == 46
    assert rec["ultima_gasificacion"] == HOY - timedelta(days=46)


def test_otro_servicio_no_cuenta_como_gasificacion(db, silo_con_grano):
    make_gasificacion(db, "AP-01", HOY - timedelta(days=60), servicio_id=1)

    assert get_last_gasification(db, "AP-01") is None
    rec = get_fumigation_recommendation(db, 1, ADMIN_VIEWER, hoy=HOY)
    # sin gasificación previa y debajo de los umbrales
    assert rec["recomendar"] is False
    assert rec["dias_desde_gasificacion"] is None


def test_silo_vacio_no_se_evalua(db, silo_con_grano):
    assert get_fumigation_recommendation(db, 2, ADMIN_VIEWER, hoy=HOY) is None


def test_listado_y_conteo(db, silo_con_grano):
    make_gasificacion(db, "AP-01", HOY - timedelta(days=50))

    recs = list_recommendations(db, ADMIN_VIEWER, hoy=HOY)

    assert [r["silo"] for r in recs] == ["AP-01"]
    assert count_silos_needing_fumigation(db, ADMIN_VIEWER, hoy=HOY) == 1
