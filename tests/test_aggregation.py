from decimal import Decimal

from schemas.muestreo import MuestraIn
from services.aggregation_service import (
    aggregate_samples,
    calculate_report_risk_level,
    count_live_weevils,
    count_samples_without_silo,
)
from conftest import muestra


def _muestras(*rows):
    return [MuestraIn(**r) for r in rows]


def test_tonelaje_es_el_maximo_no_el_promedio():
    (agregado,) = aggregate_samples(_muestras(
        muestra(tons="10", trib_vivos=1),
        muestra(posicion="Abajo", tons="40", trib_vivos=1),
    ))
    assert agregado.max_tons == Decimal("40")


def test_gorgojos_vivos_suman_cinco_especies_sin_piojillo():
    m = MuestraIn(**muestra(piojillo=9, trib_vivos=1, rhyz_vivos=2, chry_vivos=3,
                            sito_vivos=4, steg_vivos=5, trib_muertos=7))
    assert count_live_weevils(m) == 15


def test_promedios_por_silo_y_orden_de_aparicion():
    agregados = aggregate_samples(_muestras(
        muestra(silo="AP-02", trib_vivos=4, piojillo=2),
        muestra(silo="AP-01", trib_vivos=1),
        muestra(silo="AP-2", trib_vivos=0, piojillo=1),
    ))
    assert [a.silo for a in agregados] == ["AP-02", "AP-01"]
    ap02 = agregados[0]
    assert ap02.n_muestras == 2
    assert ap02.prom_gorgojos_vivos == Decimal("2")
    assert ap02.prom_piojillo == Decimal("1.5")


def test_muestras_sin_silo_se_ignoran():
    rows = _muestras(
        muestra(silo="", trib_vivos=50),
        muestra(silo=None, trib_vivos=50),
        muestra(silo="AP-03", trib_vivos=1),
    )
    agregados = aggregate_samples(rows)
    assert [a.silo for a in agregados] == ["AP-03"]
    assert count_samples_without_silo(rows) == 2


def test_tipo_de_grano_inconsistente_usa_el_primero_y_advierte():
    (agregado,) = aggregate_samples(_muestras(
        muestra(tipo_grano=""),
        muestra(tipo_grano="Maíz Amarillo"),
        muestra(tipo_grano="Trigo"),
    ))
    assert agregado.tipo_grano == "Maíz Amarillo"
    assert "tipo_grano_inconsistente" in agregado.advertencias


def test_tipo_de_grano_faltante_advierte():
    (agregado,) = aggregate_samples(_muestras(muestra(tipo_grano=None)))
    assert agregado.tipo_grano is None
    assert agregado.advertencias == ["tipo_grano_faltante"]


def test_nivel_de_riesgo_del_reporte_por_silo():
    # 12 insectos en 2 silos => 6 por silo => alto
    rows = _muestras(
        muestra(silo="AP-01", trib_vivos=5, trib_muertos=1),
        muestra(silo="AP-02", piojillo=6),
    )
    assert calculate_report_risk_level(rows).value == "alto"
    assert calculate_report_risk_level(_muestras(muestra(trib_vivos=11))).value == "critico"
    assert calculate_report_risk_level(_muestras(muestra(piojillo=1))).value == "medio"
    assert calculate_report_risk_level(_muestras(muestra())).value == "bajo"
    assert calculate_report_risk_level([]).value == "bajo"
