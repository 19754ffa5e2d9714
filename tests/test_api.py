from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from models.historial_perdida import HistorialPerdida
from models.muestreo import Muestreo
from services import ledger_service
from utils.errors import LedgerWriteError
from utils.security import create_access_token
from conftest import borrador, make_gasificacion, make_lote, make_silo, make_variedad, muestra


@pytest.fixture
def inventario(db):
    s1 = make_silo(db, 1, cliente_id=1)
    make_silo(db, 2, cliente_id=2)
    make_variedad(db)
    return make_lote(db, s1)


def _reporte(**kw):
    return borrador(muestras=[
        muestra(tons="10", piojillo=3, trib_vivos=2, sito_vivos=1),
        muestra(posicion="Abajo", tons="40", piojillo=1, rhyz_vivos=1),
    ], **kw)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_sin_token_401(client):
    assert client.get("/muestreos").status_code == 401


def test_token_invalido_401(client):
    r = client.get("/muestreos", headers={"Authorization": "Bearer basura"})
    assert r.status_code == 401


def test_cliente_sin_cliente_id_403(client):
    token = create_access_token({"role": "cliente"})
    r = client.get("/muestreos", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 403


def test_calcular_no_guarda(client, db, inventario, admin_headers):
    r = client.post("/muestreos/calcular", json=_reporte(), headers=admin_headers)

    assert r.status_code == 200
    body = r.json()
    (silo,) = body["silos"]
    assert silo["silo"] == "AP-01"
    assert Decimal(str(silo["max_tons"])) == Decimal("40")
    assert Decimal(str(silo["perdida_economica"])) == Decimal("8.862")
    assert silo["nivel_acido_urico"] == "tolerable"
    assert body["nivel_riesgo"] == "alto"
    assert db.query(Muestreo).count() == 0


def test_crear_muestreo_y_consultar(client, inventario, admin_headers, cliente_headers):
    r = client.post("/muestreos", json=_reporte(), headers=admin_headers)
    assert r.status_code == 201
    creado = r.json()
    assert creado["silos"] == ["AP-01"]
    assert len(creado["metricas"]) == 1
    assert creado["metricas"][0]["lote_id"] == inventario.lote_id

    muestreo_id = creado["muestreo_id"]
    muestras = client.get(f"/muestreos/{muestreo_id}/muestras", headers=cliente_headers).json()
    assert len(muestras) == 2
    assert muestras[0]["perdida_economica"] == muestras[1]["perdida_economica"]

    listado = client.get("/muestreos", headers=cliente_headers).json()
    assert [m["muestreo_id"] for m in listado] == [muestreo_id]

    otro_cliente = {"Authorization": f"Bearer {create_access_token({'role': 'cliente', 'cliente_id': 2})}"}
    assert client.get("/muestreos", headers=otro_cliente).json() == []
    assert client.get(f"/muestreos/{muestreo_id}", headers=otro_cliente).status_code == 404


def test_numero_de_reporte_duplicado_409(client, inventario, admin_headers):
    assert client.post("/muestreos", json=_reporte(), headers=admin_headers).status_code == 201
    r = client.post("/muestreos", json=_reporte(), headers=admin_headers)
    assert r.status_code == 409


def test_cliente_no_puede_registrar(client, inventario, cliente_headers):
    r = client.post("/muestreos", json=_reporte(), headers=cliente_headers)
    assert r.status_code == 403


def test_conteo_negativo_422(client, admin_headers):
    r = client.post("/muestreos", json=borrador(muestras=[muestra(trib_vivos=-1)]), headers=admin_headers)
    assert r.status_code == 422
    assert r.json()["error"] == "validation_error"


def test_fallo_de_historial_503_sin_guardar_nada(client, db, inventario, admin_headers, monkeypatch):
    def falla(db, muestreo_id, registros, commit=True):
        raise LedgerWriteError(muestreo_id, "disco lleno")

    monkeypatch.setattr(ledger_service, "replace_report", falla)

    r = client.post("/muestreos", json=_reporte(), headers=admin_headers)

    assert r.status_code == 503
    assert r.json()["error"] == "ledger_write_failed"
    assert db.query(Muestreo).count() == 0


def test_editar_y_eliminar(client, inventario, admin_headers):
    muestreo_id = client.post("/muestreos", json=_reporte(), headers=admin_headers).json()["muestreo_id"]

    payload = borrador(muestras=[muestra(silo="AP-2", tipo_grano="Trigo", trib_vivos=4)])
    r = client.put(f"/muestreos/{muestreo_id}", json=payload, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["silos"] == ["AP-02"]
    assert "lote_no_resuelto" in r.json()["advertencias"]

    assert client.delete(f"/muestreos/{muestreo_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/muestreos/{muestreo_id}", headers=admin_headers).status_code == 404


def test_historial_y_acumulados(client, inventario, admin_headers, cliente_headers):
    client.post("/muestreos", json=_reporte(), headers=admin_headers)

    filas = client.get("/historial", params={"silo": "ap-1"}, headers=cliente_headers).json()
    assert len(filas) == 1

    r = client.get("/historial/acumulado", params={"alcance": "silo", "silo": "AP-01"}, headers=admin_headers)
    assert r.status_code == 200
    assert Decimal(str(r.json()["perdida_economica"])) == Decimal("8.862")
    assert r.json()["nivel_perdida"] == "bajo"

    r = client.get("/historial/acumulado", params={"alcance": "periodo", "anio": 2024}, headers=admin_headers)
    assert r.json()["n_registros"] == 1

    tipos = client.get("/historial/acumulado/tipos", headers=admin_headers).json()["tipos"]
    assert list(tipos) == ["Cwrs - Trigo"]

    lotes = client.get("/historial/lotes", headers=admin_headers).json()
    assert [l["lote_id"] for l in lotes] == [inventario.lote_id]
    assert lotes[0]["dias_almacenados"] == 31


def test_clasificar(client, admin_headers):
    r = client.get("/riesgo/clasificar", params={"valor": "5.0001", "tipo": "acido_urico"}, headers=admin_headers)
    assert r.json()["nivel"] == "moderadamente_peligroso"
    r = client.get("/riesgo/clasificar", params={"valor": 1, "tipo": "humedad"}, headers=admin_headers)
    assert r.status_code == 422


def test_fumigacion(client, db, inventario, admin_headers):
    client.post("/muestreos", json=_reporte(), headers=admin_headers)
    make_gasificacion(db, "AP-01", date(2024, 1, 1))

    r = client.get("/fumigacion/silos/1", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["silo"] == "AP-01"
    assert r.json()["recomendar"] is True
    assert r.json()["dias_desde_gasificacion"] > 45

    assert client.get("/fumigacion/silos/2", headers=admin_headers).status_code == 404
    assert len(client.get("/fumigacion/recomendaciones", headers=admin_headers).json()) == 1


def test_dashboard(client, inventario, admin_headers, cliente_headers):
    client.post("/muestreos", json=_reporte(), headers=admin_headers)

    body = client.get("/analytics/dashboard", headers=admin_headers).json()
    assert body["total_muestreos"] == 1
    assert body["total_silos"] == 2
    assert body["silos_con_grano"] == 1
    assert body["total_lotes"] == 1
    assert body["muestreos_por_mes"] == [{"mes": "2024-02", "total": 1}]
    assert body["ultimo_muestreo"]["numero_reporte"] == "R-001"

    body = client.get("/analytics/dashboard", headers=cliente_headers).json()
    assert body["total_silos"] == 1


def _reporte_dos_clientes():
    return borrador(muestras=[
        muestra(silo="AP-01", tons="10", trib_vivos=2),
        muestra(silo="AP-02", tons="90", trib_vivos=5),
    ])


def test_cliente_solo_ve_sus_silos_dentro_del_muestreo(client, inventario, admin_headers, cliente_headers):
    muestreo_id = client.post("/muestreos", json=_reporte_dos_clientes(), headers=admin_headers).json()["muestreo_id"]

    muestras = client.get(f"/muestreos/{muestreo_id}/muestras", headers=cliente_headers).json()
    assert [m["silo"] for m in muestras] == ["AP-01"]

    detalle = client.get(f"/muestreos/{muestreo_id}", headers=cliente_headers).json()
    assert detalle["silos"] == ["AP-01"]
    assert detalle["total_muestras"] == 1
    assert [r["silo"] for r in detalle["metricas"]] == ["AP-01"]

    (resumen,) = client.get("/muestreos", headers=cliente_headers).json()
    assert resumen["silos"] == ["AP-01"]

    # el admin sigue viendo todo
    detalle = client.get(f"/muestreos/{muestreo_id}", headers=admin_headers).json()
    assert detalle["silos"] == ["AP-01", "AP-02"]
    assert len(detalle["metricas"]) == 2


def test_fallo_en_commit_503_sin_guardar_nada(client, db, inventario, admin_headers, monkeypatch):
    def commit_fallido():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", commit_fallido)

    r = client.post("/muestreos", json=_reporte(), headers=admin_headers)

    assert r.status_code == 503
    assert r.json()["error"] == "ledger_write_failed"
    assert db.query(Muestreo).count() == 0
    assert db.query(HistorialPerdida).count() == 0


def test_fallo_en_commit_al_eliminar_503(client, db, inventario, admin_headers, monkeypatch):
    muestreo_id = client.post("/muestreos", json=_reporte(), headers=admin_headers).json()["muestreo_id"]

    def commit_fallido():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", commit_fallido)

    r = client.delete(f"/muestreos/{muestreo_id}", headers=admin_headers)
    assert r.status_code == 503
    assert r.json()["muestreo_id"] == muestreo_id
    assert db.query(HistorialPerdida).count() == 1


def test_advertencias_se_conservan_al_consultar(client, inventario, admin_headers):
    creado = client.post("/muestreos", json=_reporte_dos_clientes(), headers=admin_headers).json()
    assert "lote_no_resuelto" in creado["advertencias"]

    detalle = client.get(f"/muestreos/{creado['muestreo_id']}", headers=admin_headers).json()
    assert detalle["advertencias"] == creado["advertencias"]
    por_silo = {r["silo"]: r["advertencias"] for r in detalle["metricas"]}
    assert por_silo["AP-01"] == []
    assert por_silo["AP-02"] == ["lote_no_resuelto"]
