import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "clave-de-pruebas")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  registra todas las tablas
from main import app
from models.fumigacion import Fumigacion
from models.historial_perdida import HistorialPerdida
from models.lote import LoteGrano, MovimientoLote
from models.muestreo import Muestreo
from models.silo import Silo
from models.variedad import VariedadGrano
from utils.db import Base, get_db
from utils.security import create_access_token

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db():
    """Sesión sobre una BD en memoria recién creada para cada test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_access_token({'role': 'admin'})}"}


@pytest.fixture
def cliente_headers():
    token = create_access_token({"role": "cliente", "cliente_id": 1})
    return {"Authorization": f"Bearer {token}"}


# ==================== FÁBRICAS ====================

def make_silo(db, numero, cliente_id=1):
    silo = Silo(numero=numero, nombre=f"Silo {numero}", capacidad_ton=Decimal("5000"), cliente_id=cliente_id)
    db.add(silo)
    db.commit()
    return silo


def make_variedad(db, tipo_grano="Trigo", variedad="Cwrs", costo="2.5"):
    v = VariedadGrano(tipo_grano=tipo_grano, variedad=variedad, costo_por_kg=Decimal(costo))
    db.add(v)
    db.commit()
    return v


def make_lote(db, silo, origen="MV Ocean", tipo_grano="Trigo", subtipo_grano="Cwrs",
              cantidad="500", unidad="t", fecha_entrada=date(2024, 1, 1)):
    lote = LoteGrano(
        origen=origen,
        tipo_grano=tipo_grano,
        subtipo_grano=subtipo_grano,
        cantidad=Decimal(cantidad),
        unidad=unidad,
        fecha_entrada=fecha_entrada,
        silo_id=silo.silo_id if silo is not None else None,
    )
    db.add(lote)
    db.commit()
    return lote


def move_lote(db, lote, destino, fecha):
    """Traspaso registrado por inventario: historial + residencia actual."""
    db.add(MovimientoLote(
        lote_id=lote.lote_id,
        fecha=fecha,
        silo_origen=lote.silo.numero,
        silo_destino=destino.numero,
        cantidad=lote.cantidad,
    ))
    lote.silo_id = destino.silo_id
    db.commit()
    db.refresh(lote)


def make_muestreo(db, numero_reporte="R-001", fecha=date(2024, 2, 1)):
    m = Muestreo(numero_reporte=numero_reporte, cliente="Molinos", fecha_reporte=fecha)
    db.add(m)
    db.commit()
    return m


def make_registro(db, muestreo, silo, lote=None, fecha=date(2024, 2, 1), perdida="0", acido="0"):
    r = HistorialPerdida(
        muestreo_id=muestreo.muestreo_id,
        lote_id=lote.lote_id if lote is not None else None,
        silo=silo,
        fecha_semana=fecha,
        tipo_grano="Trigo",
        perdida_economica=Decimal(perdida),
        acido_urico=Decimal(acido),
        dano_total_plaga_kg=Decimal("1"),
    )
    db.add(r)
    db.commit()
    return r


def make_gasificacion(db, silo, fecha, lote=None, servicio_id=136257):
    f = Fumigacion(
        silo=silo,
        servicio_id=servicio_id,
        lote_id=lote.lote_id if lote is not None else None,
        fecha_fumigacion=fecha,
        producto_utilizado="Fosfina",
    )
    db.add(f)
    db.commit()
    return f


def muestra(silo="AP-01", posicion="Arriba", tons="40", piojillo=0, barco="Ocean",
            tipo_grano="Cwrs - Trigo", **vivos):
    """Renglón de reporte en forma de dict (JSON de ingesta)."""
    data = {
        "silo": silo,
        "muestra": posicion,
        "barco": barco,
        "tipo_grano": tipo_grano,
        "piojillo_acaro": piojillo,
        "observaciones": tons,
    }
    data.update(vivos)
    return data


def borrador(numero_reporte="R-001", fecha_reporte="2024-02-01", muestras=None):
    return {
        "numero_reporte": numero_reporte,
        "cliente": "Molinos",
        "fecha_reporte": fecha_reporte,
        "muestras": muestras if muestras is not None else [],
    }
