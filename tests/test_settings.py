import pytest
from pydantic import ValidationError

from config.settings import Settings


def test_secret_key_es_obligatoria(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_secret_key_desde_el_entorno(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "otra-clave")
    assert Settings(_env_file=None).SECRET_KEY == "otra-clave"
