from decimal import Decimal

import pytest

from services.risk_service import classify_acido_urico, classify_perdida_economica, classify_risk


@pytest.mark.parametrize("valor,nivel", [
    (0, "tolerable"),
    ("5.0", "tolerable"),
    ("5.0001", "moderadamente_peligroso"),
    ("10.0", "moderadamente_peligroso"),
    ("10.0001", "critico"),
    (250, "critico"),
])
def test_limites_acido_urico(valor, nivel):
    assert classify_acido_urico(valor).value == nivel


@pytest.mark.parametrize("valor,nivel", [
    (0, "bajo"),
    (5000, "bajo"),
    ("5000.01", "moderado"),
    (25000, "moderado"),
    ("25000.01", "alto"),
    (50000, "alto"),
    ("50000.01", "critico"),
])
def test_limites_perdida_economica(valor, nivel):
    assert classify_perdida_economica(valor).value == nivel


def test_acepta_float_sin_error_de_representacion():
    assert classify_acido_urico(5.0).value == "tolerable"
    assert classify_acido_urico(Decimal("5")).value == "tolerable"


def test_despacho_por_tipo():
    assert classify_risk(7, "acido_urico").value == "moderadamente_peligroso"
    assert classify_risk(7, "perdida_economica").value == "bajo"
    with pytest.raises(ValueError):
        classify_risk(7, "humedad")
