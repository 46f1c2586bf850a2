# tests/conftest.py
"""
Fixtures compartilhadas: registros mensais e unidades de exemplo
"""
import pytest

from motor_energia.calculos import derivar_campos
from motor_energia.lancamento import FORM_DEFAULTS


def montar_registro(**campos) -> dict:
    """Registro completo (defaults do formulário + campos dados + derivados)."""
    registro = dict(FORM_DEFAULTS)
    registro.update(campos)
    registro.update(derivar_campos(registro))
    return registro


@pytest.fixture
def fabrica_registro():
    return montar_registro


@pytest.fixture
def registro_base():
    """Cenário do reativo: 1500 kWh, 400 kvarh, limite 0,62 → permitido 930"""
    return montar_registro(
        user_id="cliente-1",
        unit_id="u1",
        reference_label="ago/24",
        energia_kwh_ponta=1000.0,
        energia_kwh_fora=500.0,
        reativo_kvarh_ponta=400.0,
        reativo_kvarh_reservado=0.0,
        reativo_limite_rate=0.62,
        demanda_maxima_kw=100.0,
        fatura_geral_rs=100000.0,
        fatura_livre_rs=60000.0,
        compra_energia_rs=25000.0,
        icms_rate=0.205,
        rdb_rate=0.205,
        encargos_rs=500.0,
        gestao_cco_rs=800.0,
        gestao_parceiro_rs=1200.0,
    )


@pytest.fixture
def unidades():
    return [
        {
            "id": "u1",
            "user_id": "cliente-1",
            "code": "12345",
            "distribuidora": "COELBA",
            "fornecedora_energia": "Comerc",
            "demanda_contratada_kw_ponta": 300.0,
        },
        {
            "id": "u2",
            "user_id": "cliente-1",
            "code": "67890",
            "distribuidora": "Neoenergia Pernambuco",
            "fornecedora_energia": "Tradener",
        },
    ]


@pytest.fixture
def registros_duas_unidades():
    """Dois meses × duas unidades com FPs bem diferentes."""
    return [
        montar_registro(
            user_id="cliente-1", unit_id="u1", reference_label="set/24",
            distribuidora="COELBA",
            energia_kwh_fora=1000.0, reativo_kvarh_fora=0.0, reativo_limite_rate=0.5,
            fatura_geral_rs=10000.0, fatura_livre_rs=9000.0, icms_rate=0.0,
            preco_kwh_fora=0.40, demanda_faturada_kw_fora=200.0,
        ),
        montar_registro(
            user_id="cliente-1", unit_id="u2", reference_label="set/24",
            distribuidora="Neoenergia Pernambuco",
            energia_kwh_fora=100.0, reativo_kvarh_fora=100.0, reativo_limite_rate=0.8,
            fatura_geral_rs=0.0, icms_rate=0.18,
            preco_kwh_fora=0.60, demanda_faturada_kw_fora=50.0,
        ),
        montar_registro(
            user_id="cliente-1", unit_id="u1", reference_label="out/24",
            distribuidora="COELBA",
            energia_kwh_fora=800.0, reativo_kvarh_fora=100.0,
            fatura_geral_rs=8000.0, fatura_livre_rs=7000.0,
        ),
        montar_registro(
            user_id="cliente-1", unit_id="u2", reference_label="out/24",
            distribuidora="Neoenergia Pernambuco",
            energia_kwh_fora=200.0, reativo_kvarh_fora=50.0,
            fatura_geral_rs=2000.0, fatura_livre_rs=1500.0,
        ),
    ]
