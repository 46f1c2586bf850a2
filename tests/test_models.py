# tests/test_models.py
"""
Tests dos modelos pydantic: registro mensal, unidade e filtro
"""
import pytest
from pydantic import ValidationError

from motor_energia.constantes import TODAS
from motor_energia.erros import ErroFormatoReferencia
from motor_energia.models import (
    FiltroEnergia,
    RegistroEnergiaMensal,
    UnidadeEnergia,
    chave_registro,
)
from motor_energia.periodo import ModoPeriodo, Referencia


class TestRegistroEnergiaMensal:

    def test_coercao_de_texto(self):
        registro = RegistroEnergiaMensal(
            user_id=10, reference_label="ago/24",
            fatura_geral_rs="R$ 1.234,56", energia_kwh_fora=None,
        )
        assert registro.user_id == "10"
        assert registro.fatura_geral_rs == 1234.56
        assert registro.energia_kwh_fora == 0.0

    def test_taxas_zeradas_usam_padrao(self):
        registro = RegistroEnergiaMensal(reativo_limite_rate=0, fp_param_min="", fp_param_max=None)
        assert registro.reativo_limite_rate == 0.62
        assert registro.fp_param_min == 0.92
        assert registro.fp_param_max == 0.94

    def test_fp_por_posto_opcional(self):
        registro = RegistroEnergiaMensal(fp_ponta="", fp_fora="0,97")
        assert registro.fp_ponta is None
        assert registro.fp_fora == 0.97
        assert registro.fp_res is None

    def test_campos_extras_preservados(self):
        registro = RegistroEnergiaMensal(reference_label="ago/24", cod_instal="12345")
        assert registro.model_dump()["cod_instal"] == "12345"

    def test_texto_vazio_vira_none(self):
        assert RegistroEnergiaMensal(distribuidora="  ").distribuidora is None

    def test_referencia(self):
        assert RegistroEnergiaMensal(reference_label="dez/24").referencia() == Referencia(12, 2024)
        with pytest.raises(ErroFormatoReferencia):
            RegistroEnergiaMensal(reference_label="2024-12").referencia()

    def test_chave(self):
        registro = RegistroEnergiaMensal(user_id="c1", unit_id="u1", reference_label="ago/24")
        assert registro.chave() == ("c1", "ago/24", "u1")
        assert chave_registro(registro.model_dump()) == registro.chave()


class TestUnidadeEnergia:

    def test_codigo_numerico_vira_texto(self):
        unidade = UnidadeEnergia(id=7, code=12345, demanda_contratada_kw_ponta="300,5")
        assert unidade.id == "7"
        assert unidade.code == "12345"
        assert unidade.demanda_contratada_kw_ponta == 300.5

    def test_codigo_vazio(self):
        with pytest.raises(ValidationError):
            UnidadeEnergia(id="u1", code="   ")

    def test_id_obrigatorio(self):
        with pytest.raises(ValidationError):
            UnidadeEnergia(code="1")


class TestFiltroEnergia:

    def test_padroes(self):
        filtro = FiltroEnergia()
        assert filtro.unidade_id == TODAS
        assert filtro.distribuidora == TODAS
        assert filtro.fornecedora == TODAS
        assert filtro.modo_periodo is None

    def test_modo_por_texto(self):
        assert FiltroEnergia(modo_periodo="anoAnterior").modo_periodo is ModoPeriodo.ANO_ANTERIOR

    def test_modo_invalido(self):
        with pytest.raises(ValidationError):
            FiltroEnergia(modo_periodo="semestre")
