# tests/test_indicadores.py
"""
Tests dos KPIs do painel e das séries de gráfico
"""
import math

import pytest

from motor_energia.filtros import processar_dados_energia
from motor_energia.indicadores import (
    calcular_kpis,
    classificar_fp,
    consumo_mwh,
    demandas_zeradas,
    fator_potencia_do_periodo,
    possui_fp_baixo,
    preparar_serie_demanda,
    preparar_serie_energia,
    separar_ultrapassagem,
)


@pytest.fixture
def meses(fabrica_registro):
    """fev/25 (FP 0,70, 50% de economia) antes de jan/25 (FP 1,0, 10%) + mês sem fatura."""
    return [
        fabrica_registro(reference_label="fev/25", energia_kwh_fora=100.0,
                         reativo_kvarh_fora=102.02, fatura_geral_rs=1000.0,
                         fatura_livre_rs=500.0),
        fabrica_registro(reference_label="jan/25", energia_kwh_fora=1000.0,
                         fatura_geral_rs=10000.0, fatura_livre_rs=9000.0),
        fabrica_registro(reference_label="mar/25"),
    ]


class TestCalcularKpis:

    def test_vazio(self):
        assert calcular_kpis([]) is None

    def test_economia_e_percentuais(self, meses):
        kpis = calcular_kpis(meses)
        assert kpis["economia_total"] == pytest.approx(1500.0)
        assert kpis["pct_ponderado"] == pytest.approx(1500 / 11000)
        assert kpis["pct_medio_simples"] == pytest.approx(0.3)

    def test_melhor_e_pior(self, meses):
        kpis = calcular_kpis(meses)
        assert kpis["melhor"]["reference_label"] == "jan/25"
        assert kpis["pior"]["reference_label"] == "mar/25"

    def test_empate_fica_com_o_mes_mais_antigo(self, fabrica_registro):
        registros = [
            fabrica_registro(reference_label="mai/25", fatura_geral_rs=100.0),
            fabrica_registro(reference_label="abr/25", fatura_geral_rs=100.0),
        ]
        kpis = calcular_kpis(registros)
        assert kpis["melhor"]["reference_label"] == "abr/25"
        assert kpis["pior"]["reference_label"] == "abr/25"

    def test_consumo_e_fp(self, meses):
        kpis = calcular_kpis(meses)
        assert kpis["consumo_mwh"] == pytest.approx(1.1)
        assert kpis["fp_periodo"] == pytest.approx(1100 / math.hypot(1100, 102.02), abs=5e-5)
        assert kpis["fp_baixo"] is True

    def test_variacao_contra_periodo_anterior(self, meses, fabrica_registro):
        anteriores = [fabrica_registro(reference_label="dez/24", fatura_geral_rs=1000.0)]
        assert calcular_kpis(meses, anteriores)["variacao"] == pytest.approx(0.5)
        assert calcular_kpis(meses)["variacao"] == 0.0

    def test_sem_fatura_geral(self, fabrica_registro):
        kpis = calcular_kpis([fabrica_registro(reference_label="jan/25", fatura_livre_rs=10.0)])
        assert kpis["pct_ponderado"] == 0.0
        assert kpis["pct_medio_simples"] == 0.0


class TestFatorPotencia:

    def test_sem_consumo(self, fabrica_registro):
        assert fator_potencia_do_periodo([]) == 1.0
        assert fator_potencia_do_periodo([fabrica_registro(reference_label="jan/25")]) == 1.0

    def test_fp_do_periodo_vem_dos_totais(self, fabrica_registro):
        """Média dos FPs mensais ponderada por kWh daria 0,9734; o FP do total é 0,9959"""
        registros = [
            fabrica_registro(reference_label="jan/25", energia_kwh_fora=1000.0),
            fabrica_registro(reference_label="fev/25", energia_kwh_fora=100.0,
                             reativo_kvarh_fora=100.0),
        ]
        assert fator_potencia_do_periodo(registros) == 0.9959
        assert calcular_kpis(registros)["fp_periodo"] == 0.9959

    def test_fp_baixo(self, registro_base, meses):
        assert not possui_fp_baixo([registro_base])
        assert possui_fp_baixo(meses)

    @pytest.mark.parametrize("fp, classe", [
        (0.97, "adequado"),
        (0.92, "adequado"),
        (0.91, "atencao"),
        (0.90, "atencao"),
        (0.8999, "baixo"),
    ])
    def test_classificar(self, fp, classe):
        assert classificar_fp(fp) == classe


class TestDemanda:

    def test_ultrapassagem(self):
        base, ultrapassagem, limite = separar_ultrapassagem(110, 100)
        assert limite == pytest.approx(105.0)
        assert ultrapassagem == pytest.approx(5.0)
        assert base == pytest.approx(105.0)

    def test_dentro_da_tolerancia(self):
        assert separar_ultrapassagem(104, 100) == pytest.approx((104.0, 0.0, 105.0))

    def test_serie_com_contratada_em_degrau(self, fabrica_registro, unidades):
        registros = [
            fabrica_registro(reference_label="set/24", demanda_faturada_kw_ponta=320.0,
                             demanda_contratada_kw_ponta=350.0),
            fabrica_registro(reference_label="ago/24", demanda_faturada_kw_ponta=320.0),
        ]
        agosto, setembro = preparar_serie_demanda(registros, unidades[0])
        assert agosto["contratada_ponta"] == 300.0
        assert agosto["ultrapassagem_ponta"] == pytest.approx(5.0)
        assert agosto["base_ponta"] == pytest.approx(315.0)
        assert setembro["contratada_ponta"] == 350.0
        assert setembro["ultrapassagem_ponta"] == 0.0
        assert setembro["limite_ponta"] == pytest.approx(367.5)

    def test_serie_de_todas_usa_demanda_de_cada_unidade(self, fabrica_registro):
        """130 kW faturados contra 100 (a, mantida) + 50 (b) não ultrapassam"""
        registros = [
            fabrica_registro(reference_label="jan/25", unit_id="a", demanda_contratada_kw_ponta=100.0),
            fabrica_registro(reference_label="fev/25", unit_id="a", demanda_faturada_kw_ponta=80.0),
            fabrica_registro(reference_label="jan/25", unit_id="b", demanda_contratada_kw_ponta=50.0),
            fabrica_registro(reference_label="fev/25", unit_id="b", demanda_contratada_kw_ponta=50.0,
                             demanda_faturada_kw_ponta=50.0),
        ]
        janeiro, fevereiro = preparar_serie_demanda(processar_dados_energia(registros, []), None)
        assert janeiro["contratada_ponta"] == 150.0
        assert fevereiro["faturada_ponta"] == 130.0
        assert fevereiro["contratada_ponta"] == 150.0
        assert fevereiro["ultrapassagem_ponta"] == 0.0
        assert fevereiro["limite_ponta"] == pytest.approx(157.5)

    def test_demandas_zeradas(self, fabrica_registro, registros_duas_unidades):
        assert demandas_zeradas([fabrica_registro(reference_label="jan/25")])
        assert not demandas_zeradas(registros_duas_unidades)
        assert not demandas_zeradas([])


class TestSerieEnergia:

    def test_linha_do_mes(self, registro_base):
        (linha,) = preparar_serie_energia([registro_base])
        assert linha["total_kwh"] == 1500.0
        assert linha["limite_kvarh"] == pytest.approx(930.0)
        assert linha["reativo_excedente_kvarh"] == 0.0
        assert linha["mwh_ponta"] == 1.0
        assert linha["mwh_fora"] == 0.5
        assert linha["fp_global"] == 0.9662
        assert linha["gestao_parceiro_rs"] == 1200.0

    def test_ordem_cronologica(self, meses):
        assert [l["reference_label"] for l in preparar_serie_energia(meses)] == [
            "jan/25", "fev/25", "mar/25",
        ]

    def test_consumo_mwh(self, fabrica_registro):
        registro = fabrica_registro(energia_kwh_fora=1500.0)
        assert consumo_mwh(registro) == 1.5
        registro["mwh_total_gerador"] = 0
        assert consumo_mwh(registro) == 1.5
        registro["mwh_total_gerador"] = 2.0
        assert consumo_mwh(registro) == 2.0
