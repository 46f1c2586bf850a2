# tests/test_filtros.py
"""
Tests do pipeline de filtros/agregação e da demanda contratada vigente
"""
import logging
from datetime import date

import pytest

from motor_energia.constantes import MULTIPLAS, TODAS
from motor_energia.erros import UnidadeNaoEncontradaError
from motor_energia.filtros import (
    agregar_por_mes,
    aplicar_demanda_efetiva,
    buscar_unidade,
    coagir_numericos,
    distribuidora_do_registro,
    gerar_nome_exportacao,
    indexar_unidades,
    listar_distribuidoras,
    listar_fornecedoras,
    processar_dados_energia,
)
from motor_energia.models import FiltroEnergia, UnidadeEnergia
from motor_energia.periodo import ModoPeriodo


def _por_mes(linhas):
    return {linha["reference_label"]: linha for linha in linhas}


# ============================================================================
# UNIDADES
# ============================================================================
class TestUnidades:

    def test_indexar_aceita_modelos(self, unidades):
        modelo = UnidadeEnergia(id="u3", code="999")
        indice = indexar_unidades(unidades + [modelo])
        assert set(indice) == {"u1", "u2", "u3"}
        assert indice["u3"]["code"] == "999"

    def test_buscar_unidade_ausente(self, unidades):
        with pytest.raises(UnidadeNaoEncontradaError):
            buscar_unidade("u9", indexar_unidades(unidades))

    def test_distribuidora_da_unidade_como_reserva(self, unidades):
        indice = indexar_unidades(unidades)
        assert distribuidora_do_registro({"unit_id": "u2"}, indice) == "Neoenergia Pernambuco"
        assert distribuidora_do_registro({"unit_id": "u2", "distribuidora": "CELPE"}, indice) == "CELPE"

    def test_listas_ordenadas_e_sem_repeticao(self, unidades, registros_duas_unidades):
        registros = registros_duas_unidades + [{"distribuidora": " Enel "}]
        assert listar_distribuidoras(registros, unidades) == [
            "COELBA", "Enel", "Neoenergia Pernambuco",
        ]
        assert listar_fornecedoras(unidades) == ["Comerc", "Tradener"]


# ============================================================================
# AGREGAÇÃO
# ============================================================================
class TestAgregarPorMes:

    def test_um_registro_por_mes(self, registros_duas_unidades):
        agregados = agregar_por_mes(registros_duas_unidades)
        assert [a["reference_label"] for a in agregados] == ["set/24", "out/24"]
        assert all(a["total_unidades"] == 2 for a in agregados)
        assert all(a["unit_id"] == TODAS for a in agregados)

    def test_fp_recalculado_dos_totais(self, registros_duas_unidades):
        """1100 kWh e 100 kvarh → 0,9959; a média dos FPs (1,0 e 0,7071) daria 0,8536"""
        setembro = _por_mes(agregar_por_mes(registros_duas_unidades))["set/24"]
        assert setembro["energia_kwh_fora"] == 1100.0
        assert setembro["reativo_kvarh_fora"] == 100.0
        assert setembro["fp_global"] == 0.9959
        assert setembro["fp_fora"] == 0.9959
        assert setembro["fp_ponta"] is None

    def test_limite_e_preco_ponderados_por_kwh(self, registros_duas_unidades):
        setembro = _por_mes(agregar_por_mes(registros_duas_unidades))["set/24"]
        assert setembro["reativo_limite_rate"] == pytest.approx(580 / 1100)
        assert setembro["preco_kwh_fora"] == pytest.approx(460 / 1100)
        assert setembro["reativo_excedente_kvarh"] == 0.0

    def test_somas_e_taxas(self, registros_duas_unidades):
        setembro = _por_mes(agregar_por_mes(registros_duas_unidades))["set/24"]
        assert setembro["demanda_faturada_kw_fora"] == 250.0
        assert setembro["fatura_geral_rs"] == 10000.0
        assert setembro["icms_rate"] == 0.18
        assert setembro["fp_param_min"] == 0.92

    def test_percentual_pelos_totais(self, registros_duas_unidades):
        outubro = _por_mes(agregar_por_mes(registros_duas_unidades))["out/24"]
        assert outubro["economia_liquida_rs"] == 1500.0
        assert outubro["economia_liquida_pct"] == 0.15

    def test_distribuidoras_diferentes(self, registros_duas_unidades):
        setembro = _por_mes(agregar_por_mes(registros_duas_unidades))["set/24"]
        assert setembro["distribuidora"] == MULTIPLAS

    def test_grupo_unico_mantem_unidade(self, registros_duas_unidades):
        agregados = agregar_por_mes(registros_duas_unidades[:1])
        assert agregados[0]["unit_id"] == "u1"
        assert agregados[0]["distribuidora"] == "COELBA"
        assert agregados[0]["total_unidades"] == 1

    def test_soma_exata_por_posto(self, fabrica_registro):
        registros = [
            fabrica_registro(reference_label="jan/25", unit_id="a", energia_kwh_ponta=100.0),
            fabrica_registro(reference_label="jan/25", unit_id="b", energia_kwh_ponta=300.0),
        ]
        assert agregar_por_mes(registros)[0]["energia_kwh_ponta"] == 400.0

    def test_rotulo_agrupa_sem_diferenciar_caixa(self, fabrica_registro):
        registros = [
            fabrica_registro(reference_label="ago/24", energia_kwh_fora=10.0),
            fabrica_registro(reference_label="AGO/24 ", energia_kwh_fora=20.0),
        ]
        agregados = agregar_por_mes(registros)
        assert len(agregados) == 1
        assert agregados[0]["energia_kwh_fora"] == 30.0


class TestCoagirNumericos:

    def test_texto_ausente_e_padroes(self):
        coagido = coagir_numericos({
            "reference_label": "ago/24",
            "fatura_geral_rs": "1.234,56",
            "reativo_limite_rate": 0,
            "fp_ponta": "",
            "fp_fora": "0,95",
        })
        assert coagido["fatura_geral_rs"] == 1234.56
        assert coagido["reativo_limite_rate"] == 0.62
        assert coagido["compra_energia_rs"] == 0.0
        assert coagido["fp_ponta"] is None
        assert coagido["fp_fora"] == 0.95
        assert coagido["fp_res"] is None
        assert coagido["reference_label"] == "ago/24"

    def test_fp_global_ausente_vem_dos_totais(self):
        """FP 0 não é leitura válida: registro antigo sem FP recebe o dos totais"""
        coagido = coagir_numericos({
            "reference_label": "ago/24",
            "energia_kwh_fora": 100.0,
            "reativo_kvarh_fora": 100.0,
            "fp_global": None,
        })
        assert coagido["fp_global"] == 0.7071
        assert coagido["fator_potencia"] == 0.7071

    def test_fp_global_sem_energia(self):
        coagido = coagir_numericos({"reference_label": "ago/24"})
        assert coagido["fp_global"] == 1.0
        assert coagido["fator_potencia"] == 1.0

    def test_fp_global_gravado_e_mantido(self):
        coagido = coagir_numericos({
            "reference_label": "ago/24",
            "energia_kwh_fora": 100.0,
            "fp_global": "0,95",
            "fator_potencia": 0.95,
        })
        assert coagido["fp_global"] == 0.95
        assert coagido["fator_potencia"] == 0.95


# ============================================================================
# PIPELINE
# ============================================================================
class TestProcessarDadosEnergia:

    def test_todas_agrega(self, registros_duas_unidades, unidades):
        linhas = processar_dados_energia(registros_duas_unidades, unidades)
        assert len(linhas) == 2
        assert {l["total_unidades"] for l in linhas} == {2}

    def test_todas_soma_demanda_vigente_de_cada_unidade(self, fabrica_registro):
        """Zero em fev/25 na unidade a é 'sem alteração': o conjunto segue com 100 + 50"""
        registros = [
            fabrica_registro(reference_label="jan/25", unit_id="a", demanda_contratada_kw_ponta=100.0),
            fabrica_registro(reference_label="fev/25", unit_id="a", demanda_contratada_kw_ponta=0.0),
            fabrica_registro(reference_label="jan/25", unit_id="b", demanda_contratada_kw_ponta=50.0),
            fabrica_registro(reference_label="fev/25", unit_id="b", demanda_contratada_kw_ponta=50.0),
        ]
        linhas = _por_mes(processar_dados_energia(registros, []))
        assert linhas["jan/25"]["demanda_contratada_efetiva_kw_ponta"] == 150.0
        assert linhas["fev/25"]["demanda_contratada_efetiva_kw_ponta"] == 150.0
        assert linhas["fev/25"]["demanda_contratada_kw_ponta"] == 50.0

    def test_todas_parte_do_padrao_de_cada_unidade(self, registros_duas_unidades, unidades):
        """u1 nunca informou demanda de ponta: vale o padrão 300 da unidade"""
        linhas = processar_dados_energia(registros_duas_unidades, unidades)
        assert [l["demanda_contratada_efetiva_kw_ponta"] for l in linhas] == [300.0, 300.0]

    def test_unidade_especifica_nao_agrega(self, registros_duas_unidades, unidades):
        filtro = FiltroEnergia(unidade_id="u1")
        linhas = processar_dados_energia(registros_duas_unidades, unidades, filtro)
        assert [l["unit_id"] for l in linhas] == ["u1", "u1"]
        assert all("total_unidades" not in l for l in linhas)

    def test_unidade_ignora_distribuidora(self, registros_duas_unidades, unidades):
        """Filtros de distribuidora/fornecedora só valem em 'todas'"""
        filtro = FiltroEnergia(unidade_id="u1", distribuidora="Outra")
        assert len(processar_dados_energia(registros_duas_unidades, unidades, filtro)) == 2

    def test_filtro_distribuidora(self, registros_duas_unidades, unidades):
        filtro = FiltroEnergia(distribuidora="COELBA")
        linhas = processar_dados_energia(registros_duas_unidades, unidades, filtro)
        assert [l["unit_id"] for l in linhas] == ["u1", "u1"]
        assert [l["total_unidades"] for l in linhas] == [1, 1]

    def test_filtro_fornecedora_pela_unidade(self, registros_duas_unidades, unidades):
        filtro = FiltroEnergia(fornecedora="Tradener")
        linhas = processar_dados_energia(registros_duas_unidades, unidades, filtro)
        assert {l["unit_id"] for l in linhas} == {"u2"}

    def test_unidade_desconhecida_gera_aviso(self, registros_duas_unidades, unidades, caplog):
        orfao = dict(registros_duas_unidades[0], unit_id="u9")
        filtro = FiltroEnergia(fornecedora="Comerc")
        with caplog.at_level(logging.WARNING, logger="motor_energia"):
            linhas = processar_dados_energia([orfao], unidades, filtro)
        assert linhas == []
        assert "u9" in caplog.text

    def test_filtro_periodo(self, registros_duas_unidades, unidades):
        filtro = FiltroEnergia(modo_periodo=ModoPeriodo.PERSONALIZADO, inicio="out/24", fim="out/24")
        linhas = processar_dados_energia(registros_duas_unidades, unidades, filtro)
        assert [l["reference_label"] for l in linhas] == ["out/24"]

    def test_periodo_relativo_a_hoje(self, registros_duas_unidades, unidades):
        filtro = FiltroEnergia(modo_periodo=ModoPeriodo.ANO_ATUAL)
        assert processar_dados_energia(
            registros_duas_unidades, unidades, filtro, hoje=date(2025, 1, 15)
        ) == []
        assert len(processar_dados_energia(
            registros_duas_unidades, unidades, filtro, hoje=date(2024, 11, 1)
        )) == 2

    def test_registros_invalidos_sao_ignorados(self, registros_duas_unidades, unidades):
        linhas = processar_dados_energia(
            [registros_duas_unidades[0], 42, "ab"], unidades, FiltroEnergia(unidade_id="u1")
        )
        assert len(linhas) == 1

    def test_nao_altera_entrada(self, registros_duas_unidades, unidades):
        copia = [dict(r) for r in registros_duas_unidades]
        processar_dados_energia(registros_duas_unidades, unidades)
        assert registros_duas_unidades == copia


# ============================================================================
# DEMANDA CONTRATADA VIGENTE
# ============================================================================
class TestDemandaEfetiva:

    def test_degrau_com_padrao_da_unidade(self, unidades):
        registros = [
            {"reference_label": "out/24", "demanda_contratada_kw_ponta": 0},
            {"reference_label": "ago/24", "demanda_contratada_kw_ponta": 0},
            {"reference_label": "set/24", "demanda_contratada_kw_ponta": 350},
        ]
        linhas = aplicar_demanda_efetiva(registros, unidades[0])
        assert [l["reference_label"] for l in linhas] == ["ago/24", "set/24", "out/24"]
        assert [l["demanda_contratada_efetiva_kw_ponta"] for l in linhas] == [300.0, 350.0, 350.0]
        assert [l["demanda_contratada_efetiva_kw_fora"] for l in linhas] == [0.0, 0.0, 0.0]

    def test_sem_unidade(self):
        linhas = aplicar_demanda_efetiva([
            {"reference_label": "jan/25"},
            {"reference_label": "fev/25", "demanda_contratada_kw_fora": "120"},
        ])
        assert [l["demanda_contratada_efetiva_kw_fora"] for l in linhas] == [0.0, 120.0]

    def test_aceita_modelo_de_unidade(self):
        unidade = UnidadeEnergia(id="u1", code="1", demanda_contratada_kw_reservado=80)
        linhas = aplicar_demanda_efetiva([{"reference_label": "jan/25"}], unidade)
        assert linhas[0]["demanda_contratada_efetiva_kw_reservado"] == 80.0


# ============================================================================
# NOME DO ARQUIVO EXPORTADO
# ============================================================================
class TestNomeExportacao:

    def test_tudo_selecionado(self):
        nome = gerar_nome_exportacao(TODAS, TODAS, TODAS, ModoPeriodo.ULTIMOS_12)
        assert nome == "energia_todas_todas_todas_ultimos12.csv"

    def test_com_cliente_e_unidade(self, unidades):
        nome = gerar_nome_exportacao("u1", "Neo Energia", "Comerc", "anoAtual", "Cliente X", unidades)
        assert nome == "energia_Cliente_X_12345_Neo_Energia_Comerc_anoatual.csv"

    def test_unidade_sem_cadastro(self):
        nome = gerar_nome_exportacao("u9", TODAS, TODAS, ModoPeriodo.PERSONALIZADO)
        assert nome == "energia_unidade_todas_todas_personalizado.csv"
