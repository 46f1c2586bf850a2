import pandas as pd
import streamlit as st

from motor_energia.constantes import POSTOS, TODAS
from motor_energia.exportacao import exportar_csv
from motor_energia.filtros import (
    gerar_nome_exportacao,
    indexar_unidades,
    listar_distribuidoras,
    listar_fornecedoras,
    processar_dados_energia,
)
from motor_energia.formatacao import formatar_moeda, formatar_numero, formatar_percentual
from motor_energia.grafico import (
    criar_grafico_consumo,
    criar_grafico_custos,
    criar_grafico_demanda,
    criar_grafico_economia,
    criar_grafico_fator_potencia,
    criar_grafico_reativo,
)
from motor_energia.indicadores import (
    calcular_kpis,
    demandas_zeradas,
    preparar_serie_demanda,
    preparar_serie_energia,
)
from motor_energia.models import FiltroEnergia
from motor_energia.periodo import ModoPeriodo, ordenar_por_referencia

st.set_page_config(page_title="Painel", page_icon="⚡", layout="wide")
st.title("📊 Painel de Energia")

st.session_state.setdefault("registros", [])
st.session_state.setdefault("unidades", [])

user_id = st.text_input("Cliente (ID)", value=st.session_state.get("cliente_atual", "cliente-1"))
registros = [r for r in st.session_state["registros"] if r.get("user_id") == user_id]
unidades = [u for u in st.session_state["unidades"] if u.get("user_id") == user_id]

if not registros:
    st.info("Nenhum mês lançado para este cliente.")
    st.stop()

# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------
ROTULOS_PERIODO = {
    ModoPeriodo.ULTIMOS_12: "Últimos 12 meses",
    ModoPeriodo.ANO_ATUAL: "Ano atual",
    ModoPeriodo.ANO_ANTERIOR: "Ano anterior",
    ModoPeriodo.PERSONALIZADO: "Personalizado",
}

f1, f2, f3, f4 = st.columns(4)
unidades_por_id = indexar_unidades(unidades)
unidade_id = f1.selectbox(
    "Unidade",
    [TODAS] + list(unidades_por_id),
    format_func=lambda i: "Todas" if i == TODAS else unidades_por_id[i]["code"],
)
distribuidora = f2.selectbox(
    "Distribuidora", [TODAS] + listar_distribuidoras(registros, unidades),
    format_func=lambda d: "Todas" if d == TODAS else d,
    disabled=unidade_id != TODAS,
)
fornecedora = f3.selectbox(
    "Fornecedora", [TODAS] + listar_fornecedoras(unidades),
    format_func=lambda d: "Todas" if d == TODAS else d,
    disabled=unidade_id != TODAS,
)
modo = f4.selectbox("Período", list(ROTULOS_PERIODO), format_func=ROTULOS_PERIODO.get)

inicio = fim = None
if modo == ModoPeriodo.PERSONALIZADO:
    rotulos = [r["reference_label"] for r in ordenar_por_referencia(registros)]
    p1, p2 = st.columns(2)
    inicio = p1.selectbox("De", rotulos, index=0)
    fim = p2.selectbox("Até", rotulos, index=len(rotulos) - 1)

filtro = FiltroEnergia(
    unidade_id=unidade_id,
    distribuidora=distribuidora if unidade_id == TODAS else TODAS,
    fornecedora=fornecedora if unidade_id == TODAS else TODAS,
    modo_periodo=modo,
    inicio=inicio,
    fim=fim,
)
dados = ordenar_por_referencia(processar_dados_energia(registros, unidades, filtro))

if not dados:
    st.warning("Nenhum registro no período/filtro selecionado.")
    st.stop()

# ---------------------------------------------------------------------------
# KPIs
# ---------------------------------------------------------------------------
kpis = calcular_kpis(dados)
st.subheader(f"KPIs de Energia ({ROTULOS_PERIODO[modo]})")
k1, k2, k3, k4 = st.columns(4)
k1.metric("Economia líquida", formatar_moeda(kpis["economia_total"]))
k2.metric(
    "% Economia média (ponderada)",
    formatar_percentual(kpis["pct_ponderado"]),
    help=f"{formatar_percentual(kpis['pct_medio_simples'])} média simples",
)
k3.metric("Consumo total (MWh)", formatar_numero(kpis["consumo_mwh"]))
k4.markdown(
    f"**Melhor mês:** {kpis['melhor']['reference_label']} "
    f"({formatar_moeda(kpis['melhor']['economia_liquida_rs'])})  \n"
    f"**Pior mês:** {kpis['pior']['reference_label']} "
    f"({formatar_moeda(kpis['pior']['economia_liquida_rs'])})"
)

# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------
serie = preparar_serie_energia(dados)

g1, g2 = st.columns(2)
g1.plotly_chart(criar_grafico_economia(serie), use_container_width=True)
g2.plotly_chart(criar_grafico_consumo(serie), use_container_width=True)

if not demandas_zeradas(dados):
    unidade = unidades_por_id.get(unidade_id) if unidade_id != TODAS else None
    serie_demanda = preparar_serie_demanda(dados, unidade)
    abas = st.tabs(["Demanda Ponta", "Demanda Fora Ponta", "Demanda Reservado"])
    for aba, posto in zip(abas, POSTOS):
        aba.plotly_chart(criar_grafico_demanda(serie_demanda, posto), use_container_width=True)

g3, g4 = st.columns(2)
g3.plotly_chart(criar_grafico_fator_potencia(serie, kpis["fp_periodo"]), use_container_width=True)
g4.plotly_chart(criar_grafico_reativo(serie), use_container_width=True)
if kpis["fp_baixo"]:
    st.warning("Há meses com fator de potência abaixo de 0,92.")

st.plotly_chart(criar_grafico_custos(serie), use_container_width=True)

# ---------------------------------------------------------------------------
# Table + export
# ---------------------------------------------------------------------------
st.subheader("Histórico Mensal")
st.dataframe(pd.DataFrame([
    {
        "Mês": r["reference_label"],
        "Distribuidora": r.get("distribuidora") or "—",
        "Fatura Geral": formatar_moeda(r["fatura_geral_rs"]),
        "Fatura Livre": formatar_moeda(r["fatura_livre_rs"]),
        "Economia": formatar_moeda(r["economia_liquida_rs"]),
        "% Economia": formatar_percentual(r["economia_liquida_pct"]),
        "FP Global": formatar_numero(r["fp_global"], 4),
    }
    for r in reversed(dados)
]), hide_index=True, use_container_width=True)

separador = st.radio("Separador do CSV", [",", ";"], horizontal=True,
                     format_func=lambda s: "Vírgula (,)" if s == "," else "Ponto e vírgula (;)")
st.download_button(
    "📄 Exportar CSV",
    data=exportar_csv(dados, separador).encode("utf-8-sig"),
    file_name=gerar_nome_exportacao(unidade_id, filtro.distribuidora, filtro.fornecedora,
                                    modo, user_id, unidades),
    mime="text/csv",
    use_container_width=True,
)
