import streamlit as st

from motor_energia.formatacao import formatar_moeda
from motor_energia.indicadores import calcular_kpis
from motor_energia.logs import configurar_logging

configurar_logging()

st.set_page_config(
    page_title="Portal de Energia",
    page_icon="⚡",
    layout="wide",
)

st.session_state.setdefault("registros", [])
st.session_state.setdefault("unidades", [])

st.title("⚡ Portal de Energia: Mercado Livre")

st.markdown(
    """
    Lançamento, importação e acompanhamento das métricas mensais de energia por
    cliente e por unidade consumidora. Os campos derivados (reativo excedente,
    fator de potência, banco de capacitores, ICMS e economia líquida) são
    recalculados automaticamente a partir dos dados da fatura.
    """
)

st.divider()

registros = st.session_state["registros"]
unidades = st.session_state["unidades"]
kpis = calcular_kpis(registros)

col1, col2, col3 = st.columns(3)

with col1:
    st.metric(
        label="Unidades Cadastradas",
        value=len(unidades),
        help="Pontos de medição cadastrados nesta sessão",
    )

with col2:
    st.metric(
        label="Meses Lançados",
        value=len(registros),
        help="Registros mensais (cliente × unidade × mês)",
    )

with col3:
    st.metric(
        label="Economia Líquida Acumulada",
        value=formatar_moeda(kpis["economia_total"]) if kpis else "—",
        help="Soma da economia líquida de todos os registros",
    )

st.divider()

st.subheader("Páginas do Portal")

st.markdown(
    """
    - **Lançamento**: cadastro de unidades e formulário mensal com cálculo ao
      vivo, duplicação do último mês e "salvar e próximo".
    - **Importação**: upload de CSV/XLSX com mapeamento automático de colunas
      e template para download.
    - **Painel**: filtros por unidade, distribuidora, fornecedora e período;
      KPIs, gráficos e exportação CSV.
    """
)
