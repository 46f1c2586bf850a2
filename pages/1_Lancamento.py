import uuid

import pandas as pd
import streamlit as st
from pydantic import ValidationError

from motor_energia.constantes import FP_REFERENCIA
from motor_energia.erros import UnidadeEmUsoError
from motor_energia.formatacao import formatar_moeda, formatar_numero, formatar_percentual
from motor_energia.indicadores import classificar_fp
from motor_energia.lancamento import (
    copiar_parametros_ultimo_mes,
    duplicar_ultimo_mes,
    novo_registro,
    preparar_para_salvar,
    proximo_lancamento,
    upsert_registros,
    verificar_exclusao_unidade,
)
from motor_energia.models import UnidadeEnergia
from motor_energia.periodo import referencia_valida
from motor_energia.recalculo import FormularioEnergia

st.set_page_config(page_title="Lançamento", page_icon="⚡", layout="wide")
st.title("📝 Lançamento Mensal")

st.session_state.setdefault("registros", [])
st.session_state.setdefault("unidades", [])

# ---------------------------------------------------------------------------
# Client / unit selection
# ---------------------------------------------------------------------------
user_id = st.text_input("Cliente (ID)", value=st.session_state.get("cliente_atual", "cliente-1"))
st.session_state["cliente_atual"] = user_id

unidades_cliente = [u for u in st.session_state["unidades"] if u.get("user_id") == user_id]

with st.expander("🏭 Unidades do cliente", expanded=not unidades_cliente):
    with st.form("form_unidade", clear_on_submit=True):
        uc1, uc2, uc3, uc4 = st.columns(4)
        codigo = uc1.text_input("Código da instalação")
        apelido = uc2.text_input("Apelido")
        distribuidora = uc3.text_input("Distribuidora")
        fornecedora = uc4.text_input("Fornecedora de energia")
        dc1, dc2, dc3 = st.columns(3)
        dem_p = dc1.number_input("Demanda contratada Ponta (kW)", min_value=0.0, step=10.0)
        dem_f = dc2.number_input("Demanda contratada Fora (kW)", min_value=0.0, step=10.0)
        dem_r = dc3.number_input("Demanda contratada Reservado (kW)", min_value=0.0, step=10.0)
        if st.form_submit_button("➕ Adicionar unidade"):
            try:
                unidade = UnidadeEnergia(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    code=codigo,
                    nickname=apelido,
                    distribuidora=distribuidora,
                    fornecedora_energia=fornecedora,
                    demanda_contratada_kw_ponta=dem_p,
                    demanda_contratada_kw_fora=dem_f,
                    demanda_contratada_kw_reservado=dem_r,
                )
            except ValidationError:
                st.error("Informe o código da instalação.")
            else:
                st.session_state["unidades"].append(unidade.model_dump())
                st.rerun()

    for u in unidades_cliente:
        c1, c2 = st.columns([4, 1])
        c1.markdown(
            f"**{u['code']}** {u.get('nickname') or ''} · "
            f"{u.get('distribuidora') or '—'} · {u.get('fornecedora_energia') or '—'}"
        )
        if c2.button("🗑️ Excluir", key=f"excluir_{u['id']}"):
            try:
                verificar_exclusao_unidade(u["id"], st.session_state["registros"])
            except UnidadeEmUsoError as e:
                st.error(str(e))
            else:
                st.session_state["unidades"] = [
                    x for x in st.session_state["unidades"] if x["id"] != u["id"]
                ]
                st.rerun()

if not unidades_cliente:
    st.info("Cadastre uma unidade para começar o lançamento.")
    st.stop()

unidade = st.selectbox(
    "Unidade",
    unidades_cliente,
    format_func=lambda u: f"{u['code']} {u.get('nickname') or ''}".strip(),
)

# ---------------------------------------------------------------------------
# Form state
# ---------------------------------------------------------------------------
def _carregar_formulario(valores: dict) -> None:
    formulario = FormularioEnergia(valores)
    formulario.sincronizar()
    formulario.campos_alterados.clear()
    st.session_state["formulario"] = formulario
    for campo, valor in formulario.valores.items():
        if isinstance(valor, int) and not isinstance(valor, bool):
            valor = float(valor)  # number_input widgets are float
        st.session_state[f"campo_{campo}"] = valor


if ("formulario" not in st.session_state
        or st.session_state.get("formulario_unidade") != unidade["id"]):
    st.session_state["formulario_unidade"] = unidade["id"]
    _carregar_formulario(novo_registro(user_id, unidade["id"]))

formulario: FormularioEnergia = st.session_state["formulario"]


def _ao_alterar(campo: str) -> None:
    atualizacao = formulario.alterar(campo, st.session_state[f"campo_{campo}"])
    # Keep derived inputs that are also editable in sync
    for derivado, valor in atualizacao.items():
        if f"campo_{derivado}" in st.session_state:
            st.session_state[f"campo_{derivado}"] = valor


def entrada(rotulo: str, campo: str, passo: float = 1.0, formato: str = "%.2f") -> None:
    st.number_input(
        rotulo,
        key=f"campo_{campo}",
        step=passo,
        format=formato,
        on_change=_ao_alterar,
        args=(campo,),
    )


b1, b2, b3 = st.columns(3)
if b1.button("📋 Duplicar do último mês", use_container_width=True):
    _carregar_formulario(duplicar_ultimo_mes(st.session_state["registros"], user_id, unidade["id"]))
    st.rerun()
if b2.button("🔁 Copiar parâmetros do último mês", use_container_width=True):
    _carregar_formulario(copiar_parametros_ultimo_mes(formulario.valores, st.session_state["registros"]))
    st.rerun()
if b3.button("🧹 Novo lançamento", use_container_width=True):
    _carregar_formulario(novo_registro(user_id, unidade["id"]))
    st.rerun()

# ---------------------------------------------------------------------------
# Layout: Raw inputs (left) | Derived values (right)
# ---------------------------------------------------------------------------
col_form, col_result = st.columns([1.4, 1])

with col_form:
    st.text_input("Mês de referência (mmm/aa)", key="campo_reference_label",
                  on_change=_ao_alterar, args=("reference_label",))

    st.markdown("**Faturas e Repasses (R$)**")
    f1, f2 = st.columns(2)
    with f1:
        entrada("Fatura GERAL (cativo)", "fatura_geral_rs", 100.0)
        entrada("Compra de Energia", "compra_energia_rs", 100.0)
        entrada("Encargos", "encargos_rs", 10.0)
        entrada("Gestão CCO", "gestao_cco_rs", 10.0)
    with f2:
        entrada("Fatura LIVRE", "fatura_livre_rs", 100.0)
        entrada("ICMS Energia (ajuste manual)", "icms_energia_rs", 10.0)
        entrada("Banco Trianon", "banco_trianon_rs", 10.0)
        entrada("Gestão Parceiro", "gestao_parceiro_rs", 10.0)

    st.markdown("**Alíquotas (fração)**")
    t1, t2, t3, t4 = st.columns(4)
    with t1:
        entrada("ICMS", "icms_rate", 0.01, "%.4f")
    with t2:
        entrada("RDB", "rdb_rate", 0.01, "%.4f")
    with t3:
        entrada("PIS", "pis_rate", 0.001, "%.4f")
    with t4:
        entrada("COFINS", "cofins_rate", 0.001, "%.4f")

    st.markdown("**Energia e Reativo**")
    e1, e2, e3 = st.columns(3)
    for coluna, posto, nome in ((e1, "ponta", "Ponta"), (e2, "fora", "Fora"),
                                (e3, "reservado", "Reservado")):
        with coluna:
            entrada(f"Energia {nome} (kWh)", f"energia_kwh_{posto}", 100.0)
            entrada(f"Reativo {nome} (kvarh)", f"reativo_kvarh_{posto}", 100.0)
            entrada(f"Demanda contratada {nome} (kW)", f"demanda_contratada_kw_{posto}", 10.0)
            entrada(f"Demanda faturada {nome} (kW)", f"demanda_faturada_kw_{posto}", 10.0)

    st.markdown("**Fator de Potência (planilha)**")
    p1, p2, p3, p4 = st.columns(4)
    with p1:
        entrada("Limite reativo", "reativo_limite_rate", 0.01, "%.3f")
    with p2:
        entrada("Demanda máxima (kW)", "demanda_maxima_kw", 10.0)
    with p3:
        entrada("FP param. mín.", "fp_param_min", 0.01, "%.2f")
    with p4:
        entrada("FP param. máx.", "fp_param_max", 0.01, "%.2f")

with col_result:
    v = formulario.valores
    st.subheader("Campos Calculados")

    r1, r2 = st.columns(2)
    r1.metric("MWh Total", formatar_numero(v.get("mwh_total_gerador") or 0, 4))
    r2.metric("Reativo excedente (kvarh)", formatar_numero(v.get("reativo_excedente_kvarh") or 0))

    fp_global = v.get("fp_global") or 0
    r3, r4 = st.columns(2)
    r3.metric("Fator de potência", formatar_numero(v.get("fator_potencia") or 0, 4))
    r4.metric("FP global", formatar_numero(fp_global, 4))
    situacao = classificar_fp(fp_global)
    if situacao == "adequado":
        st.success(f"FP adequado (≥ {formatar_numero(FP_REFERENCIA)})")
    elif situacao == "atencao":
        st.warning("FP em atenção (0,90 a 0,9199)")
    else:
        st.error("FP baixo (< 0,90)")

    st.table(pd.DataFrame([
        {"Posto": "Ponta", "FP": v.get("fp_ponta")},
        {"Posto": "Fora", "FP": v.get("fp_fora")},
        {"Posto": "Reservado", "FP": v.get("fp_res")},
    ]).fillna("—"))

    k1, k2 = st.columns(2)
    k1.metric("kVAr p/ FP mín.", formatar_numero(v.get("kvar_corrigir_min") or 0))
    k2.metric("kVAr p/ FP máx.", formatar_numero(v.get("kvar_corrigir_max") or 0))

    st.divider()
    st.metric("ICMS Energia", formatar_moeda(v.get("icms_energia_rs") or 0))
    st.metric(
        "Economia Líquida",
        formatar_moeda(v.get("economia_liquida_rs") or 0),
        delta=formatar_percentual(v.get("economia_liquida_pct") or 0),
    )
    if formulario.alterado:
        st.caption(f"{len(formulario.campos_alterados)} campo(s) alterado(s)")

# ---------------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------------
def _salvar() -> bool:
    payload = preparar_para_salvar({**formulario.valores, "user_id": user_id,
                                    "unit_id": unidade["id"]})
    if not referencia_valida(payload["reference_label"]):
        st.error("Mês de referência inválido. Use o formato mmm/aa (ex.: ago/24).")
        return False
    st.session_state["registros"] = upsert_registros(st.session_state["registros"], [payload])
    return True


def _salvar_e_proximo() -> None:
    # Runs as a callback: widget keys can only be rewritten before they render
    if _salvar():
        _carregar_formulario(proximo_lancamento(formulario.valores))


s1, s2 = st.columns(2)
if s1.button("💾 Salvar", use_container_width=True) and _salvar():
    st.success("Registro salvo")
s2.button("💾 Salvar e próximo mês", use_container_width=True, on_click=_salvar_e_proximo)
