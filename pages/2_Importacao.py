import pandas as pd
import streamlit as st

from motor_energia.formatacao import formatar_moeda, formatar_percentual
from motor_energia.importacao import (
    contar_insercoes,
    gerar_template_csv,
    gerar_template_excel,
    ler_planilha,
    mapear_cabecalhos,
    processar_importacao,
)
from motor_energia.lancamento import upsert_registros

st.set_page_config(page_title="Importação", page_icon="⚡", layout="wide")
st.title("📥 Importação de Planilha")
st.markdown("Importe vários meses de uma vez a partir de um CSV ou Excel.")

st.session_state.setdefault("registros", [])
st.session_state.setdefault("unidades", [])

# ---------------------------------------------------------------------------
# Template download
# ---------------------------------------------------------------------------
t1, t2 = st.columns(2)
t1.download_button(
    "📥 Baixar Template Excel",
    data=gerar_template_excel(),
    file_name="template_energia.xlsx",
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    use_container_width=True,
)
t2.download_button(
    "📥 Baixar Template CSV",
    data=gerar_template_csv().encode("utf-8-sig"),
    file_name="template_energia.csv",
    mime="text/csv",
    use_container_width=True,
)

st.divider()

# ---------------------------------------------------------------------------
# Client / unit
# ---------------------------------------------------------------------------
user_id = st.text_input("Cliente (ID)", value=st.session_state.get("cliente_atual", "cliente-1"))
unidades_cliente = [u for u in st.session_state["unidades"] if u.get("user_id") == user_id]
unidade = st.selectbox(
    "Unidade de destino",
    [None] + unidades_cliente,
    format_func=lambda u: "— sem unidade —" if u is None else u["code"],
)

# ---------------------------------------------------------------------------
# Upload and process
# ---------------------------------------------------------------------------
arquivo = st.file_uploader("Upload da planilha preenchida", type=["csv", "xlsx"])

if arquivo is not None:
    conteudo = arquivo.getvalue()
    df_upload = ler_planilha(conteudo, arquivo.name)
    mapa = mapear_cabecalhos(list(df_upload.columns))

    st.markdown(f"**{len(df_upload)} linha(s) encontrada(s)**, {len(mapa)} coluna(s) reconhecida(s)")
    st.dataframe(df_upload.head(20), hide_index=True, use_container_width=True)

    nao_mapeadas = [c for c in df_upload.columns if c not in mapa.values()]
    if nao_mapeadas:
        st.caption("Colunas ignoradas: " + ", ".join(map(str, nao_mapeadas)))

    if st.button("⚡ Importar", use_container_width=True):
        progress = st.progress(0, text="Processando...")
        resultado = processar_importacao(
            conteudo,
            arquivo.name,
            user_id=user_id,
            unit_id=unidade["id"] if unidade else None,
            progress_callback=lambda p, texto: progress.progress(p, text=texto),
        )
        progress.progress(1.0, text="Concluído!")

        registros = resultado["registros"]
        contagem = contar_insercoes(registros, st.session_state["registros"])
        st.session_state["registros"] = upsert_registros(st.session_state["registros"], registros)

        c1, c2, c3 = st.columns(3)
        c1.metric("Inseridos", contagem["inseridos"])
        c2.metric("Atualizados", contagem["atualizados"])
        c3.metric("Ignorados", len(resultado["ignorados"]))

        if registros:
            st.dataframe(pd.DataFrame([
                {
                    "Mês": r["reference_label"],
                    "Fatura Geral": formatar_moeda(r["fatura_geral_rs"]),
                    "ICMS Energia": formatar_moeda(r["icms_energia_rs"]),
                    "Economia": formatar_moeda(r["economia_liquida_rs"]),
                    "% Economia": formatar_percentual(r["economia_liquida_pct"]),
                    "FP": f"{r['fator_potencia']:.4f}",
                }
                for r in registros
            ]), hide_index=True, use_container_width=True)

        if resultado["ignorados"]:
            st.warning(f"{len(resultado['ignorados'])} linha(s) ignorada(s):")
            for item in resultado["ignorados"][:10]:
                st.write(f"Linha {item['linha']}: {item['motivo']}")
            if len(resultado["ignorados"]) > 10:
                st.write(f"e mais {len(resultado['ignorados']) - 10}…")

        for item in resultado["erros"]:
            st.error(f"**Linha {item['linha']}**: {item['erro']}")
