import re
import unicodedata
from io import BytesIO, StringIO
from typing import Callable, Optional

import pandas as pd
from pydantic import ValidationError

from motor_energia.calculos import derivar_campos
from motor_energia.constantes import EXEMPLO, PADROES_TAXA, TEMPLATE_COLUMNS
from motor_energia.formatacao import para_numero, para_taxa
from motor_energia.logs import obter_logger
from motor_energia.models import RegistroEnergiaMensal, chave_registro
from motor_energia.periodo import normalizar_referencia

logger = obter_logger(__name__)

_PRECO_KWH = r"(R\$/KWH|PRECO\s*KWH|TARIFA\s*KWH)"
_PRECO_KW = r"(R\$/KW|PRECO\s*KW|TARIFA\s*KW)"
_PRECO_KVARH = r"(R\$/KVARH|PRECO\s*KVARH|TARIFA\s*KVARH)"


def _tem(*padroes: str, sem: Optional[str] = None) -> Callable[[str], bool]:
    """Teste de cabeçalho: todos os padrões presentes e, se dado, `sem` ausente."""
    def teste(h: str) -> bool:
        if sem and re.search(sem, h):
            return False
        return all(re.search(p, h) for p in padroes)
    return teste


# Ordered: the first matching test wins for a header
MAPA_CABECALHOS: list[tuple[Callable[[str], bool], str]] = [
    (_tem(r"\bCOD\s*INSTAL\b"), "cod_instal"),
    (_tem(r"\bN\s*RELATORIO\b"), "n_relatorio"),
    (_tem(r"\bMES\s*REFERENCIA\b"), "reference_label"),
    (_tem(r"FATURA\s+GERAL.*\(R\$\)"), "fatura_geral_rs"),
    (_tem(r"^BANDEIRAS\b"), "bandeiras_rs"),
    (_tem(r"FATURA.*LIVRE.*\(R\$\)"), "fatura_livre_rs"),
    (_tem(r"\bPROINFA\b.*\(R\$\)"), "proinfa_rs"),
    (_tem(r"MWH\s+TOTAL.*GERADOR"), "mwh_total_gerador"),
    (_tem(r"TARIFA.*ENERGIA.*\(R\$/MWH\)"), "tarifa_energia_rs_mwh"),
    (_tem(r"COMPRA\s+DE\s+ENERGIA.*\(R\$\)"), "compra_energia_rs"),
    (_tem(r"\bENCARGOS\b.*\(R\$\)"), "encargos_rs"),
    (_tem(r"\bBANCO\s+TRIANON\b"), "banco_trianon_rs"),
    (_tem(r"GESTAO\s+CCO.*\(R\$\)"), "gestao_cco_rs"),
    (_tem(r"(GESTAO\s+PARCEIRO|GESTAO\s+LUDFOR).*\(R\$\)"), "gestao_parceiro_rs"),
    (_tem(r"^PIS\b"), "pis_rate"),
    (_tem(r"^COFINS\b"), "cofins_rate"),
    (_tem(r"^ICMS\b"), "icms_rate"),
    (_tem(r"^RDB\b"), "rdb_rate"),
    (_tem("KWH", "PONTA", sem=r"R\$"), "energia_kwh_ponta"),
    (_tem("KWH", "FORA", sem=r"R\$"), "energia_kwh_fora"),
    (_tem("KWH", "RESERVADO", sem=r"R\$"), "energia_kwh_reservado"),
    (_tem(_PRECO_KWH, "PONTA"), "preco_kwh_ponta"),
    (_tem(_PRECO_KWH, "FORA"), "preco_kwh_fora"),
    (_tem(_PRECO_KWH, "RESERVADO"), "preco_kwh_reservado"),
    (_tem("KW", "CONTRAT", "PONTA", sem=r"R\$"), "demanda_contratada_kw_ponta"),
    (_tem("KW", "CONTRAT", "FORA", sem=r"R\$"), "demanda_contratada_kw_fora"),
    (_tem("KW", "CONTRAT", "RESERVADO", sem=r"R\$"), "demanda_contratada_kw_reservado"),
    (_tem("KW", "FATUR", "PONTA", sem=r"R\$"), "demanda_faturada_kw_ponta"),
    (_tem("KW", "FATUR", "FORA", sem=r"R\$"), "demanda_faturada_kw_fora"),
    (_tem("KW", "FATUR", "RESERVADO", sem=r"R\$"), "demanda_faturada_kw_reservado"),
    (_tem(_PRECO_KW, "PONTA"), "preco_kw_ponta"),
    (_tem(_PRECO_KW, "FORA"), "preco_kw_fora"),
    (_tem(_PRECO_KW, "RESERVADO"), "preco_kw_reservado"),
    (_tem("KVARH", "PONTA", sem=r"R\$"), "reativo_kvarh_ponta"),
    (_tem("KVARH", "FORA", sem=r"R\$"), "reativo_kvarh_fora"),
    (_tem("KVARH", "RESERVADO", sem=r"R\$"), "reativo_kvarh_reservado"),
    (_tem(_PRECO_KVARH, "PONTA"), "preco_kvarh_ponta"),
    (_tem(_PRECO_KVARH, "FORA"), "preco_kvarh_fora"),
    (_tem(_PRECO_KVARH, "RESERVADO"), "preco_kvarh_reservado"),
    (_tem(r"LIMITE\s*REATIVO"), "reativo_limite_rate"),
    (lambda h: bool(re.search(r"PRECO\s*REATIVO", h)
                    or (re.search(r"PRECO.*EXCEDENTE", h) and "KVARH" in h)),
     "preco_kvarh_excedente"),
    (_tem(r"DEMANDA\s*MAXIMA"), "demanda_maxima_kw"),
    (_tem(r"FP\s*PARAM\s*MIN"), "fp_param_min"),
    (_tem(r"FP\s*PARAM\s*MAX"), "fp_param_max"),
]

CAMPOS_TEXTO = {"cod_instal", "n_relatorio", "reference_label"}
CAMPOS_PERCENTUAIS = {"pis_rate", "cofins_rate", "icms_rate", "rdb_rate"}


# ---------------------------------------------------------------------------
# Cabeçalhos
# ---------------------------------------------------------------------------
def normalizar_cabecalho(cabecalho) -> str:
    """' Mês  Referência ' → 'MES REFERENCIA'"""
    texto = re.sub(r"\s+", " ", str(cabecalho or "").strip().upper())
    decomposto = unicodedata.normalize("NFD", texto)
    return "".join(c for c in decomposto if not unicodedata.combining(c))


def mapear_cabecalhos(cabecalhos: list) -> dict[str, str]:
    """{campo: coluna original}. Cabeçalhos não reconhecidos ficam de fora."""
    mapa = {}
    for original in cabecalhos:
        h = normalizar_cabecalho(original)
        for teste, campo in MAPA_CABECALHOS:
            if teste(h):
                mapa[campo] = original
                break
    return mapa


# ---------------------------------------------------------------------------
# Template
# ---------------------------------------------------------------------------
def gerar_template_excel() -> bytes:
    """Template com cabeçalhos + 1 linha de exemplo. Retorna bytes .xlsx."""
    buf = BytesIO()
    df = pd.DataFrame([EXEMPLO], columns=TEMPLATE_COLUMNS)
    with pd.ExcelWriter(buf, engine="xlsxwriter") as writer:
        df.to_excel(writer, index=False, sheet_name="Energia")
    return buf.getvalue()


def gerar_template_csv() -> str:
    """Mesmo template em CSV separado por ';' (Excel pt-BR)."""
    df = pd.DataFrame([EXEMPLO], columns=TEMPLATE_COLUMNS)
    return df.to_csv(index=False, sep=";")


# ---------------------------------------------------------------------------
# Leitura
# ---------------------------------------------------------------------------
def detectar_separador(texto: str) -> str:
    """Separador mais frequente na linha de cabeçalho: ';', ',' ou tab."""
    cabecalho = texto.splitlines()[0] if texto else ""
    return max((";", ",", "\t"), key=cabecalho.count)


def ler_planilha(arquivo: bytes, nome_arquivo: str = "") -> pd.DataFrame:
    """Lê CSV ou XLSX como texto, sem as conversões automáticas do pandas."""
    if nome_arquivo.lower().endswith((".xlsx", ".xls")):
        try:
            df = pd.read_excel(BytesIO(arquivo), sheet_name="Energia", dtype=str)
        except ValueError:
            df = pd.read_excel(BytesIO(arquivo), dtype=str)
    else:
        texto = arquivo.decode("utf-8-sig") if isinstance(arquivo, bytes) else arquivo
        df = pd.read_csv(
            StringIO(texto), sep=detectar_separador(texto), dtype=str,
            keep_default_na=False, skip_blank_lines=True,
        )
    return df.fillna("")


def construir_registro(linha: dict, mapa: dict[str, str], user_id: Optional[str] = None,
                       unit_id: Optional[str] = None) -> dict:
    """Linha da planilha → registro com campos derivados calculados."""
    def valor(campo):
        coluna = mapa.get(campo)
        return linha.get(coluna) if coluna is not None else None

    registro = {
        "user_id": user_id,
        "unit_id": unit_id,
        "reference_label": normalizar_referencia(valor("reference_label")),
        "cod_instal": (str(valor("cod_instal")).strip() or None) if valor("cod_instal") else None,
        "n_relatorio": (str(valor("n_relatorio")).strip() or None) if valor("n_relatorio") else None,
    }
    for campo in mapa:
        if campo in CAMPOS_TEXTO:
            continue
        if campo in CAMPOS_PERCENTUAIS:
            registro[campo] = para_taxa(valor(campo))
        else:
            padrao = PADROES_TAXA.get(campo, 0.0)
            registro[campo] = para_numero(valor(campo), padrao) or padrao

    derivados = derivar_campos(registro)
    if para_numero(registro.get("mwh_total_gerador")):
        # Spreadsheet MWh wins over the kWh sum
        derivados.pop("mwh_total_gerador")
    registro.update(derivados)
    return registro


def _traduzir_erro_validacao(e: ValidationError) -> str:
    """Converte o ValidationError do Pydantic em mensagem em português."""
    mensagens = []
    for err in e.errors():
        campo = " > ".join(str(loc) for loc in err["loc"])
        tipo = err["type"]
        if "missing" in tipo:
            mensagens.append(f"Campo '{campo}': obrigatório, mas não foi preenchido")
        elif "too_short" in tipo or "string_too_short" in tipo:
            mensagens.append(f"Campo '{campo}': não pode ficar vazio")
        elif "float" in tipo or "int" in tipo:
            mensagens.append(f"Campo '{campo}': valor numérico inválido")
        else:
            mensagens.append(f"Campo '{campo}': {err['msg']}")
    return "; ".join(mensagens)


def processar_importacao(
    arquivo: bytes,
    nome_arquivo: str = "",
    user_id: Optional[str] = None,
    unit_id: Optional[str] = None,
    progress_callback=None,
) -> dict:
    """Lê a planilha, mapeia cabeçalhos e monta os registros.

    Args:
        arquivo: bytes do CSV/XLSX.
        nome_arquivo: nome original (decide CSV x XLSX pela extensão).
        user_id / unit_id: cliente e unidade dos registros importados.
        progress_callback: Optional callable(progress_float, status_text).

    Returns:
        {'registros': [...], 'ignorados': [{'linha', 'motivo'}],
         'erros': [{'linha', 'erro'}], 'mapeamento': {campo: coluna}}
        Linhas sem mês de referência são ignoradas, não abortam o lote.
    """
    df = ler_planilha(arquivo, nome_arquivo)
    mapa = mapear_cabecalhos(list(df.columns))
    logger.info("Importação '%s': %d linhas, %d colunas mapeadas",
                nome_arquivo, len(df), len(mapa))

    resultado = {"registros": [], "ignorados": [], "erros": [], "mapeamento": mapa}
    total = len(df)
    if total == 0:
        return resultado

    for idx, linha in enumerate(df.to_dict(orient="records")):
        numero_linha = idx + 1
        if progress_callback:
            progress_callback(numero_linha / total, f"Processando linha {numero_linha}/{total}")

        registro = construir_registro(linha, mapa, user_id, unit_id)
        if not registro["reference_label"]:
            resultado["ignorados"].append(
                {"linha": numero_linha, "motivo": "reference_label ausente"}
            )
            continue

        try:
            modelo = RegistroEnergiaMensal.model_validate(registro)
        except ValidationError as e:
            resultado["erros"].append({"linha": numero_linha, "erro": _traduzir_erro_validacao(e)})
            continue
        resultado["registros"].append(modelo.model_dump())

    if resultado["ignorados"] or resultado["erros"]:
        logger.warning("Importação '%s': %d ignoradas, %d com erro",
                       nome_arquivo, len(resultado["ignorados"]), len(resultado["erros"]))
    return resultado


def contar_insercoes(registros: list[dict], existentes: list[dict]) -> dict:
    """Quantos registros importados são novos x atualizações (mesma chave de upsert)."""
    chaves = {chave_registro(r) for r in existentes}
    novos = sum(1 for r in registros if chave_registro(r) not in chaves)
    return {"inseridos": novos, "atualizados": len(registros) - novos}
