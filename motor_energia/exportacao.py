from io import BytesIO

import pandas as pd

from motor_energia.logs import obter_logger
from motor_energia.periodo import ordenar_por_referencia

logger = obter_logger(__name__)

# Identity columns lead; every other key follows in first-seen order
COLUNAS_INICIAIS = ["reference_label", "user_id", "unit_id", "distribuidora"]


def montar_dataframe(registros: list[dict]) -> pd.DataFrame:
    """Linhas processadas → DataFrame em ordem cronológica."""
    df = pd.DataFrame(ordenar_por_referencia(registros))
    if df.empty:
        return df
    iniciais = [c for c in COLUNAS_INICIAIS if c in df.columns]
    return df[iniciais + [c for c in df.columns if c not in iniciais]]


def exportar_csv(registros: list[dict], separador: str = ",") -> str:
    """CSV com todas as colunas. separador=';' usa vírgula decimal (Excel pt-BR)."""
    df = montar_dataframe(registros)
    decimal = "," if separador == ";" else "."
    logger.debug("Exportando %d linhas (sep=%r)", len(df), separador)
    return df.to_csv(index=False, sep=separador, decimal=decimal)


def exportar_excel(registros: list[dict]) -> bytes:
    """Mesmas linhas em .xlsx."""
    buf = BytesIO()
    with pd.ExcelWriter(buf, engine="xlsxwriter") as writer:
        montar_dataframe(registros).to_excel(writer, index=False, sheet_name="Energia")
    return buf.getvalue()
