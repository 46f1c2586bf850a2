"""KPIs e preparação de séries para os gráficos de energia.

Recebe as linhas já filtradas/agregadas por `processar_dados_energia`.
"""
from typing import Optional

import numpy as np

from motor_energia.calculos import (
    ajustar_precisao,
    fator_potencia_global,
    reativo_excedente,
    totais,
)
from motor_energia.constantes import (
    CAMPOS_DEMANDA_EFETIVA,
    CAMPOS_DEMANDA_FATURADA,
    CAMPOS_REPASSE,
    FP_ATENCAO,
    FP_REFERENCIA,
    POSTOS,
    REATIVO_LIMITE_PADRAO,
    TOLERANCIA_DEMANDA,
)
from motor_energia.filtros import aplicar_demanda_efetiva
from motor_energia.formatacao import para_numero
from motor_energia.periodo import ordenar_por_referencia


def _fp_do_registro(registro: dict) -> float:
    """FP global gravado ou, na falta, recalculado dos totais."""
    return para_numero(registro.get("fp_global")) or fator_potencia_global(*totais(registro))


def consumo_mwh(registro: dict) -> float:
    """MWh informado ou, se zerado, soma dos kWh / 1000."""
    mwh = para_numero(registro.get("mwh_total_gerador"))
    if mwh:
        return mwh
    kwh, _ = totais(registro)
    return kwh / 1000


def calcular_kpis(registros: list[dict], anteriores: Optional[list[dict]] = None) -> Optional[dict]:
    """KPIs do período. Retorna None se não houver registros.

    Returns:
        {'economia_total', 'pct_ponderado', 'pct_medio_simples', 'consumo_mwh',
         'melhor', 'pior', 'variacao', 'fp_periodo', 'fp_baixo'}
        pct_ponderado = Σ economia / Σ fatura geral (meses grandes pesam mais).
        fp_periodo = FP dos kWh e kvarh somados no período.
    """
    if not registros:
        return None

    economias = np.array([para_numero(r.get("economia_liquida_rs")) for r in registros])
    faturas = np.array([para_numero(r.get("fatura_geral_rs")) for r in registros])

    economia_total = float(economias.sum())
    fatura_total = float(faturas.sum())
    pct_ponderado = economia_total / fatura_total if fatura_total else 0.0

    com_fatura = faturas != 0
    pct_medio_simples = (
        float(np.mean(economias[com_fatura] / faturas[com_fatura])) if com_fatura.any() else 0.0
    )

    # Chronological order first so ties keep the earliest month
    ordenados = ordenar_por_referencia(registros)
    melhor = max(ordenados, key=lambda r: para_numero(r.get("economia_liquida_rs")))
    pior = min(ordenados, key=lambda r: para_numero(r.get("economia_liquida_rs")))

    variacao = 0.0
    if anteriores:
        economia_anterior = sum(para_numero(r.get("economia_liquida_rs")) for r in anteriores)
        if economia_anterior:
            variacao = (economia_total - economia_anterior) / abs(economia_anterior)

    return {
        "economia_total": economia_total,
        "pct_ponderado": pct_ponderado,
        "pct_medio_simples": pct_medio_simples,
        "consumo_mwh": sum(consumo_mwh(r) for r in registros),
        "melhor": melhor,
        "pior": pior,
        "variacao": variacao,
        "fp_periodo": fator_potencia_do_periodo(registros),
        "fp_baixo": possui_fp_baixo(registros),
    }


def fator_potencia_do_periodo(registros: list[dict]) -> float:
    """FP dos totais somados (1.0 sem consumo). Média de FPs mensais não vale:
    o FP não é linear em kWh e kvarh.
    """
    kwh = sum(totais(r)[0] for r in registros)
    kvarh = sum(totais(r)[1] for r in registros)
    return ajustar_precisao("fp_global", fator_potencia_global(kwh, kvarh))


def possui_fp_baixo(registros: list[dict], referencia: float = FP_REFERENCIA) -> bool:
    return any(_fp_do_registro(r) < referencia for r in registros)


def classificar_fp(fp: float) -> str:
    """'adequado' (≥ 0,92), 'atencao' (0,90 a 0,9199) ou 'baixo' (< 0,90)."""
    if fp >= FP_REFERENCIA:
        return "adequado"
    if fp >= FP_ATENCAO:
        return "atencao"
    return "baixo"


def separar_ultrapassagem(medida: float, contratada: float,
                          tolerancia: float = TOLERANCIA_DEMANDA) -> tuple[float, float, float]:
    """Demanda medida → (base, ultrapassagem, limite).

    Limite = contratada × 105%; ultrapassagem é o que passa do limite.
    """
    limite = contratada * tolerancia
    ultrapassagem = max(0.0, medida - limite)
    return medida - ultrapassagem, ultrapassagem, limite


def preparar_serie_demanda(registros: list[dict], unidade: Optional[dict] = None) -> list[dict]:
    """Linhas do gráfico de demanda com contratada em degrau e faixa de 105%."""
    # Rows from the "todas" pipeline already carry the per-unit scan
    if registros and all(c in r for r in registros for c in CAMPOS_DEMANDA_EFETIVA):
        linhas = ordenar_por_referencia(registros)
    else:
        linhas = aplicar_demanda_efetiva(registros, unidade)
    serie = []
    for r in linhas:
        linha = {"reference_label": r.get("reference_label")}
        for posto, campo_faturada, campo_efetiva in zip(
            POSTOS, CAMPOS_DEMANDA_FATURADA, CAMPOS_DEMANDA_EFETIVA
        ):
            medida = para_numero(r.get(campo_faturada))
            contratada = para_numero(r.get(campo_efetiva))
            base, ultrapassagem, limite = separar_ultrapassagem(medida, contratada)
            linha.update({
                f"faturada_{posto}": medida,
                f"base_{posto}": base,
                f"ultrapassagem_{posto}": ultrapassagem,
                f"contratada_{posto}": contratada,
                f"limite_{posto}": limite,
            })
        serie.append(linha)
    return serie


def demandas_zeradas(registros: list[dict]) -> bool:
    """True se nenhum mês tem demanda faturada (gráfico de demanda é omitido)."""
    return bool(registros) and all(
        para_numero(r.get(c)) == 0 for r in registros for c in CAMPOS_DEMANDA_FATURADA
    )


def preparar_serie_energia(registros: list[dict]) -> list[dict]:
    """Consumo por posto (MWh), reativo, FP e composição de custos por mês."""
    serie = []
    for r in ordenar_por_referencia(registros):
        kwh, kvarh = totais(r)
        limite_rate = para_numero(r.get("reativo_limite_rate")) or REATIVO_LIMITE_PADRAO
        linha = {
            "reference_label": r.get("reference_label"),
            "total_kwh": kwh,
            "total_kvarh": kvarh,
            "limite_kvarh": limite_rate * kwh,
            "reativo_excedente_kvarh": reativo_excedente(kwh, kvarh, limite_rate),
            "fp_global": _fp_do_registro(r),
            "fatura_livre_rs": para_numero(r.get("fatura_livre_rs")),
            "compra_energia_rs": para_numero(r.get("compra_energia_rs")),
            "icms_energia_rs": para_numero(r.get("icms_energia_rs")),
            "economia_liquida_rs": para_numero(r.get("economia_liquida_rs")),
            "economia_liquida_pct": para_numero(r.get("economia_liquida_pct")),
        }
        for posto in POSTOS:
            linha[f"mwh_{posto}"] = para_numero(r.get(f"energia_kwh_{posto}")) / 1000
        for campo in CAMPOS_REPASSE:
            linha[campo] = para_numero(r.get(campo))
        serie.append(linha)
    return serie
