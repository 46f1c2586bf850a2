"""Campos derivados do registro mensal de energia.

Funções puras sobre valores numéricos. A precisão de cada campo derivado faz
parte do contrato (ver PRECISAO em constantes): agregações posteriores somam
estes valores, então arredondar/truncar aqui e lá de forma diferente gera
divergências de centavos.
"""
import math
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Optional

from motor_energia.constantes import (
    CAMPOS_ENERGIA,
    CAMPOS_REATIVO,
    CAMPOS_REPASSE,
    FP_PARAM_MAX_PADRAO,
    FP_PARAM_MIN_PADRAO,
    PRECISAO,
    REATIVO_LIMITE_PADRAO,
)
from motor_energia.formatacao import para_numero

_RUIDO = Decimal("1e-9")


def arredondar(valor: float, casas: int) -> float:
    """Meio para cima, como Math.round/ARRED: arredondar(0.125, 2) → 0.13"""
    quantum = Decimal(1).scaleb(-casas)
    return float(Decimal(str(float(valor))).quantize(quantum, rounding=ROUND_HALF_UP))


def truncar(valor: float, casas: int) -> float:
    """Em direção a zero, como TRUNCAR do Excel: truncar(-1.239, 2) → -1.23

    Ruído binário é descartado antes (7631.429999999993 → 7631.43).
    """
    quantum = Decimal(1).scaleb(-casas)
    limpo = Decimal(str(float(valor))).quantize(_RUIDO, rounding=ROUND_HALF_UP)
    return float(limpo.quantize(quantum, rounding=ROUND_DOWN))


def ajustar_precisao(campo: str, valor: Optional[float]) -> Optional[float]:
    """Aplica a precisão canônica do campo (None passa direto)."""
    if valor is None or campo not in PRECISAO:
        return valor
    casas, modo = PRECISAO[campo]
    if modo == "truncar":
        return truncar(valor, casas)
    return arredondar(valor, casas)


# ---------------------------------------------------------------------------
# Energia e reativo
# ---------------------------------------------------------------------------
def total_mwh(*kwh: float) -> float:
    return sum(kwh) / 1000.0


def reativo_excedente(total_kwh: float, total_kvarh: float,
                      limite: float = REATIVO_LIMITE_PADRAO) -> float:
    """Reativo acima do permitido (limite × kWh); nunca negativo."""
    return max(0.0, total_kvarh - limite * total_kwh)


def fator_potencia(kwh: float, kvarh: float, sem_energia: Optional[float] = 1.0):
    """FP = kWh / sqrt(kWh² + kvarh²).

    Sem energia (kWh <= 0) devolve `sem_energia`; o chamador escolhe a
    convenção: 1.0 para o FP global/agregado, None para indicador por posto.
    """
    if kwh <= 0:
        return sem_energia
    return 1 / math.sqrt(1 + (kvarh / kwh) ** 2)


def fator_potencia_periodo(kwh: float, kvarh: float) -> Optional[float]:
    return fator_potencia(kwh, kvarh, sem_energia=None)


def fator_potencia_global(total_kwh: float, total_kvarh: float) -> float:
    return fator_potencia(total_kwh, total_kvarh, sem_energia=1.0)


def kvar_correcao(fp_atual: Optional[float], demanda_maxima_kw: float,
                  fp_meta: float) -> float:
    """Banco de capacitores para levar o FP atual até a meta (kVAr).

    demanda × (tan(acos(fp_atual)) − tan(acos(fp_meta))), nunca negativo,
    truncado em 2 casas.
    """
    if not fp_atual or demanda_maxima_kw <= 0:
        return 0.0
    tan_atual = math.tan(math.acos(min(1.0, max(0.0, fp_atual))))
    tan_meta = math.tan(math.acos(min(1.0, max(0.0, fp_meta))))
    return truncar(max(0.0, demanda_maxima_kw * (tan_atual - tan_meta)), 2)


# ---------------------------------------------------------------------------
# Tributos e economia
# ---------------------------------------------------------------------------
def icms_energia(compra_energia: float, icms_rate: float, rdb_rate: float) -> float:
    """ICMS por dentro sobre a compra de energia, com redução de base (RDB).

    Equivalente à planilha:
    =TRUNCAR((TRUNCAR(J/(1-ARRED(V-(V*W);4));2))*ARRED(V-(V*W);4);2)
    """
    efetiva = arredondar(icms_rate - icms_rate * rdb_rate, 4)
    divisor = (1 - efetiva) or 1
    base = truncar(compra_energia / divisor, 2)
    return truncar(base * efetiva, 2)


def economia_liquida(fatura_geral: float, fatura_livre: float, compra_energia: float,
                     icms: float, *repasses: float) -> float:
    """Fatura cativa − (fatura livre + compra + ICMS + encargos/gestão)."""
    return truncar(
        fatura_geral - (fatura_livre + compra_energia + icms + sum(repasses)), 2
    )


def percentual_economia(economia: float, fatura_geral: float) -> float:
    if not fatura_geral:
        return 0.0
    return arredondar(economia / fatura_geral, 5)


# ---------------------------------------------------------------------------
# Registro completo
# ---------------------------------------------------------------------------
def totais(registro: dict) -> tuple[float, float]:
    """(total kWh, total kvarh) somando os três postos."""
    kwh = sum(para_numero(registro.get(c)) for c in CAMPOS_ENERGIA)
    kvarh = sum(para_numero(registro.get(c)) for c in CAMPOS_REATIVO)
    return kwh, kvarh


def derivar_reativo(registro: dict) -> dict:
    """Excedente reativo e todos os fatores de potência, a partir dos totais."""
    kwh, kvarh = totais(registro)
    limite = para_numero(registro.get("reativo_limite_rate")) or REATIVO_LIMITE_PADRAO

    fp_global = fator_potencia_global(kwh, kvarh)
    derivados = {
        "reativo_excedente_kvarh": reativo_excedente(kwh, kvarh, limite),
        "fator_potencia": fp_global,
        "fp_global": fp_global,
    }
    for posto, campo_fp in (("ponta", "fp_ponta"), ("fora", "fp_fora"), ("reservado", "fp_res")):
        derivados[campo_fp] = fator_potencia_periodo(
            para_numero(registro.get(f"energia_kwh_{posto}")),
            para_numero(registro.get(f"reativo_kvarh_{posto}")),
        )
    return {campo: ajustar_precisao(campo, valor) for campo, valor in derivados.items()}


def derivar_correcao(registro: dict, fp_global: Optional[float] = None) -> dict:
    if fp_global is None:
        fp_global = fator_potencia_global(*totais(registro))
    demanda = para_numero(registro.get("demanda_maxima_kw"))
    fp_min = para_numero(registro.get("fp_param_min")) or FP_PARAM_MIN_PADRAO
    fp_max = para_numero(registro.get("fp_param_max")) or FP_PARAM_MAX_PADRAO
    return {
        "kvar_corrigir_min": kvar_correcao(fp_global, demanda, fp_min),
        "kvar_corrigir_max": kvar_correcao(fp_global, demanda, fp_max),
    }


def derivar_economia(registro: dict, icms: Optional[float] = None) -> dict:
    if icms is None:
        icms = para_numero(registro.get("icms_energia_rs"))
    fatura_geral = para_numero(registro.get("fatura_geral_rs"))
    economia = economia_liquida(
        fatura_geral,
        para_numero(registro.get("fatura_livre_rs")),
        para_numero(registro.get("compra_energia_rs")),
        icms,
        *(para_numero(registro.get(c)) for c in CAMPOS_REPASSE),
    )
    return {
        "economia_liquida_rs": economia,
        "economia_liquida_pct": percentual_economia(economia, fatura_geral),
    }


def derivar_campos(registro: dict) -> dict:
    """Todos os campos derivados de um registro, na precisão canônica."""
    kwh, _ = totais(registro)
    icms = icms_energia(
        para_numero(registro.get("compra_energia_rs")),
        para_numero(registro.get("icms_rate")),
        para_numero(registro.get("rdb_rate")),
    )
    derivados = {"mwh_total_gerador": ajustar_precisao("mwh_total_gerador", total_mwh(kwh))}
    derivados.update(derivar_reativo(registro))
    derivados.update(derivar_correcao(registro))
    derivados["icms_energia_rs"] = icms
    derivados.update(derivar_economia(registro, icms))
    return derivados
