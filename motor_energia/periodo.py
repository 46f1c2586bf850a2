"""Mês de referência 'mmm/aa' (ex.: 'ago/24'): parsing, aritmética e faixas de período.

A ordem cronológica é sempre decidida pelo índice do mês, nunca pela ordem
alfabética do rótulo ('out/24' < 'set/24' como texto, mas setembro vem antes).
"""
import re
from datetime import date
from enum import Enum
from typing import NamedTuple, Optional

from motor_energia.constantes import MESES_PT
from motor_energia.erros import ErroFormatoReferencia
from motor_energia.logs import obter_logger

logger = obter_logger(__name__)

PADRAO_REFERENCIA = re.compile(
    r"^(jan|fev|mar|abr|mai|jun|jul|ago|set|out|nov|dez)/(\d{2})$"
)


class Referencia(NamedTuple):
    mes: int
    ano: int


class ModoPeriodo(str, Enum):
    ULTIMOS_12 = "ultimos12"
    ANO_ATUAL = "anoAtual"
    ANO_ANTERIOR = "anoAnterior"
    PERSONALIZADO = "personalizado"


def parse_referencia(rotulo: str) -> Referencia:
    """'ago/24' → Referencia(mes=8, ano=2024). Raises ErroFormatoReferencia."""
    if not isinstance(rotulo, str):
        raise ErroFormatoReferencia(rotulo)
    match = PADRAO_REFERENCIA.match(rotulo.strip().lower())
    if not match:
        raise ErroFormatoReferencia(rotulo)
    return Referencia(MESES_PT.index(match.group(1)) + 1, 2000 + int(match.group(2)))


def formatar_referencia(mes: int, ano: int) -> str:
    """(8, 2024) → 'ago/24'"""
    return f"{MESES_PT[mes - 1]}/{ano % 100:02d}"


def referencia_valida(rotulo) -> bool:
    try:
        parse_referencia(rotulo)
    except ErroFormatoReferencia:
        return False
    return True


def para_indice(ano: int, mes: int) -> int:
    """Total de meses desde o ano 0; permite somar e comparar meses."""
    return ano * 12 + (mes - 1)


def de_indice(indice: int) -> Referencia:
    ano, resto = divmod(indice, 12)
    return Referencia(resto + 1, ano)


def indice_referencia(rotulo: str) -> int:
    ref = parse_referencia(rotulo)
    return para_indice(ref.ano, ref.mes)


def incrementar_referencia(rotulo: str, meses: int = 1) -> str:
    """'dez/24' → 'jan/25'. Rótulo inválido volta inalterado."""
    try:
        indice = indice_referencia(rotulo)
    except ErroFormatoReferencia:
        logger.debug("Rótulo não incrementado (formato inválido): %r", rotulo)
        return rotulo
    ref = de_indice(indice + meses)
    return formatar_referencia(ref.mes, ref.ano)


def chave_referencia(rotulo) -> int:
    """Chave de ordenação cronológica; rótulos inválidos ficam no início."""
    try:
        return indice_referencia(rotulo)
    except ErroFormatoReferencia:
        return -1


def comparar_referencias(a: str, b: str) -> int:
    """Negativo se `a` é anterior a `b`, zero se mesmo mês, positivo se posterior."""
    return chave_referencia(a) - chave_referencia(b)


def ordenar_por_referencia(registros: list[dict], reverso: bool = False) -> list[dict]:
    return sorted(
        registros,
        key=lambda r: chave_referencia(r.get("reference_label")),
        reverse=reverso,
    )


def na_faixa(rotulo: str, inicio: str, fim: str) -> bool:
    """Pertinência inclusiva; `inicio` e `fim` podem vir invertidos."""
    try:
        k = indice_referencia(rotulo)
    except ErroFormatoReferencia:
        return False
    a, b = indice_referencia(inicio), indice_referencia(fim)
    return min(a, b) <= k <= max(a, b)


def referencia_atual(hoje: Optional[date] = None) -> str:
    hoje = hoje or date.today()
    return formatar_referencia(hoje.month, hoje.year)


def resolver_intervalo(
    modo: ModoPeriodo,
    inicio: Optional[str] = None,
    fim: Optional[str] = None,
    hoje: Optional[date] = None,
) -> tuple[int, int]:
    """(indice_inicio, indice_fim) inclusivos para o modo de período."""
    hoje = hoje or date.today()
    modo = ModoPeriodo(modo)

    if modo == ModoPeriodo.ANO_ATUAL:
        return para_indice(hoje.year, 1), para_indice(hoje.year, 12)

    if modo == ModoPeriodo.ANO_ANTERIOR:
        return para_indice(hoje.year - 1, 1), para_indice(hoje.year - 1, 12)

    if modo == ModoPeriodo.PERSONALIZADO:
        # Missing or malformed ends leave the range open on that side
        a = chave_referencia(inicio) if inicio else -1
        b = chave_referencia(fim) if fim else -1
        if inicio and a < 0 or fim and b < 0:
            logger.warning("Período personalizado com rótulo inválido: %r a %r", inicio, fim)
        a = a if a >= 0 else 0
        b = b if b >= 0 else para_indice(9999, 12)
        return min(a, b), max(a, b)

    # Last 12 months, current month included
    fim_idx = para_indice(hoje.year, hoje.month)
    return fim_idx - 11, fim_idx


def filtrar_por_periodo(
    registros: list[dict],
    modo: ModoPeriodo,
    inicio: Optional[str] = None,
    fim: Optional[str] = None,
    hoje: Optional[date] = None,
) -> list[dict]:
    """Mantém registros dentro da faixa; sem rótulo ou rótulo inválido → fora."""
    inicio_idx, fim_idx = resolver_intervalo(modo, inicio, fim, hoje)
    filtrados = []
    for r in registros:
        k = chave_referencia(r.get("reference_label"))
        if k >= 0 and inicio_idx <= k <= fim_idx:
            filtrados.append(r)
    return filtrados


def normalizar_referencia(texto) -> str:
    """Normaliza rótulos vindos de planilhas para 'mmm/aa'.

    'AGO/2024' → 'ago/24' | '2024-08' → 'ago/24' | '8/2024' → 'ago/24'
    Formatos não reconhecidos voltam apenas com strip/lower.
    """
    if texto is None:
        return ""
    s = str(texto).strip().lower().replace("\\", "/")
    if not s:
        return ""
    if PADRAO_REFERENCIA.match(s):
        return s

    mes = ano = None

    match = re.match(r"^(\d{4})[-/]?(\d{1,2})$", s)
    if match:
        ano, mes = int(match.group(1)), int(match.group(2))

    if mes is None:
        match = re.match(r"^(\d{1,2})[-/]?(\d{4})$", s)
        if match:
            mes, ano = int(match.group(1)), int(match.group(2))

    if mes is None:
        match = re.match(r"^([a-z]{3})[\s/-]?(\d{4}|\d{2})$", s)
        if match and match.group(1) in MESES_PT:
            mes = MESES_PT.index(match.group(1)) + 1
            ano = int(match.group(2))
            if ano < 100:
                ano += 2000

    if mes and ano and 1 <= mes <= 12:
        return formatar_referencia(mes, ano)

    return s
