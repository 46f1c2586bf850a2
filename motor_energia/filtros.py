"""Filtros e agregação dos registros mensais para as telas de cliente/admin.

Ordem fixa das etapas em `processar_dados_energia`:
  período → unidade → distribuidora/fornecedora (só em "todas") →
  agregação por mês (só em "todas") → coerção numérica.

Na agregação, campos derivados (excedente reativo, fatores de potência,
% de economia) são recalculados a partir dos totais somados. Fator de
potência não é linear: a média dos FPs das unidades não é o FP do conjunto.
"""
import re
from datetime import date
from typing import Iterable, Optional, Union

from pydantic import BaseModel

from motor_energia.calculos import derivar_reativo, percentual_economia, totais
from motor_energia.constantes import (
    CAMPOS_DEMANDA_CONTRATADA,
    CAMPOS_DEMANDA_EFETIVA,
    CAMPOS_FP_PERIODO,
    CAMPOS_NUMERICOS,
    CAMPOS_PRECO,
    CAMPOS_SOMAVEIS,
    CAMPOS_TAXA,
    MULTIPLAS,
    PADROES_TAXA,
    REATIVO_LIMITE_PADRAO,
    TODAS,
)
from motor_energia.erros import UnidadeNaoEncontradaError
from motor_energia.formatacao import para_numero
from motor_energia.logs import obter_logger
from motor_energia.models import FiltroEnergia
from motor_energia.periodo import ModoPeriodo, filtrar_por_periodo, ordenar_por_referencia

logger = obter_logger(__name__)


def _como_dict(item) -> dict:
    if isinstance(item, BaseModel):
        return item.model_dump()
    return dict(item)


# ---------------------------------------------------------------------------
# Unidades
# ---------------------------------------------------------------------------
def indexar_unidades(unidades: Iterable) -> dict[str, dict]:
    """{id: unidade} aceitando dicts ou UnidadeEnergia."""
    indice = {}
    for u in unidades or []:
        unidade = _como_dict(u)
        if unidade.get("id") is not None:
            indice[str(unidade["id"])] = unidade
    return indice


def buscar_unidade(unidade_id, unidades_por_id: dict[str, dict]) -> dict:
    """Raises UnidadeNaoEncontradaError."""
    try:
        return unidades_por_id[str(unidade_id)]
    except KeyError:
        raise UnidadeNaoEncontradaError(unidade_id) from None


def _unidade_do_registro(registro: dict, unidades_por_id: dict[str, dict]) -> Optional[dict]:
    unidade_id = registro.get("unit_id")
    if not unidade_id:
        return None
    try:
        return buscar_unidade(unidade_id, unidades_por_id)
    except UnidadeNaoEncontradaError as e:
        logger.warning("%s (distribuidora/fornecedora tratadas como ausentes)", e)
        return None


def distribuidora_do_registro(registro: dict, unidades_por_id: dict[str, dict]) -> Optional[str]:
    """Distribuidora do próprio registro ou, na falta, da unidade vinculada."""
    if registro.get("distribuidora"):
        return registro["distribuidora"]
    unidade = _unidade_do_registro(registro, unidades_por_id)
    return unidade.get("distribuidora") if unidade else None


def fornecedora_do_registro(registro: dict, unidades_por_id: dict[str, dict]) -> Optional[str]:
    unidade = _unidade_do_registro(registro, unidades_por_id)
    return unidade.get("fornecedora_energia") if unidade else None


def listar_distribuidoras(registros: list[dict], unidades: Iterable) -> list[str]:
    """Distribuidoras distintas; cadastro de unidades primeiro, registros como reserva."""
    nomes = set()
    for u in unidades or []:
        nome = (_como_dict(u).get("distribuidora") or "").strip()
        if nome:
            nomes.add(nome)
    for r in registros:
        nome = (r.get("distribuidora") or "").strip()
        if nome:
            nomes.add(nome)
    return sorted(nomes)


def listar_fornecedoras(unidades: Iterable) -> list[str]:
    nomes = set()
    for u in unidades or []:
        nome = (_como_dict(u).get("fornecedora_energia") or "").strip()
        if nome:
            nomes.add(nome)
    return sorted(nomes)


# ---------------------------------------------------------------------------
# Filtros
# ---------------------------------------------------------------------------
def filtrar_por_unidade(registros: list[dict], unidade_id: str) -> list[dict]:
    if unidade_id == TODAS:
        return list(registros)
    return [r for r in registros if r.get("unit_id") is not None
            and str(r["unit_id"]) == str(unidade_id)]


def filtrar_por_distribuidora(registros: list[dict], distribuidora: str,
                              unidades_por_id: dict[str, dict]) -> list[dict]:
    if distribuidora == TODAS:
        return list(registros)
    return [r for r in registros
            if distribuidora_do_registro(r, unidades_por_id) == distribuidora]


def filtrar_por_fornecedora(registros: list[dict], fornecedora: str,
                            unidades_por_id: dict[str, dict]) -> list[dict]:
    if fornecedora == TODAS:
        return list(registros)
    return [r for r in registros
            if fornecedora_do_registro(r, unidades_por_id) == fornecedora]


# ---------------------------------------------------------------------------
# Agregação
# ---------------------------------------------------------------------------
def _media_ponderada(valores: list[float], pesos: list[float]) -> Optional[float]:
    total = sum(pesos)
    if total <= 0:
        return None
    return sum(v * p for v, p in zip(valores, pesos)) / total


def _mesclar_mes(grupo: list[dict]) -> dict:
    mesclado = dict(grupo[0])

    for campo in CAMPOS_SOMAVEIS:
        mesclado[campo] = sum(para_numero(r.get(campo)) for r in grupo)
    for campo in CAMPOS_DEMANDA_EFETIVA:
        if campo in mesclado:
            mesclado[campo] = sum(para_numero(r.get(campo)) for r in grupo)

    pesos = [totais(r)[0] for r in grupo]

    limites = [para_numero(r.get("reativo_limite_rate")) or REATIVO_LIMITE_PADRAO for r in grupo]
    limite = _media_ponderada(limites, pesos)
    mesclado["reativo_limite_rate"] = limite if limite is not None else limites[0]

    for campo in CAMPOS_PRECO:
        precos = [para_numero(r.get(campo)) for r in grupo]
        media = _media_ponderada(precos, pesos)
        mesclado[campo] = media if media is not None else next((p for p in precos if p), 0.0)

    for campo in CAMPOS_TAXA:
        valores = [para_numero(r.get(campo)) for r in grupo]
        mesclado[campo] = next((v for v in valores if v), PADROES_TAXA.get(campo, 0.0))

    distribuidoras = {r.get("distribuidora") for r in grupo}
    if len(distribuidoras) > 1:
        mesclado["distribuidora"] = MULTIPLAS

    if len(grupo) > 1:
        mesclado["unit_id"] = TODAS
        mesclado.pop("id", None)
    mesclado["total_unidades"] = len(grupo)

    # Derived values come from the summed totals, never from averaging
    mesclado.update(derivar_reativo(mesclado))
    mesclado["economia_liquida_pct"] = percentual_economia(
        mesclado["economia_liquida_rs"], mesclado["fatura_geral_rs"]
    )
    return mesclado


def agregar_por_mes(registros: list[dict]) -> list[dict]:
    """Um registro composto por mês de referência, somando as unidades."""
    grupos: dict[str, list[dict]] = {}
    for r in registros:
        chave = str(r.get("reference_label") or "").strip().lower()
        grupos.setdefault(chave, []).append(r)

    agregados = [_mesclar_mes(grupo) for grupo in grupos.values()]
    logger.debug("Agregação: %d registros → %d meses", len(registros), len(agregados))
    return agregados


def coagir_numericos(registro: dict) -> dict:
    """Garante números finitos em todos os campos numéricos (ausente → 0/padrão)."""
    coagido = dict(registro)
    for campo in CAMPOS_NUMERICOS:
        padrao = PADROES_TAXA.get(campo, 0.0)
        coagido[campo] = para_numero(registro.get(campo), padrao) or padrao
    # PF 0 is never a real reading: re-derive from the totals (1.0 without energy)
    if not coagido["fp_global"] or not coagido["fator_potencia"]:
        fp = derivar_reativo(coagido)["fp_global"]
        for campo in ("fp_global", "fator_potencia"):
            coagido[campo] = coagido[campo] or fp
    for campo in CAMPOS_FP_PERIODO:
        valor = registro.get(campo)
        coagido[campo] = None if valor is None or valor == "" else para_numero(valor)
    return coagido


def processar_dados_energia(
    registros: Iterable,
    unidades: Iterable = (),
    filtro: Optional[FiltroEnergia] = None,
    hoje: Optional[date] = None,
) -> list[dict]:
    """Pipeline completo de filtro/agregação. Não ordena: o chamador ordena
    cronologicamente com `ordenar_por_referencia`.
    """
    filtro = filtro or FiltroEnergia()
    unidades_por_id = indexar_unidades(unidades)

    dados = []
    for r in registros:
        try:
            dados.append(_como_dict(r))
        except (TypeError, ValueError):
            logger.warning("Registro ignorado (não é um mapeamento): %r", r)

    if filtro.modo_periodo is not None:
        dados = filtrar_por_periodo(dados, filtro.modo_periodo, filtro.inicio, filtro.fim, hoje)

    dados = filtrar_por_unidade(dados, filtro.unidade_id)

    if filtro.unidade_id == TODAS:
        dados = filtrar_por_distribuidora(dados, filtro.distribuidora, unidades_por_id)
        dados = filtrar_por_fornecedora(dados, filtro.fornecedora, unidades_por_id)
        dados = demanda_efetiva_por_unidade(dados, unidades_por_id)
        dados = agregar_por_mes(dados)

    processados = [coagir_numericos(r) for r in dados]
    logger.debug(
        "Pipeline: unidade=%s distribuidora=%s fornecedora=%s → %d linhas",
        filtro.unidade_id, filtro.distribuidora, filtro.fornecedora, len(processados),
    )
    return processados


# ---------------------------------------------------------------------------
# Demanda contratada (degrau)
# ---------------------------------------------------------------------------
def aplicar_demanda_efetiva(registros: list[dict], unidade: Optional[dict] = None) -> list[dict]:
    """Demanda contratada vigente em cada mês (ordem cronológica).

    Zero/vazio significa "sem alteração": vale o último valor não nulo, ou o
    padrão da unidade antes do primeiro valor informado.
    """
    unidade = _como_dict(unidade) if unidade is not None else {}
    vigente = {campo: para_numero(unidade.get(campo)) for campo in CAMPOS_DEMANDA_CONTRATADA}

    resultado = []
    for r in ordenar_por_referencia(registros):
        linha = dict(r)
        for campo, efetiva in zip(CAMPOS_DEMANDA_CONTRATADA, CAMPOS_DEMANDA_EFETIVA):
            valor = para_numero(r.get(campo))
            if valor > 0:
                vigente[campo] = valor
            linha[efetiva] = vigente[campo]
        resultado.append(linha)
    return resultado


def demanda_efetiva_por_unidade(registros: list[dict], unidades_por_id: dict[str, dict]) -> list[dict]:
    """Carry-forward de `aplicar_demanda_efetiva` unidade a unidade.

    Roda antes de `agregar_por_mes`: depois da soma, o zero "sem alteração" de
    uma unidade já não se distingue de demanda zero.
    """
    por_unidade: dict = {}
    for r in registros:
        por_unidade.setdefault(r.get("unit_id"), []).append(r)

    resultado = []
    for unidade_id, grupo in por_unidade.items():
        unidade = unidades_por_id.get(str(unidade_id)) if unidade_id else None
        resultado.extend(aplicar_demanda_efetiva(grupo, unidade))
    return resultado


# ---------------------------------------------------------------------------
# Exportação
# ---------------------------------------------------------------------------
def _sem_espacos(texto: str) -> str:
    return re.sub(r"\s+", "_", texto)


def gerar_nome_exportacao(
    unidade_id: str,
    distribuidora: str,
    fornecedora: str,
    periodo: Union[str, ModoPeriodo],
    nome_cliente: Optional[str] = None,
    unidades: Iterable = (),
) -> str:
    """'energia_Cliente_X_{unidade}_{distribuidora}_{fornecedora}_{periodo}.csv'"""
    prefixo = f"energia_{_sem_espacos(nome_cliente)}" if nome_cliente else "energia"

    if unidade_id == TODAS:
        parte_unidade = TODAS
    else:
        unidade = indexar_unidades(unidades).get(str(unidade_id))
        parte_unidade = (unidade or {}).get("code") or "unidade"

    parte_distribuidora = TODAS if distribuidora == TODAS else _sem_espacos(distribuidora)
    parte_fornecedora = TODAS if fornecedora == TODAS else _sem_espacos(fornecedora)
    parte_periodo = (periodo.value if isinstance(periodo, ModoPeriodo) else str(periodo)).lower()

    return (f"{prefixo}_{parte_unidade}_{parte_distribuidora}_"
            f"{parte_fornecedora}_{parte_periodo}.csv")
