"""Ciclo de vida do lançamento mensal: novo, duplicar, copiar parâmetros, salvar."""
import re
from datetime import date
from typing import Optional

from motor_energia.calculos import derivar_campos
from motor_energia.constantes import (
    CAMPOS_IDENTIDADE,
    CAMPOS_NUMERICOS,
    CAMPOS_PARAMETROS,
    PADROES_TAXA,
)
from motor_energia.erros import UnidadeEmUsoError
from motor_energia.logs import obter_logger
from motor_energia.models import chave_registro
from motor_energia.periodo import incrementar_referencia, ordenar_por_referencia, referencia_atual

logger = obter_logger(__name__)

# Manual entry starts from zeros plus the rate defaults
FORM_DEFAULTS = {campo: PADROES_TAXA.get(campo, 0.0) for campo in CAMPOS_NUMERICOS}
FORM_DEFAULTS.update({"fp_ponta": None, "fp_fora": None, "fp_res": None})

# Unit-owned fields never travel with the record payload
CAMPOS_DA_UNIDADE = ("cod_instal", "distribuidora")


def limpar_rotulo(texto: str) -> str:
    """Entrada digitada do mês: 'Ago / 24' → 'ago/24'"""
    return re.sub(r"[^a-z/0-9]", "", (texto or "").lower())


def novo_registro(user_id: Optional[str] = None, unit_id: Optional[str] = None,
                  hoje: Optional[date] = None) -> dict:
    registro = dict(FORM_DEFAULTS)
    registro.update({
        "user_id": user_id,
        "unit_id": unit_id,
        "reference_label": referencia_atual(hoje),
    })
    return registro


def ultimo_registro(registros: list[dict], user_id: str,
                    unit_id: Optional[str] = None) -> Optional[dict]:
    """Registro mais recente do cliente (e da unidade, se dada), em ordem cronológica."""
    candidatos = [
        r for r in registros
        if r.get("user_id") == user_id and (unit_id is None or r.get("unit_id") == unit_id)
    ]
    if not candidatos:
        return None
    return ordenar_por_referencia(candidatos, reverso=True)[0]


def duplicar_ultimo_mes(registros: list[dict], user_id: str, unit_id: Optional[str] = None,
                        hoje: Optional[date] = None) -> dict:
    """Novo lançamento a partir do último mês: mesmos valores, mês seguinte.

    Campos de identidade (id, created_at, cod_instal, distribuidora) não são
    copiados. Sem histórico, devolve um registro novo no mês atual.
    """
    ultimo = ultimo_registro(registros, user_id, unit_id)
    if ultimo is None:
        logger.info("Sem histórico para duplicar (cliente=%s, unidade=%s)", user_id, unit_id)
        return novo_registro(user_id, unit_id, hoje)

    registro = {**FORM_DEFAULTS, **ultimo}
    for campo in CAMPOS_IDENTIDADE:
        registro.pop(campo, None)
    registro["reference_label"] = incrementar_referencia(ultimo.get("reference_label", ""))
    registro["user_id"] = user_id
    registro["unit_id"] = unit_id or ultimo.get("unit_id")
    return registro


def copiar_parametros_ultimo_mes(registro: dict, registros: list[dict]) -> dict:
    """Copia só os parâmetros (demanda, FP, alíquotas) do último mês da unidade."""
    ultimo = ultimo_registro(registros, registro.get("user_id"), registro.get("unit_id"))
    if ultimo is None:
        return dict(registro)

    copiado = dict(registro)
    for campo in CAMPOS_PARAMETROS:
        valor = ultimo.get(campo)
        if campo in PADROES_TAXA:
            valor = valor or PADROES_TAXA[campo]
        if valor is not None:
            copiado[campo] = valor
    return copiado


def preparar_para_salvar(registro: dict) -> dict:
    """Payload de upsert: derivados recalculados, sem campos da unidade."""
    payload = dict(registro)
    payload["reference_label"] = limpar_rotulo(payload.get("reference_label", ""))
    for campo in CAMPOS_DA_UNIDADE:
        payload.pop(campo, None)
    payload.update(derivar_campos(payload))
    return payload


def proximo_lancamento(registro: dict) -> dict:
    """'Salvar e próximo': mesmos valores com o mês avançado."""
    proximo = dict(registro)
    proximo["reference_label"] = incrementar_referencia(registro.get("reference_label", ""))
    proximo.pop("id", None)
    proximo.pop("created_at", None)
    return proximo


def upsert_registros(existentes: list[dict], novos: list[dict]) -> list[dict]:
    """Upsert em memória pela chave (user_id, reference_label, unit_id)."""
    por_chave = {chave_registro(r): r for r in existentes}
    for r in novos:
        chave = chave_registro(r)
        por_chave[chave] = {**por_chave.get(chave, {}), **r}
    return list(por_chave.values())


def contar_registros_da_unidade(registros: list[dict], unidade_id: str) -> int:
    return sum(1 for r in registros if r.get("unit_id") == unidade_id)


def verificar_exclusao_unidade(unidade_id: str, registros: list[dict]) -> None:
    """Raises UnidadeEmUsoError se algum mês estiver vinculado à unidade."""
    total = contar_registros_da_unidade(registros, unidade_id)
    if total:
        raise UnidadeEmUsoError(unidade_id, total)
