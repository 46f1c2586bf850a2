"""Recálculo dos campos derivados enquanto o formulário é editado.

`recalcular(registro, campo_alterado)` é um redutor puro: devolve só os campos
derivados que dependem do campo editado e cujo valor mudou além de
TOLERANCIA. Quem aplica a atualização não dispara novo recálculo, então não
há laço de realimentação.
"""
from enum import Enum
from typing import Optional, Union

from motor_energia.calculos import (
    ajustar_precisao,
    derivar_correcao,
    derivar_economia,
    derivar_reativo,
    derivar_campos,
    icms_energia,
    total_mwh,
    totais,
)
from motor_energia.constantes import TOLERANCIA
from motor_energia.formatacao import para_numero
from motor_energia.logs import obter_logger

logger = obter_logger(__name__)


class CampoBruto(str, Enum):
    ENERGIA_KWH_PONTA = "energia_kwh_ponta"
    ENERGIA_KWH_FORA = "energia_kwh_fora"
    ENERGIA_KWH_RESERVADO = "energia_kwh_reservado"
    REATIVO_KVARH_PONTA = "reativo_kvarh_ponta"
    REATIVO_KVARH_FORA = "reativo_kvarh_fora"
    REATIVO_KVARH_RESERVADO = "reativo_kvarh_reservado"
    REATIVO_LIMITE_RATE = "reativo_limite_rate"
    DEMANDA_MAXIMA_KW = "demanda_maxima_kw"
    FP_PARAM_MIN = "fp_param_min"
    FP_PARAM_MAX = "fp_param_max"
    COMPRA_ENERGIA_RS = "compra_energia_rs"
    ICMS_RATE = "icms_rate"
    RDB_RATE = "rdb_rate"
    FATURA_GERAL_RS = "fatura_geral_rs"
    FATURA_LIVRE_RS = "fatura_livre_rs"
    ENCARGOS_RS = "encargos_rs"
    BANCO_TRIANON_RS = "banco_trianon_rs"
    GESTAO_CCO_RS = "gestao_cco_rs"
    GESTAO_PARCEIRO_RS = "gestao_parceiro_rs"
    # Manual override of the computed ICMS still feeds the savings
    ICMS_ENERGIA_RS = "icms_energia_rs"


class CampoDerivado(str, Enum):
    MWH_TOTAL = "mwh_total_gerador"
    REATIVO_EXCEDENTE = "reativo_excedente_kvarh"
    FATOR_POTENCIA = "fator_potencia"
    FP_PONTA = "fp_ponta"
    FP_FORA = "fp_fora"
    FP_RES = "fp_res"
    FP_GLOBAL = "fp_global"
    KVAR_CORRIGIR_MIN = "kvar_corrigir_min"
    KVAR_CORRIGIR_MAX = "kvar_corrigir_max"
    ICMS_ENERGIA = "icms_energia_rs"
    ECONOMIA_LIQUIDA = "economia_liquida_rs"
    ECONOMIA_LIQUIDA_PCT = "economia_liquida_pct"


_REATIVO_E_FP = frozenset({
    CampoDerivado.MWH_TOTAL,
    CampoDerivado.REATIVO_EXCEDENTE,
    CampoDerivado.FATOR_POTENCIA,
    CampoDerivado.FP_PONTA,
    CampoDerivado.FP_FORA,
    CampoDerivado.FP_RES,
    CampoDerivado.FP_GLOBAL,
    CampoDerivado.KVAR_CORRIGIR_MIN,
    CampoDerivado.KVAR_CORRIGIR_MAX,
})
_CORRECAO = frozenset({
    CampoDerivado.FP_GLOBAL,
    CampoDerivado.KVAR_CORRIGIR_MIN,
    CampoDerivado.KVAR_CORRIGIR_MAX,
})
_ECONOMIA = frozenset({CampoDerivado.ECONOMIA_LIQUIDA, CampoDerivado.ECONOMIA_LIQUIDA_PCT})
_ICMS_E_ECONOMIA = _ECONOMIA | {CampoDerivado.ICMS_ENERGIA}

DEPENDENCIAS: dict[CampoBruto, frozenset] = {
    CampoBruto.ENERGIA_KWH_PONTA: _REATIVO_E_FP,
    CampoBruto.ENERGIA_KWH_FORA: _REATIVO_E_FP,
    CampoBruto.ENERGIA_KWH_RESERVADO: _REATIVO_E_FP,
    CampoBruto.REATIVO_KVARH_PONTA: _REATIVO_E_FP,
    CampoBruto.REATIVO_KVARH_FORA: _REATIVO_E_FP,
    CampoBruto.REATIVO_KVARH_RESERVADO: _REATIVO_E_FP,
    CampoBruto.REATIVO_LIMITE_RATE: frozenset({CampoDerivado.REATIVO_EXCEDENTE}),
    CampoBruto.DEMANDA_MAXIMA_KW: _CORRECAO,
    CampoBruto.FP_PARAM_MIN: _CORRECAO,
    CampoBruto.FP_PARAM_MAX: _CORRECAO,
    CampoBruto.COMPRA_ENERGIA_RS: _ICMS_E_ECONOMIA,
    CampoBruto.ICMS_RATE: _ICMS_E_ECONOMIA,
    CampoBruto.RDB_RATE: _ICMS_E_ECONOMIA,
    CampoBruto.FATURA_GERAL_RS: _ECONOMIA,
    CampoBruto.FATURA_LIVRE_RS: _ECONOMIA,
    CampoBruto.ENCARGOS_RS: _ECONOMIA,
    CampoBruto.BANCO_TRIANON_RS: _ECONOMIA,
    CampoBruto.GESTAO_CCO_RS: _ECONOMIA,
    CampoBruto.GESTAO_PARCEIRO_RS: _ECONOMIA,
    CampoBruto.ICMS_ENERGIA_RS: _ECONOMIA,
}


def campo_bruto(nome: Union[str, CampoBruto]) -> Optional[CampoBruto]:
    """Identificador tipado do campo, ou None se não dispara recálculo."""
    try:
        return CampoBruto(nome)
    except ValueError:
        return None


def _calcular(registro: dict, afetados: frozenset) -> dict:
    novos = {}

    if CampoDerivado.MWH_TOTAL in afetados:
        kwh, _ = totais(registro)
        novos["mwh_total_gerador"] = ajustar_precisao("mwh_total_gerador", total_mwh(kwh))

    fps = {
        CampoDerivado.REATIVO_EXCEDENTE, CampoDerivado.FATOR_POTENCIA, CampoDerivado.FP_PONTA,
        CampoDerivado.FP_FORA, CampoDerivado.FP_RES, CampoDerivado.FP_GLOBAL,
    }
    if afetados & fps:
        reativo = derivar_reativo(registro)
        novos.update({c.value: reativo[c.value] for c in afetados & fps})

    if afetados & {CampoDerivado.KVAR_CORRIGIR_MIN, CampoDerivado.KVAR_CORRIGIR_MAX}:
        novos.update(derivar_correcao(registro))

    # ICMS first: the savings below must see the fresh value
    icms = None
    if CampoDerivado.ICMS_ENERGIA in afetados:
        icms = icms_energia(
            para_numero(registro.get("compra_energia_rs")),
            para_numero(registro.get("icms_rate")),
            para_numero(registro.get("rdb_rate")),
        )
        novos["icms_energia_rs"] = icms

    if afetados & _ECONOMIA:
        novos.update(derivar_economia(registro, icms))

    return novos


def _difere(atual, novo) -> bool:
    if novo is None or atual is None or atual == "":
        return (novo is None) != (atual is None or atual == "")
    return abs(para_numero(atual) - novo) >= TOLERANCIA


def recalcular(registro: dict, campo_alterado: Union[str, CampoBruto]) -> dict:
    """Atualização parcial {campo_derivado: valor} após editar `campo_alterado`.

    Campos que não disparam recálculo devolvem {}. Aplicar o resultado e
    chamar de novo com o mesmo campo também devolve {}.
    """
    campo = campo_bruto(campo_alterado)
    if campo is None:
        return {}

    novos = _calcular(registro, DEPENDENCIAS[campo])
    atualizacao = {c: v for c, v in novos.items() if _difere(registro.get(c), v)}
    if atualizacao:
        logger.debug("%s → %s", campo.value, sorted(atualizacao))
    return atualizacao


def recalcular_tudo(registro: dict) -> dict:
    """Diferença entre os derivados gravados e os recalculados do zero."""
    return {
        c: v for c, v in derivar_campos(registro).items()
        if _difere(registro.get(c), v)
    }


class EstadoFormulario(str, Enum):
    LIMPO = "limpo"
    RECALCULANDO = "recalculando"


class FormularioEnergia:
    """Registro em edição: cada escrita de campo bruto aplica o redutor."""

    def __init__(self, valores: Optional[dict] = None):
        self.valores = dict(valores or {})
        self.campos_alterados: set[str] = set()
        self.estado = EstadoFormulario.LIMPO

    def alterar(self, campo: str, valor) -> dict:
        """Grava `valor` em `campo` e aplica os derivados. Retorna a atualização."""
        self.valores[campo] = valor
        self.campos_alterados.add(campo)

        self.estado = EstadoFormulario.RECALCULANDO
        atualizacao = recalcular(self.valores, campo)
        self.valores.update(atualizacao)
        self.campos_alterados.update(atualizacao)
        self.estado = EstadoFormulario.LIMPO

        return atualizacao

    def sincronizar(self) -> dict:
        """Recalcula todos os derivados (ex.: ao carregar um registro salvo)."""
        atualizacao = recalcular_tudo(self.valores)
        self.valores.update(atualizacao)
        self.campos_alterados.update(atualizacao)
        return atualizacao

    @property
    def alterado(self) -> bool:
        return bool(self.campos_alterados)
