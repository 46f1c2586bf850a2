from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from motor_energia.constantes import (
    CAMPOS_FP_PERIODO,
    CAMPOS_NUMERICOS,
    FP_PARAM_MAX_PADRAO,
    FP_PARAM_MIN_PADRAO,
    PADROES_TAXA,
    REATIVO_LIMITE_PADRAO,
    TODAS,
)
from motor_energia.formatacao import para_numero
from motor_energia.periodo import ModoPeriodo, parse_referencia, Referencia


def _texto_opcional(v) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, float) and v != v:  # NaN from pandas
        return None
    texto = str(v).strip()
    return texto or None


class RegistroEnergiaMensal(BaseModel):
    """Métricas de um mês para (cliente, unidade). Campos extras são preservados."""

    model_config = ConfigDict(extra="allow")

    # Identidade
    user_id: Optional[str] = None
    unit_id: Optional[str] = None
    reference_label: str = ""
    distribuidora: Optional[str] = None

    # Energia (kWh) e MWh total
    energia_kwh_ponta: float = 0.0
    energia_kwh_fora: float = 0.0
    energia_kwh_reservado: float = 0.0
    mwh_total_gerador: float = 0.0

    # Preços
    preco_kwh_ponta: float = 0.0
    preco_kwh_fora: float = 0.0
    preco_kwh_reservado: float = 0.0
    preco_kw_ponta: float = 0.0
    preco_kw_fora: float = 0.0
    preco_kw_reservado: float = 0.0
    preco_kvarh_ponta: float = 0.0
    preco_kvarh_fora: float = 0.0
    preco_kvarh_reservado: float = 0.0
    preco_kvarh_excedente: float = 0.0
    tarifa_energia_rs_mwh: float = 0.0

    # Demanda (kW)
    demanda_contratada_kw_ponta: float = 0.0
    demanda_contratada_kw_fora: float = 0.0
    demanda_contratada_kw_reservado: float = 0.0
    demanda_faturada_kw_ponta: float = 0.0
    demanda_faturada_kw_fora: float = 0.0
    demanda_faturada_kw_reservado: float = 0.0

    # Reativo (kvarh)
    reativo_kvarh_ponta: float = 0.0
    reativo_kvarh_fora: float = 0.0
    reativo_kvarh_reservado: float = 0.0
    reativo_limite_rate: float = REATIVO_LIMITE_PADRAO
    reativo_excedente_kvarh: float = 0.0
    fator_potencia: float = 0.0

    # Fator de potência (planilha)
    demanda_maxima_kw: float = 0.0
    fp_param_min: float = FP_PARAM_MIN_PADRAO
    fp_param_max: float = FP_PARAM_MAX_PADRAO
    fp_ponta: Optional[float] = None
    fp_fora: Optional[float] = None
    fp_res: Optional[float] = None
    fp_global: float = 0.0
    kvar_corrigir_min: float = 0.0
    kvar_corrigir_max: float = 0.0

    # Valores (R$) e alíquotas (fração)
    fatura_geral_rs: float = 0.0
    fatura_livre_rs: float = 0.0
    compra_energia_rs: float = 0.0
    icms_energia_rs: float = 0.0
    encargos_rs: float = 0.0
    banco_trianon_rs: float = 0.0
    gestao_cco_rs: float = 0.0
    gestao_parceiro_rs: float = 0.0
    bandeiras_rs: float = 0.0
    proinfa_rs: float = 0.0
    pis_rate: float = 0.0
    cofins_rate: float = 0.0
    icms_rate: float = 0.0
    rdb_rate: float = 0.0
    desconto_fonte: float = 0.0
    economia_liquida_rs: float = 0.0
    economia_liquida_pct: float = 0.0

    @field_validator("user_id", "unit_id", "distribuidora", mode="before")
    @classmethod
    def _coagir_texto(cls, v):
        return _texto_opcional(v)

    @field_validator("reference_label", mode="before")
    @classmethod
    def _coagir_rotulo(cls, v):
        # Kept as typed; format errors are reported by referencia()
        return "" if v is None else str(v)

    @field_validator(*CAMPOS_NUMERICOS, mode="before")
    @classmethod
    def _coagir_numero(cls, v, info: ValidationInfo):
        padrao = PADROES_TAXA.get(info.field_name, 0.0)
        return para_numero(v, padrao) or padrao

    @field_validator(*CAMPOS_FP_PERIODO, mode="before")
    @classmethod
    def _coagir_fp(cls, v):
        if v is None or v == "":
            return None
        return para_numero(v) or None

    def chave(self) -> tuple:
        return (self.user_id, self.reference_label, self.unit_id)

    def referencia(self) -> Referencia:
        """Raises ErroFormatoReferencia se o rótulo não estiver em 'mmm/aa'."""
        return parse_referencia(self.reference_label)


class UnidadeEnergia(BaseModel):
    """Ponto de medição (unidade consumidora) de um cliente."""

    id: str
    user_id: Optional[str] = None
    code: str = Field(..., min_length=1)
    nickname: Optional[str] = None
    distribuidora: Optional[str] = None
    fornecedora_energia: Optional[str] = None
    demanda_contratada_kw_ponta: float = 0.0
    demanda_contratada_kw_fora: float = 0.0
    demanda_contratada_kw_reservado: float = 0.0

    @field_validator("code", mode="before")
    @classmethod
    def _coagir_codigo(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("id", mode="before")
    @classmethod
    def _coagir_id(cls, v):
        return v if v is None else str(v)

    @field_validator("nickname", "distribuidora", "fornecedora_energia", "user_id", mode="before")
    @classmethod
    def _coagir_texto(cls, v):
        return _texto_opcional(v)

    @field_validator(
        "demanda_contratada_kw_ponta",
        "demanda_contratada_kw_fora",
        "demanda_contratada_kw_reservado",
        mode="before",
    )
    @classmethod
    def _coagir_demanda(cls, v):
        return para_numero(v)


class FiltroEnergia(BaseModel):
    """Seleção ativa na tela: unidade, distribuidora, fornecedora e período."""

    unidade_id: str = TODAS
    distribuidora: str = TODAS
    fornecedora: str = TODAS
    modo_periodo: Optional[ModoPeriodo] = None
    inicio: Optional[str] = None
    fim: Optional[str] = None


def chave_registro(registro: dict) -> tuple:
    """Chave de upsert: (user_id, reference_label, unit_id)."""
    return (registro.get("user_id"), registro.get("reference_label"), registro.get("unit_id"))
