MESES_PT = ['jan', 'fev', 'mar', 'abr', 'mai', 'jun',
            'jul', 'ago', 'set', 'out', 'nov', 'dez']

MESES_PT_EXTENSO = ['Janeiro', 'Fevereiro', 'Março', 'Abril', 'Maio', 'Junho',
                    'Julho', 'Agosto', 'Setembro', 'Outubro', 'Novembro', 'Dezembro']

POSTOS = ('ponta', 'fora', 'reservado')

# Defaults used when a rate is missing or zero
REATIVO_LIMITE_PADRAO = 0.62
FP_PARAM_MIN_PADRAO = 0.92
FP_PARAM_MAX_PADRAO = 0.94
FP_REFERENCIA = 0.92            # regulatory minimum, used to flag low power factor
FP_ATENCAO = 0.90
TOLERANCIA_DEMANDA = 1.05       # billed demand above 105% of contracted is overrun

# Live-edit writes are skipped below this difference
TOLERANCIA = 1e-6

# Canonical decimal places per derived field: (casas, modo)
PRECISAO = {
    "mwh_total_gerador": (4, "arredondar"),
    "reativo_excedente_kvarh": (2, "arredondar"),
    "fator_potencia": (4, "arredondar"),
    "fp_ponta": (4, "arredondar"),
    "fp_fora": (4, "arredondar"),
    "fp_res": (4, "arredondar"),
    "fp_global": (4, "arredondar"),
    "kvar_corrigir_min": (2, "truncar"),
    "kvar_corrigir_max": (2, "truncar"),
    "icms_energia_rs": (2, "truncar"),
    "economia_liquida_rs": (2, "truncar"),
    "economia_liquida_pct": (5, "arredondar"),
}

# Selector sentinels
TODAS = "todas"
MULTIPLAS = "Múltiplas"

CAMPOS_ENERGIA = ['energia_kwh_ponta', 'energia_kwh_fora', 'energia_kwh_reservado']
CAMPOS_REATIVO = ['reativo_kvarh_ponta', 'reativo_kvarh_fora', 'reativo_kvarh_reservado']
CAMPOS_DEMANDA_CONTRATADA = [
    'demanda_contratada_kw_ponta',
    'demanda_contratada_kw_fora',
    'demanda_contratada_kw_reservado',
]
CAMPOS_DEMANDA_FATURADA = [
    'demanda_faturada_kw_ponta',
    'demanda_faturada_kw_fora',
    'demanda_faturada_kw_reservado',
]
# Contracted demand after the carry-forward scan, one per period
CAMPOS_DEMANDA_EFETIVA = [
    'demanda_contratada_efetiva_kw_ponta',
    'demanda_contratada_efetiva_kw_fora',
    'demanda_contratada_efetiva_kw_reservado',
]
CAMPOS_REPASSE = ['encargos_rs', 'banco_trianon_rs', 'gestao_cco_rs', 'gestao_parceiro_rs']

CAMPOS_MONETARIOS = [
    'fatura_geral_rs', 'fatura_livre_rs', 'compra_energia_rs', 'icms_energia_rs',
    'economia_liquida_rs', 'bandeiras_rs', 'proinfa_rs',
] + CAMPOS_REPASSE

CAMPOS_PRECO = [
    'preco_kwh_ponta', 'preco_kwh_fora', 'preco_kwh_reservado',
    'preco_kw_ponta', 'preco_kw_fora', 'preco_kw_reservado',
    'preco_kvarh_ponta', 'preco_kvarh_fora', 'preco_kvarh_reservado',
    'preco_kvarh_excedente', 'tarifa_energia_rs_mwh',
]

# Summed across units when several records share a month
CAMPOS_SOMAVEIS = (
    CAMPOS_MONETARIOS
    + CAMPOS_ENERGIA
    + CAMPOS_REATIVO
    + CAMPOS_DEMANDA_CONTRATADA
    + CAMPOS_DEMANDA_FATURADA
    + ['mwh_total_gerador', 'demanda_maxima_kw', 'kvar_corrigir_min', 'kvar_corrigir_max']
)

# Kept from the first record that carries a non-zero value
CAMPOS_TAXA = ['desconto_fonte', 'pis_rate', 'cofins_rate', 'icms_rate', 'rdb_rate',
               'fp_param_min', 'fp_param_max']

CAMPOS_FP_PERIODO = ['fp_ponta', 'fp_fora', 'fp_res']

CAMPOS_NUMERICOS = (
    CAMPOS_SOMAVEIS
    + CAMPOS_PRECO
    + CAMPOS_TAXA
    + ['reativo_limite_rate', 'reativo_excedente_kvarh', 'fator_potencia',
       'fp_global', 'economia_liquida_pct']
)

# Dropped when a record is copied into a new month
CAMPOS_IDENTIDADE = ['id', 'created_at', 'cod_instal', 'distribuidora']

# Copied by "copiar parâmetros do último mês"
CAMPOS_PARAMETROS = (
    ['demanda_maxima_kw', 'fp_param_min', 'fp_param_max']
    + CAMPOS_DEMANDA_CONTRATADA
    + ['icms_rate', 'rdb_rate', 'pis_rate', 'cofins_rate', 'reativo_limite_rate']
)

TEMPLATE_COLUMNS = [
    "COD INSTAL",
    "N RELATORIO",
    "Mes Referencia",
    "Fatura GERAL (R$)",
    "Bandeiras",
    "Fatura LIVRE (R$)",
    "PROINFA (R$)",
    "MWh Total (Gerador)",
    "Tarifa Energia Faturada (R$/MWh)",
    "Compra de Energia (R$)",
    "ENCARGOS (R$)",
    "BANCO TRIANON",
    "GESTAO CCO (R$)",
    "GESTAO PARCEIRO (R$)",
    "PIS",
    "COFINS",
    "ICMS",
    "RDB",
    "Energia kWh Ponta",
    "Energia kWh Fora",
    "Energia kWh Reservado",
    "Demanda Contratada Ponta (kW)",
    "Demanda Contratada Fora (kW)",
    "Demanda Contratada Reservado (kW)",
    "Demanda Faturada Ponta (kW)",
    "Demanda Faturada Fora (kW)",
    "Demanda Faturada Reservado (kW)",
    "Reativo kvarh Ponta",
    "Reativo kvarh Fora",
    "Reativo kvarh Reservado",
    "Limite Reativo",
    "Demanda Maxima (kW)",
]

EXEMPLO = {
    "COD INSTAL": "12345",
    "N RELATORIO": "RPT-2024-08",
    "Mes Referencia": "ago/24",
    "Fatura GERAL (R$)": "100000,00",
    "Bandeiras": "0,00",
    "Fatura LIVRE (R$)": "60000,00",
    "PROINFA (R$)": "0,00",
    "MWh Total (Gerador)": "100,0",
    "Tarifa Energia Faturada (R$/MWh)": "350,00",
    "Compra de Energia (R$)": "25000,00",
    "ENCARGOS (R$)": "500,00",
    "BANCO TRIANON": "0,00",
    "GESTAO CCO (R$)": "800,00",
    "GESTAO PARCEIRO (R$)": "1200,00",
    "PIS": "0,65%",
    "COFINS": "3,00%",
    "ICMS": "20,50%",
    "RDB": "0,205",
    "Energia kWh Ponta": "10000",
    "Energia kWh Fora": "85000",
    "Energia kWh Reservado": "5000",
    "Demanda Contratada Ponta (kW)": "120,00",
    "Demanda Contratada Fora (kW)": "100,00",
    "Demanda Contratada Reservado (kW)": "80,00",
    "Demanda Faturada Ponta (kW)": "118,00",
    "Demanda Faturada Fora (kW)": "104,00",
    "Demanda Faturada Reservado (kW)": "60,00",
    "Reativo kvarh Ponta": "3000",
    "Reativo kvarh Fora": "40000",
    "Reativo kvarh Reservado": "1000",
    "Limite Reativo": "0,62",
    "Demanda Maxima (kW)": "130,00",
}

# Zero or missing means "use the default"
PADROES_TAXA = {
    "reativo_limite_rate": REATIVO_LIMITE_PADRAO,
    "fp_param_min": FP_PARAM_MIN_PADRAO,
    "fp_param_max": FP_PARAM_MAX_PADRAO,
}
