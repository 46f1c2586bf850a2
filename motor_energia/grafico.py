import plotly.graph_objects as go
from plotly.subplots import make_subplots

from motor_energia.constantes import FP_REFERENCIA, POSTOS
from motor_energia.formatacao import formatar_moeda, formatar_numero

CORES_POSTO = {"ponta": "#148c73", "fora": "#80c739", "reservado": "#c4ea9c"}
NOMES_POSTO = {"ponta": "Ponta", "fora": "Fora Ponta", "reservado": "Reservado"}

CORES_CUSTO = {
    "fatura_livre_rs": ("Fatura Livre", "#3B82F6"),
    "compra_energia_rs": ("Compra de Energia", "#148c73"),
    "icms_energia_rs": ("ICMS Energia", "#1aad8e"),
    "encargos_rs": ("Encargos", "#F59E0B"),
    "banco_trianon_rs": ("Banco Trianon", "#0EA5E9"),
    "gestao_cco_rs": ("Gestão CCO", "#6B7280"),
    "gestao_parceiro_rs": ("Gestão Parceiro", "#EF4444"),
}

_LEGENDA = dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1)


def _reduzir_ticks(fig: go.Figure, rotulos: list) -> None:
    # Show a subset of x-axis labels to avoid clutter
    if len(rotulos) > 24:
        passo = max(1, len(rotulos) // 12)
        fig.update_xaxes(tickmode="array", tickvals=rotulos[::passo], ticktext=rotulos[::passo])


def criar_grafico_consumo(serie: list[dict]) -> go.Figure:
    """Stacked bars: MWh per tariff period."""
    meses = [s["reference_label"] for s in serie]
    fig = go.Figure()

    for posto in POSTOS:
        valores = [s[f"mwh_{posto}"] for s in serie]
        fig.add_trace(go.Bar(
            name=NOMES_POSTO[posto],
            x=meses,
            y=valores,
            marker_color=CORES_POSTO[posto],
            hovertemplate=f"{NOMES_POSTO[posto]}: %{{customdata}} MWh<extra></extra>",
            customdata=[formatar_numero(v, 3) for v in valores],
        ))

    fig.update_layout(
        barmode="stack",
        title="Consumo por Período (MWh)",
        xaxis_title="Mês",
        yaxis_title="MWh",
        legend=_LEGENDA,
        plot_bgcolor="white",
        height=420,
    )
    _reduzir_ticks(fig, meses)
    return fig


def criar_grafico_demanda(serie: list[dict], posto: str = "fora") -> go.Figure:
    """Billed demand split at 105% of contracted (green base + red overrun),
    with the contracted step line and the tolerance line.
    """
    meses = [s["reference_label"] for s in serie]
    fig = go.Figure()

    fig.add_trace(go.Bar(
        name="Demanda faturada",
        x=meses,
        y=[s[f"base_{posto}"] for s in serie],
        marker_color="#80c739",
        hovertemplate="Faturada: %{y:,.1f} kW<extra></extra>",
    ))
    fig.add_trace(go.Bar(
        name="Ultrapassagem",
        x=meses,
        y=[s[f"ultrapassagem_{posto}"] for s in serie],
        marker_color="#EF4444",
        hovertemplate="Ultrapassagem: %{y:,.1f} kW<extra></extra>",
    ))
    fig.add_trace(go.Scatter(
        name="Contratada",
        x=meses,
        y=[s[f"contratada_{posto}"] for s in serie],
        mode="lines",
        line=dict(color="#148c73", width=2, shape="hv"),
        hovertemplate="Contratada: %{y:,.1f} kW<extra></extra>",
    ))
    fig.add_trace(go.Scatter(
        name="Limite (105%)",
        x=meses,
        y=[s[f"limite_{posto}"] for s in serie],
        mode="lines",
        line=dict(color="#6B7280", width=1, dash="dash", shape="hv"),
        hovertemplate="Limite: %{y:,.1f} kW<extra></extra>",
    ))

    fig.update_layout(
        barmode="stack",
        title=f"Demanda {NOMES_POSTO[posto]} (kW)",
        xaxis_title="Mês",
        yaxis_title="kW",
        legend=_LEGENDA,
        plot_bgcolor="white",
        height=420,
    )
    _reduzir_ticks(fig, meses)
    return fig


def criar_grafico_fator_potencia(serie: list[dict], fp_periodo: float = None) -> go.Figure:
    """Line chart: global PF per month with the 0.92 reference line."""
    meses = [s["reference_label"] for s in serie]
    fps = [s["fp_global"] for s in serie]
    cores = ["#EF4444" if fp < FP_REFERENCIA else "#059669" for fp in fps]

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        name="FP global",
        x=meses,
        y=fps,
        mode="lines+markers",
        line=dict(color="#059669", width=2),
        marker=dict(size=7, color=cores),
        hovertemplate="Mês: %{x}<br>FP: %{y:.4f}<extra></extra>",
    ))
    fig.add_hline(y=FP_REFERENCIA, line_dash="dash", line_color="#10B981",
                  annotation_text=f"Referência {FP_REFERENCIA:.2f}")

    titulo = "Fator de Potência"
    if fp_periodo is not None:
        titulo += f" (período: {fp_periodo:.4f})"

    fig.update_layout(
        title=titulo,
        xaxis_title="Mês",
        yaxis_title="FP",
        yaxis_range=[min(min(fps, default=1.0), 0.85) - 0.01, 1.0],
        plot_bgcolor="white",
        height=400,
    )
    _reduzir_ticks(fig, meses)
    return fig


def criar_grafico_reativo(serie: list[dict]) -> go.Figure:
    """Bars: total kvarh vs allowed limit, overage highlighted."""
    meses = [s["reference_label"] for s in serie]
    fig = go.Figure()

    fig.add_trace(go.Bar(
        name="Reativo total",
        x=meses,
        y=[s["total_kvarh"] for s in serie],
        marker_color="#1aad8e",
        hovertemplate="Reativo: %{y:,.0f} kvarh<extra></extra>",
    ))
    fig.add_trace(go.Bar(
        name="Excedente",
        x=meses,
        y=[s["reativo_excedente_kvarh"] for s in serie],
        marker_color="#EF4444",
        hovertemplate="Excedente: %{y:,.0f} kvarh<extra></extra>",
    ))
    fig.add_trace(go.Scatter(
        name="Limite permitido",
        x=meses,
        y=[s["limite_kvarh"] for s in serie],
        mode="lines+markers",
        line=dict(color="#6B7280", dash="dash"),
        hovertemplate="Limite: %{y:,.0f} kvarh<extra></extra>",
    ))

    fig.update_layout(
        barmode="group",
        title="Energia Reativa (kvarh)",
        xaxis_title="Mês",
        yaxis_title="kvarh",
        legend=_LEGENDA,
        plot_bgcolor="white",
        height=420,
    )
    _reduzir_ticks(fig, meses)
    return fig


def criar_grafico_custos(serie: list[dict]) -> go.Figure:
    """Stacked bars: free-market cost composition per month."""
    meses = [s["reference_label"] for s in serie]
    fig = go.Figure()

    for campo, (nome, cor) in CORES_CUSTO.items():
        valores = [s[campo] for s in serie]
        fig.add_trace(go.Bar(
            name=nome,
            x=meses,
            y=valores,
            marker_color=cor,
            hovertemplate=f"{nome}: %{{customdata}}<extra></extra>",
            customdata=[formatar_moeda(v) for v in valores],
        ))

    fig.update_layout(
        barmode="stack",
        title="Composição dos Custos no Mercado Livre",
        xaxis_title="Mês",
        yaxis_title="R$",
        yaxis_tickprefix="R$ ",
        yaxis_tickformat=",.0f",
        yaxis_separatethousands=True,
        legend=_LEGENDA,
        plot_bgcolor="white",
        height=450,
    )
    _reduzir_ticks(fig, meses)
    return fig


def criar_grafico_economia(serie: list[dict]) -> go.Figure:
    """Bars: net savings (R$) per month + savings % line on a second axis."""
    meses = [s["reference_label"] for s in serie]
    economias = [s["economia_liquida_rs"] for s in serie]
    percentuais = [s["economia_liquida_pct"] * 100 for s in serie]

    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(go.Bar(
        name="Economia líquida",
        x=meses,
        y=economias,
        marker_color=["#80c739" if v >= 0 else "#EF4444" for v in economias],
        text=[formatar_moeda(v) for v in economias],
        textposition="inside",
        hovertemplate="Economia: %{customdata}<extra></extra>",
        customdata=[formatar_moeda(v) for v in economias],
    ), secondary_y=False)
    fig.add_trace(go.Scatter(
        name="% Economia",
        x=meses,
        y=percentuais,
        mode="lines+markers",
        line=dict(color="#148c73", width=2),
        hovertemplate="%{y:.2f}%<extra></extra>",
    ), secondary_y=True)

    fig.update_layout(
        title="Economia Líquida Mensal",
        xaxis_title="Mês",
        legend=_LEGENDA,
        plot_bgcolor="white",
        height=450,
    )
    fig.update_yaxes(title_text="R$", tickprefix="R$ ", tickformat=",.0f", secondary_y=False)
    fig.update_yaxes(title_text="%", ticksuffix="%", secondary_y=True)
    _reduzir_ticks(fig, meses)
    return fig
