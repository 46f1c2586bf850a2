# tests/test_grafico.py
"""
Tests de fumaça dos gráficos plotly alimentados pelas séries de indicadores
"""
from motor_energia.grafico import (
    criar_grafico_consumo,
    criar_grafico_custos,
    criar_grafico_demanda,
    criar_grafico_economia,
    criar_grafico_fator_potencia,
    criar_grafico_reativo,
)
from motor_energia.indicadores import preparar_serie_demanda, preparar_serie_energia


class TestGraficos:

    def test_consumo_empilhado_por_posto(self, registro_base):
        fig = criar_grafico_consumo(preparar_serie_energia([registro_base]))
        assert [t.name for t in fig.data] == ["Ponta", "Fora Ponta", "Reservado"]
        assert fig.layout.barmode == "stack"

    def test_demanda_com_limite(self, registros_duas_unidades, unidades):
        serie = preparar_serie_demanda(registros_duas_unidades[:1], unidades[0])
        fig = criar_grafico_demanda(serie, "ponta")
        assert [t.name for t in fig.data] == [
            "Demanda faturada", "Ultrapassagem", "Contratada", "Limite (105%)",
        ]
        assert list(fig.data[2].y) == [300.0]

    def test_fator_potencia_com_media(self, registro_base):
        fig = criar_grafico_fator_potencia(preparar_serie_energia([registro_base]), 0.9662)
        assert "0.9662" in fig.layout.title.text

    def test_demais_graficos(self, registro_base):
        serie = preparar_serie_energia([registro_base])
        assert len(criar_grafico_reativo(serie).data) == 3
        assert len(criar_grafico_custos(serie).data) == 7
        economia = criar_grafico_economia(serie)
        assert list(economia.data[0].y) == [7631.43]
