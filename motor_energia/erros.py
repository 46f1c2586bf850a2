class ErroFormatoReferencia(ValueError):
    """Rótulo de referência fora do formato 'mmm/aa' (ex.: 'ago/24')."""

    def __init__(self, rotulo):
        self.rotulo = rotulo
        super().__init__(
            f"Mês de referência inválido: '{rotulo}'. Use o formato mmm/aa (ex.: ago/24)."
        )


class UnidadeNaoEncontradaError(LookupError):
    """Registro aponta para um unit_id ausente do cadastro de unidades carregado."""

    def __init__(self, unidade_id):
        self.unidade_id = unidade_id
        super().__init__(f"Unidade não encontrada: '{unidade_id}'")


class UnidadeEmUsoError(RuntimeError):
    """Unidade ainda referenciada por registros mensais."""

    def __init__(self, unidade_id, total_registros: int):
        self.unidade_id = unidade_id
        self.total_registros = total_registros
        super().__init__(
            f"Não é possível excluir a unidade '{unidade_id}': "
            f"existem {total_registros} mês(es) vinculado(s) a esta unidade."
        )


class AvisoConversaoNumerica(UserWarning):
    """Valor não numérico convertido para 0."""
