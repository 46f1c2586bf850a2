import math
import re
import warnings
from numbers import Number

from motor_energia.erros import AvisoConversaoNumerica


def formatar_moeda(valor: float) -> str:
    """1234.56 → 'R$ 1.234,56'"""
    if valor < 0:
        return f"-R$ {_formatar_numero_br(abs(valor))}"
    return f"R$ {_formatar_numero_br(valor)}"


def formatar_percentual(valor: float, casas: int = 2) -> str:
    """0.2534 → '25,34%'"""
    return f"{_formatar_numero_br(valor * 100, casas)}%"


def formatar_numero(valor: float, casas: int = 2) -> str:
    """1500.5 → '1.500,50'"""
    if valor < 0:
        return f"-{_formatar_numero_br(abs(valor), casas)}"
    return _formatar_numero_br(valor, casas)


def para_numero(valor, padrao: float = 0.0) -> float:
    """Coerção tolerante: aceita 12.345,67 | 12,345.67 | 'R$ 1.200,00' | None.

    '22,81' → 22.81 | '' → padrao | None → padrao | float('nan') → padrao
    Texto sem nenhum dígito vira `padrao` com AvisoConversaoNumerica.
    """
    if valor is None:
        return padrao
    if isinstance(valor, Number):
        numero = float(valor)
        return numero if math.isfinite(numero) else padrao
    if not isinstance(valor, str):
        try:
            numero = float(valor)
        except (TypeError, ValueError):
            _avisar(valor)
            return padrao
        return numero if math.isfinite(numero) else padrao

    texto = valor.strip()
    if not texto:
        return padrao

    texto = re.sub(r"R\$|\s", "", texto)
    texto = re.sub(r"[^0-9,.\-]", "", texto)
    if not re.search(r"\d", texto):
        _avisar(valor)
        return padrao

    # The last separator found is the decimal one
    ultimo_sep = max(texto.rfind(","), texto.rfind("."))
    if ultimo_sep >= 0:
        inteiro = re.sub(r"[^0-9\-]", "", texto[:ultimo_sep])
        fracao = re.sub(r"[^0-9]", "", texto[ultimo_sep + 1:])
        sinal = "-" if inteiro.startswith("-") else ""
        inteiro_abs = inteiro.replace("-", "") or "0"
        return float(f"{sinal}{inteiro_abs}.{fracao or '0'}")

    somente_digitos = re.sub(r"[^0-9\-]", "", texto)
    sinal = "-" if somente_digitos.startswith("-") else ""
    return float(sinal + somente_digitos.replace("-", ""))


def para_taxa(valor, padrao: float = 0.0) -> float:
    """'20,5%' → 0.205 | '20,5' → 0.205 | '0,205' → 0.205"""
    numero = para_numero(valor, padrao)
    if isinstance(valor, str) and "%" in valor:
        return numero / 100
    # Values above 1.5 are taken as percentages
    return numero / 100 if numero > 1.5 else numero


def _avisar(valor) -> None:
    warnings.warn(
        f"Valor não numérico convertido para 0: {valor!r}",
        AvisoConversaoNumerica,
        stacklevel=3,
    )


def _formatar_numero_br(valor: float, casas: int = 2) -> str:
    """1234.56 → '1.234,56'"""
    texto = f"{valor:,.{casas}f}"  # "1,234.56"
    return texto.replace(",", "_").replace(".", ",").replace("_", ".")
