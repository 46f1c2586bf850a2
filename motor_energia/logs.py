"""
Logging centralizado do motor de energia.

Uso:
    from motor_energia.logs import obter_logger
    logger = obter_logger(__name__)
    logger.info("Importação iniciada")
"""
import logging
import os

LOGGER_RAIZ = "motor_energia"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _nivel_configurado() -> int:
    nome = os.getenv("MOTOR_ENERGIA_LOG_LEVEL", "INFO").upper()
    return getattr(logging, nome, logging.INFO)


def configurar_logging(nivel: int = None) -> logging.Logger:
    """Configura o logger raiz do pacote (console). Idempotente."""
    raiz = logging.getLogger(LOGGER_RAIZ)
    raiz.setLevel(nivel if nivel is not None else _nivel_configurado())

    # Avoid duplicate handlers
    if not raiz.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        raiz.addHandler(handler)

    return raiz


def obter_logger(nome: str = LOGGER_RAIZ) -> logging.Logger:
    """Logger filho de 'motor_energia' (nomes de módulo já vêm com o prefixo)."""
    configurar_logging()
    if nome != LOGGER_RAIZ and not nome.startswith(LOGGER_RAIZ + "."):
        nome = f"{LOGGER_RAIZ}.{nome}"
    return logging.getLogger(nome)
