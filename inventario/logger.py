# ==============================================================================
# LOGGER DE LA APLICACIÓN
# ==============================================================================
# Logger único "inventario" con salida a consola coloreada.
# Nivel configurable con INVENTARIO_LOG_LEVEL (DEBUG, INFO, WARNING...).
# ==============================================================================

import logging
import os

from colorlog import ColoredFormatter

LOG_LEVEL = os.environ.get('INVENTARIO_LOG_LEVEL', 'INFO')

LOG_FORMAT = (
    "%(log_color)s[%(asctime)s] [%(levelname)-8s] "
    "%(reset)s%(blue)s%(name)s:%(reset)s %(message)s"
)

formatter = ColoredFormatter(
    LOG_FORMAT,
    datefmt="%Y-%m-%d %H:%M:%S",
    reset=True,
    log_colors={
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold_red",
    },
)

handler = logging.StreamHandler()
handler.setFormatter(formatter)

logger = logging.getLogger("inventario")
logger.setLevel(LOG_LEVEL.upper())
logger.addHandler(handler)
logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """Retorna el logger raíz o un hijo (inventario.<name>)."""
    if not name:
        return logger
    return logger.getChild(name)
