# ==============================================================================
# ERRORES DE ALMACENAMIENTO
# ==============================================================================
# Toda llamada a un repositorio desde los servicios pasa por storage_errors():
# cualquier OSError/ValueError del almacenamiento sale como
# RemotePersistenceError con el nombre de la operación.
# ==============================================================================

import logging
from contextlib import contextmanager

from app_pos.exceptions import RemotePersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(operation: str):
    """
    Uso:
        with storage_errors('guardar venta'):
            sales_repo.create_sale(data)
    """
    try:
        yield
    except (OSError, ValueError) as exc:
        logger.error("Fallo de almacenamiento en %s: %s", operation, exc)
        raise RemotePersistenceError(operation, exc) from exc
