# ==============================================================================
# CONFIGURACIÓN DEL SISTEMA POS
# ==============================================================================
# Constantes globales del núcleo de caja. Cada valor puede sobrescribirse
# con una variable de entorno POS_* (útil en producción y en tests).
# ==============================================================================

import os


def _env_bool(name: str, default: bool) -> bool:
    """Lee un booleano desde el entorno ('1', 'true', 'si' → True)."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'si', 'sí', 'on')


def _env_float(name: str, default: float) -> float:
    """Lee un número desde el entorno, con valor por defecto si es inválido."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


# ═══════════════════════════════════════════════════════════════════════════
# RUTAS Y MODO DE EJECUCIÓN
# ═══════════════════════════════════════════════════════════════════════════

BASE = os.path.dirname(os.path.abspath(__file__))

# Directorio donde viven los JSON (carts.json, sales.json, ...)
DATA_DIR = os.environ.get('POS_DATA_DIR', os.path.join(BASE, 'data'))

PRODUCTION_MODE = _env_bool('POS_PRODUCTION_MODE', False)

SECRET_KEY = os.environ.get('POS_SECRET_KEY', 'pos-dev-secret')

# Profiling de rutas y funciones (logs en DATA_DIR/logs)
ENABLE_PROFILING = _env_bool('POS_ENABLE_PROFILING', True)
THRESHOLD_WARNING = 300   # ms
THRESHOLD_CRITICAL = 700  # ms


# ═══════════════════════════════════════════════════════════════════════════
# TIENDA (valores por defecto de settings.json)
# ═══════════════════════════════════════════════════════════════════════════

DEFAULT_TAX_RATE = _env_float('POS_TAX_RATE', 8.0)   # GST inclusivo, en %
DEFAULT_CURRENCY = os.environ.get('POS_CURRENCY', 'MVR')
ENABLE_CARD_PAYMENT = _env_bool('POS_ENABLE_CARD_PAYMENT', True)


# ═══════════════════════════════════════════════════════════════════════════
# REGLAS DE NEGOCIO
# ═══════════════════════════════════════════════════════════════════════════

# Unidad base de todo producto
BASE_UNIT_NAME = 'Piece'

# 1 punto de lealtad por cada 100 de total; 1 punto = 1 unidad de moneda
LOYALTY_POINTS_DIVISOR = 100

# Productos próximos a vencer se venden con 10% de descuento
NEAR_EXPIRY_DAYS = 7
EXPIRY_DISCOUNT_FACTOR = 0.9

# Tolerancia para cuadrar una cuenta dividida
SPLIT_TOLERANCE = 0.01
