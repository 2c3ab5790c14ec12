# ==============================================================================
# APP POS - Núcleo de carritos, cobro y cuentas de clientes
# ==============================================================================

__version__ = '1.0.0'
