# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del núcleo de caja
# ==============================================================================
# Entidades del dominio definidas con dataclasses:
#   - Independientes del almacenamiento (JSON local o base remota)
#   - Serialización explícita con to_dict / from_dict
#   - Sale es una unión etiquetada por método de pago
# ==============================================================================

from .entities import (
    # Catálogo
    Product,
    Unit,

    # Clientes
    Customer,
    Settlement,

    # Carrito
    Cart,
    CartItem,

    # Ventas
    Sale,
    CashSale,
    CreditSale,
    CardSale,
    MobileSale,
    SALE_TYPES,
    sale_from_dict,
    snapshot_items,
    PaymentMethod,

    # Cobro
    CheckoutState,
    SplitEntry,

    # Auditoría
    AuditType,
)

__all__ = [
    'Product',
    'Unit',
    'Customer',
    'Settlement',
    'Cart',
    'CartItem',
    'Sale',
    'CashSale',
    'CreditSale',
    'CardSale',
    'MobileSale',
    'SALE_TYPES',
    'sale_from_dict',
    'snapshot_items',
    'PaymentMethod',
    'CheckoutState',
    'SplitEntry',
    'AuditType',
]
