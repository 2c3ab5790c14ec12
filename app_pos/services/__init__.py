# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio de la caja
# ==============================================================================
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Aplican reglas de negocio y validaciones (lanzan PosError)
# 3. Las rutas solo llaman a servicios
# 4. Los servicios NO conocen el tipo de almacenamiento (JSON/base remota)
#
# ESTRUCTURA:
# ├── pricing.py            → Totales, GST inclusivo, puntos
# ├── unit_resolver.py      → Precio y conversión por presentación
# ├── cart_service.py       → Carritos abiertos y sus líneas
# ├── checkout_service.py   → Cobro (efectivo, crédito, dividido, tarjeta/móvil)
# ├── ledger_service.py     → Puntos, saldo pendiente y abonos
# ├── split_bill_service.py → División de cuenta
# ├── audit_service.py      → Logs de actividad
# └── persistence.py        → Traducción de errores de almacenamiento
# ==============================================================================

from app_pos.services.audit_service import AuditService
from app_pos.services.cart_service import CartService
from app_pos.services.checkout_service import CheckoutResult, CheckoutService, CheckoutSession
from app_pos.services.ledger_service import LedgerService
from app_pos.services.pricing import (
    CartTotals,
    calculate_totals,
    max_redeemable_points,
    points_earned,
    sale_tax_breakdown,
)
from app_pos.services.split_bill_service import SplitBill
from app_pos.services.unit_resolver import ResolvedUnit, is_near_expiry, resolve

__all__ = [
    'AuditService',
    'CartService',
    'CheckoutService',
    'CheckoutSession',
    'CheckoutResult',
    'LedgerService',
    'SplitBill',
    'CartTotals',
    'calculate_totals',
    'max_redeemable_points',
    'points_earned',
    'sale_tax_breakdown',
    'ResolvedUnit',
    'resolve',
    'is_near_expiry',
]
