# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (actualmente JSON).
# Cuando se conecte la base remota, solo hay que modificar esta capa.
#
# ESTRUCTURA:
# ├── interfaces.py             → Protocolos de los colaboradores
# ├── base.py                   → Clases base JSON (DictRepository, ListRepository)
# ├── inventory_repository.py   → inventory.json (productos, stock)
# ├── customer_repository.py    → customers.json
# ├── sales_repository.py       → sales.json
# ├── settlement_repository.py  → settlements.json
# ├── cart_repository.py        → carts.json (carritos abiertos)
# ├── audit_repository.py       → audit.json
# └── settings_repository.py    → settings.json (GST, moneda)
# ==============================================================================

from .interfaces import (
    IInventoryRepository,
    ISalesRepository,
    ICustomerRepository,
    ISettlementRepository,
    ICartRepository,
    IAuditRepository,
    ISettingsRepository,
)

from .base import BaseRepository, DictRepository, ListRepository
from .inventory_repository import InventoryRepository
from .customer_repository import CustomerRepository
from .sales_repository import SalesRepository
from .settlement_repository import SettlementRepository
from .cart_repository import CartRepository
from .audit_repository import AuditRepository
from .settings_repository import SettingsRepository

__all__ = [
    # Interfaces
    'IInventoryRepository',
    'ISalesRepository',
    'ICustomerRepository',
    'ISettlementRepository',
    'ICartRepository',
    'IAuditRepository',
    'ISettingsRepository',

    # Clases base
    'BaseRepository',
    'DictRepository',
    'ListRepository',

    # Implementaciones JSON
    'InventoryRepository',
    'CustomerRepository',
    'SalesRepository',
    'SettlementRepository',
    'CartRepository',
    'AuditRepository',
    'SettingsRepository',
]
