# ==============================================================================
# INTERFACES DE REPOSITORIOS - COLABORADORES DE PERSISTENCIA
# ==============================================================================
#
# Contratos que consume el núcleo de caja. Hoy los implementan los
# repositorios JSON; mañana un cliente de la base remota.
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - Los servicios dependen de estos protocolos, NO de archivos JSON
#
# 2. TESTING
#    - Fácil crear dobles que fallen a propósito (ver tests)
#
# MIGRACIÓN A LA BASE REMOTA:
# 1. Crear clases que implementen estos protocolos
# 2. Cambiar instanciación en app_container.py
# 3. Los servicios NO requieren cambios
#
# ==============================================================================

from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from app_pos.models import Cart, Customer, Product, Settlement


@runtime_checkable
class IInventoryRepository(Protocol):
    """Catálogo de productos y ajuste de stock de tienda."""

    def get_product(self, product_id: str) -> Optional[Product]:
        ...

    def set_shop_stock(self, product_id: str, new_quantity: float) -> bool:
        ...


@runtime_checkable
class ISalesRepository(Protocol):
    """Persistencia de ventas finalizadas."""

    def create_sale(self, sale_data: Dict[str, Any]) -> str:
        ...

    def delete_sale(self, sale_id: str) -> bool:
        ...


@runtime_checkable
class ICustomerRepository(Protocol):
    """Persistencia de clientes (puntos, saldo, límite)."""

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        ...

    def list_customers(self) -> List[Customer]:
        ...

    def update_customer(self, customer_id: str, fields: Dict[str, Any]) -> bool:
        ...


@runtime_checkable
class ISettlementRepository(Protocol):
    """Historial de abonos, solo inserción."""

    def create_settlement(self, customer_id: str, settlement: Settlement) -> None:
        ...

    def get_by_customer(self, customer_id: str) -> List[Settlement]:
        ...


@runtime_checkable
class ICartRepository(Protocol):
    """Almacenamiento local durable de los carritos abiertos."""

    def load_state(self) -> Tuple[Dict[str, Cart], Optional[str]]:
        ...

    def save_state(self, carts: Dict[str, Cart], active_cart_id: Optional[str]) -> None:
        ...


@runtime_checkable
class IAuditRepository(Protocol):
    """Registro de auditoría."""

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str,
        details: Dict[str, Any]
    ) -> None:
        ...


@runtime_checkable
class ISettingsRepository(Protocol):
    """Configuración de la tienda."""

    def get_tax_rate(self) -> float:
        ...

    def get_currency(self) -> str:
        ...

    def card_payment_enabled(self) -> bool:
        ...
