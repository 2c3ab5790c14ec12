# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Punto único donde se construyen repositorios y servicios de la caja.
#   - Los servicios reciben sus colaboradores (nada de globales)
#   - Los tests crean un contenedor sobre un directorio temporal
#
# ═══════════════════════════════════════════════════════════════════════════════
# MIGRACIÓN A LA BASE REMOTA
# ═══════════════════════════════════════════════════════════════════════════════
# 1. Crear repositorios que implementen los protocolos de interfaces.py
# 2. Cambiar las instanciaciones de este archivo
# 3. Los servicios NO requieren cambios
# ==============================================================================

from typing import Optional

from app_pos import config
from app_pos.repositories import (
    AuditRepository,
    CartRepository,
    CustomerRepository,
    InventoryRepository,
    SalesRepository,
    SettingsRepository,
    SettlementRepository,
)
from app_pos.services import (
    AuditService,
    CartService,
    CheckoutService,
    LedgerService,
)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación (singleton).

    Uso:
        container = AppContainer(base_path='/ruta/datos')
        checkout = container.checkout_service
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, base_path: str = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, base_path: str = None):
        """
        Args:
            base_path: Directorio de los JSON (config.DATA_DIR por defecto)
        """
        if self._initialized:
            return
        self._base_path = base_path or config.DATA_DIR
        self.reset()
        self._initialized = True

    @property
    def base_path(self) -> str:
        return self._base_path

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def inventory_repo(self) -> InventoryRepository:
        if self._inventory_repo is None:
            self._inventory_repo = InventoryRepository(self._base_path)
        return self._inventory_repo

    @property
    def customer_repo(self) -> CustomerRepository:
        if self._customer_repo is None:
            self._customer_repo = CustomerRepository(self._base_path)
        return self._customer_repo

    @property
    def sales_repo(self) -> SalesRepository:
        if self._sales_repo is None:
            self._sales_repo = SalesRepository(self._base_path)
        return self._sales_repo

    @property
    def settlement_repo(self) -> SettlementRepository:
        if self._settlement_repo is None:
            self._settlement_repo = SettlementRepository(self._base_path)
        return self._settlement_repo

    @property
    def cart_repo(self) -> CartRepository:
        if self._cart_repo is None:
            self._cart_repo = CartRepository(self._base_path)
        return self._cart_repo

    @property
    def audit_repo(self) -> AuditRepository:
        if self._audit_repo is None:
            self._audit_repo = AuditRepository(self._base_path)
        return self._audit_repo

    @property
    def settings_repo(self) -> SettingsRepository:
        if self._settings_repo is None:
            self._settings_repo = SettingsRepository(self._base_path)
        return self._settings_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def audit_service(self) -> AuditService:
        if self._audit_service is None:
            self._audit_service = AuditService(
                self.audit_repo,
                self.settings_repo.get_currency()
            )
        return self._audit_service

    @property
    def cart_service(self) -> CartService:
        """Servicio de carritos (carga carts.json al crearse)."""
        if self._cart_service is None:
            self._cart_service = CartService(self.cart_repo)
        return self._cart_service

    @property
    def ledger_service(self) -> LedgerService:
        if self._ledger_service is None:
            self._ledger_service = LedgerService(
                self.customer_repo,
                self.settlement_repo,
                self.audit_service
            )
        return self._ledger_service

    @property
    def checkout_service(self) -> CheckoutService:
        if self._checkout_service is None:
            self._checkout_service = CheckoutService(
                self.cart_service,
                self.sales_repo,
                self.inventory_repo,
                self.customer_repo,
                self.ledger_service,
                self.settings_repo,
                self.audit_service
            )
        return self._checkout_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """Descarta todas las instancias (se recrean al pedirlas)."""
        self._inventory_repo = None
        self._customer_repo = None
        self._sales_repo = None
        self._settlement_repo = None
        self._cart_repo = None
        self._audit_repo = None
        self._settings_repo = None

        self._audit_service = None
        self._cart_service = None
        self._ledger_service = None
        self._checkout_service = None

    @classmethod
    def get_instance(cls, base_path: str = None) -> 'AppContainer':
        if cls._instance is None:
            return cls(base_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(base_path: str = None) -> AppContainer:
    """Obtiene el contenedor de dependencias global."""
    return AppContainer.get_instance(base_path)
