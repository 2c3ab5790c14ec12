# -*- coding: utf-8 -*-
"""
Fixtures comunes: repositorios JSON sobre un directorio temporal,
catálogo y clientes de prueba, servicios ya conectados.
"""
import pytest

from app_pos.models import Customer, Product, Unit
from app_pos.repositories import (
    AuditRepository,
    CartRepository,
    CustomerRepository,
    InventoryRepository,
    SalesRepository,
    SettingsRepository,
    SettlementRepository,
)
from app_pos.services import AuditService, CartService, CheckoutService, LedgerService


@pytest.fixture
def data_dir(tmp_path):
    return str(tmp_path)


@pytest.fixture
def inventory_repo(data_dir):
    repo = InventoryRepository(data_dir)
    repo.save_product(Product(
        id='p1', name_en='Rice 1kg', price=100.0, stock_shop=50,
        units=[Unit(name='Box', price=1100.0, conversion_factor=12)],
    ))
    repo.save_product(Product(id='p2', name_en='Bread', price=50.0, stock_shop=20, is_zero_tax=True))
    repo.save_product(Product(id='p3', name_en='Juice', price=10.0, stock_shop=5))
    return repo


@pytest.fixture
def customer_repo(data_dir):
    repo = CustomerRepository(data_dir)
    repo.save_customer(Customer(id='c1', code='CUST001', name_en='Ali', credit_limit=500.0, loyalty_points=30))
    repo.save_customer(Customer(id='c2', code='CUST002', name_en='Aisha', credit_limit=5000.0,
                                outstanding_balance=2000.0))
    repo.save_customer(Customer(id='c3', code='CUST003', name_en='Hassan', credit_limit=5000.0))
    return repo


@pytest.fixture
def sales_repo(data_dir):
    return SalesRepository(data_dir)


@pytest.fixture
def settlement_repo(data_dir):
    return SettlementRepository(data_dir)


@pytest.fixture
def settings_repo(data_dir):
    repo = SettingsRepository(data_dir)
    repo.set_tax_rate(8.0)
    return repo


@pytest.fixture
def audit_repo(data_dir):
    return AuditRepository(data_dir)


@pytest.fixture
def audit_service(audit_repo):
    return AuditService(audit_repo, 'MVR')


@pytest.fixture
def cart_repo(data_dir):
    return CartRepository(data_dir)


@pytest.fixture
def cart_service(cart_repo):
    return CartService(cart_repo)


@pytest.fixture
def ledger(customer_repo, settlement_repo, audit_service):
    return LedgerService(customer_repo, settlement_repo, audit_service)


@pytest.fixture
def checkout(cart_service, sales_repo, inventory_repo, customer_repo, ledger, settings_repo, audit_service):
    return CheckoutService(
        cart_service, sales_repo, inventory_repo, customer_repo, ledger, settings_repo, audit_service
    )


@pytest.fixture
def cart_id(cart_service):
    return cart_service.active_cart_id
