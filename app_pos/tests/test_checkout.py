# -*- coding: utf-8 -*-
"""
Tests del cobro: validaciones por método, efectos posteriores y
comportamiento ante fallos de almacenamiento.
"""
import pytest

from app_pos.exceptions import (
    CheckoutInProgressError,
    CreditLimitExceededError,
    EmptyCartError,
    InsufficientPaymentError,
    InvalidCheckoutStateError,
    NoCustomerError,
    RemotePersistenceError,
    SplitTotalMismatchError,
)
from app_pos.models import CashSale, CheckoutState, CreditSale, PaymentMethod, Product
from app_pos.repositories import InventoryRepository, SalesRepository
from app_pos.services import CheckoutService, LedgerService, SplitBill


class FailingSalesRepo(SalesRepository):
    """Falla a partir de la llamada número `fail_on` a create_sale."""

    def __init__(self, base_path, fail_on=1):
        super().__init__(base_path)
        self.calls = 0
        self.fail_on = fail_on

    def create_sale(self, sale_data):
        self.calls += 1
        if self.calls >= self.fail_on:
            raise OSError('remote unavailable')
        return super().create_sale(sale_data)


class FailingStockRepo(InventoryRepository):
    def set_shop_stock(self, product_id, new_quantity):
        raise OSError('disk full')


def build_checkout(cart_service, customer_repo, ledger, settings_repo, audit_service,
                   sales_repo, inventory_repo):
    return CheckoutService(
        cart_service, sales_repo, inventory_repo, customer_repo, ledger, settings_repo, audit_service
    )


# ═══════════════════════════════════════════════════════════════════════════
# EFECTIVO
# ═══════════════════════════════════════════════════════════════════════════

def test_begin_on_empty_cart_fails(checkout, cart_id):
    with pytest.raises(EmptyCartError):
        checkout.begin(cart_id, PaymentMethod.CASH)


def test_cash_exact_amount_is_accepted(checkout, cart_service, cart_id, inventory_repo, sales_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p3'))  # 10.00

    session = checkout.begin(cart_id, 'cash')
    result = checkout.commit_cash(session, 10.0)

    assert session.state == CheckoutState.COMMITTED
    assert result.change == 0
    sale = sales_repo.list_sales()[0]
    assert isinstance(sale, CashSale)
    assert sale.grand_total == pytest.approx(10.0)
    assert sale.paid_amount == pytest.approx(10.0)
    assert cart_service.get_cart(cart_id).is_empty


def test_cash_short_by_a_cent_changes_nothing(checkout, cart_service, cart_id, inventory_repo, sales_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p3'))

    session = checkout.begin(cart_id, PaymentMethod.CASH)
    with pytest.raises(InsufficientPaymentError):
        checkout.commit_cash(session, 9.99)

    assert session.state == CheckoutState.REVIEWING
    assert sales_repo.list_sales() == []
    assert len(cart_service.get_cart(cart_id).items) == 1
    assert inventory_repo.get_product('p3').stock_shop == 5


def test_cash_change_and_stock_per_unit(checkout, cart_service, cart_id, inventory_repo):
    product = inventory_repo.get_product('p1')
    cart_service.add_line(cart_id, product, 'Box')      # 1100, 12 piezas
    cart_service.add_line(cart_id, product, qty=2)      # 200, 2 piezas

    result = checkout.commit_cash(checkout.begin(cart_id, 'cash'), 1500)

    assert result.totals.grand_total == pytest.approx(1300.0)
    assert result.change == pytest.approx(200.0)
    assert inventory_repo.get_product('p1').stock_shop == 50 - 12 - 2
    assert result.warnings == []


def test_cash_with_customer_redeems_then_awards(checkout, cart_service, cart_id, inventory_repo, customer_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p1'), qty=2)   # 200
    cart_service.set_customer(cart_id, customer_repo.get_customer('c1'))       # 30 puntos
    cart_service.set_points_to_redeem(cart_id, 30)

    result = checkout.commit_cash(checkout.begin(cart_id, 'cash'), 170)

    assert result.totals.grand_total == pytest.approx(170.0)
    assert result.points_awarded == 1
    assert customer_repo.get_customer('c1').loyalty_points == 1


# ═══════════════════════════════════════════════════════════════════════════
# CRÉDITO
# ═══════════════════════════════════════════════════════════════════════════

def test_credit_requires_customer(checkout, cart_service, cart_id, inventory_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p3'))
    with pytest.raises(NoCustomerError):
        checkout.commit_credit(checkout.begin(cart_id, 'credit'))


def test_credit_limit_boundary(checkout, cart_service, cart_id, inventory_repo, customer_repo, sales_repo):
    inventory_repo.save_product(Product(id='p500', price=500.0, stock_shop=10))
    inventory_repo.save_product(Product(id='p501', price=500.01, stock_shop=10))
    cart_service.set_customer(cart_id, customer_repo.get_customer('c1'))   # límite 500

    line = cart_service.add_line(cart_id, inventory_repo.get_product('p501'))
    with pytest.raises(CreditLimitExceededError):
        checkout.commit_credit(checkout.begin(cart_id, 'credit'))
    assert sales_repo.list_sales() == []
    assert customer_repo.get_customer('c1').outstanding_balance == 0

    cart_service.remove_line(cart_id, line.line_id)
    cart_service.add_line(cart_id, inventory_repo.get_product('p500'))
    result = checkout.commit_credit(checkout.begin(cart_id, 'credit'))

    assert isinstance(result.sales[0], CreditSale)
    assert customer_repo.get_customer('c1').outstanding_balance == pytest.approx(500.0)


def test_credit_limit_ignores_existing_balance(checkout, cart_service, cart_id, inventory_repo, customer_repo):
    # c2: límite 5000, ya debe 2000
    inventory_repo.save_product(Product(id='big', price=4000.0, stock_shop=1))
    cart_service.add_line(cart_id, inventory_repo.get_product('big'))
    cart_service.set_customer(cart_id, customer_repo.get_customer('c2'))

    checkout.commit_credit(checkout.begin(cart_id, 'credit'))
    assert customer_repo.get_customer('c2').outstanding_balance == pytest.approx(6000.0)


# ═══════════════════════════════════════════════════════════════════════════
# CUENTA DIVIDIDA
# ═══════════════════════════════════════════════════════════════════════════

def test_split_creates_one_sale_per_customer_and_deducts_stock_once(
        checkout, cart_service, cart_id, inventory_repo, customer_repo, sales_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p1'))  # 100
    split = SplitBill(100)
    split.select_customers(['c1', 'c2', 'c3'])

    result = checkout.commit_split(checkout.begin(cart_id, 'credit'), split)

    assert [s.grand_total for s in result.sales] == [33.33, 33.33, 33.34]
    assert all(len(s.items) == 1 for s in result.sales)
    assert len(sales_repo.list_sales()) == 3
    assert inventory_repo.get_product('p1').stock_shop == 49
    assert customer_repo.get_customer('c1').outstanding_balance == pytest.approx(33.33)
    assert customer_repo.get_customer('c2').outstanding_balance == pytest.approx(2033.33)
    assert customer_repo.get_customer('c3').outstanding_balance == pytest.approx(33.34)
    assert cart_service.get_cart(cart_id).is_empty


def test_split_that_does_not_add_up_is_rejected(checkout, cart_service, cart_id, inventory_repo, sales_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p1'))
    split = SplitBill(100)
    entries = split.select_customers(['c1', 'c2'])
    split.set_amount(entries[0].id, 40)

    with pytest.raises(SplitTotalMismatchError):
        checkout.commit_split(checkout.begin(cart_id, 'credit'), split)
    assert sales_repo.list_sales() == []
    assert not cart_service.get_cart(cart_id).is_empty


def test_split_failure_on_second_write_removes_first_sale(
        cart_service, cart_id, inventory_repo, customer_repo, ledger, settings_repo, audit_service, data_dir):
    sales_repo = FailingSalesRepo(data_dir, fail_on=2)
    checkout = build_checkout(cart_service, customer_repo, ledger, settings_repo, audit_service,
                              sales_repo, inventory_repo)
    cart_service.add_line(cart_id, inventory_repo.get_product('p1'))
    split = SplitBill(100)
    split.select_customers(['c1', 'c3'])

    with pytest.raises(RemotePersistenceError):
        checkout.commit_split(checkout.begin(cart_id, 'credit'), split)

    assert sales_repo.list_sales() == []
    assert customer_repo.get_customer('c1').outstanding_balance == 0
    assert not cart_service.get_cart(cart_id).is_empty


# ═══════════════════════════════════════════════════════════════════════════
# FALLOS Y ESTADOS
# ═══════════════════════════════════════════════════════════════════════════

def test_failed_sale_write_keeps_cart(
        cart_service, cart_id, inventory_repo, customer_repo, ledger, settings_repo, audit_service, data_dir):
    checkout = build_checkout(cart_service, customer_repo, ledger, settings_repo, audit_service,
                              FailingSalesRepo(data_dir), inventory_repo)
    cart_service.add_line(cart_id, inventory_repo.get_product('p1'))

    with pytest.raises(RemotePersistenceError):
        checkout.commit_cash(checkout.begin(cart_id, 'cash'), 100)

    assert len(cart_service.get_cart(cart_id).items) == 1
    assert inventory_repo.get_product('p1').stock_shop == 50


def test_stock_failure_after_sale_becomes_a_warning(
        cart_service, cart_id, inventory_repo, customer_repo, ledger, settings_repo, audit_service,
        sales_repo, audit_repo, data_dir):
    checkout = build_checkout(cart_service, customer_repo, ledger, settings_repo, audit_service,
                              sales_repo, FailingStockRepo(data_dir))
    cart_service.add_line(cart_id, inventory_repo.get_product('p1'))

    result = checkout.commit_cash(checkout.begin(cart_id, 'cash'), 100)

    assert len(result.warnings) == 1
    assert 'disk full' in result.warnings[0]
    assert len(sales_repo.list_sales()) == 1
    assert cart_service.get_cart(cart_id).is_empty
    assert audit_repo.get_by_type('SISTEMA')


def test_second_commit_while_in_flight_is_rejected(checkout, cart_service, cart_id, inventory_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p3'))
    session = checkout.begin(cart_id, 'cash')

    with checkout._guard(cart_id):
        with pytest.raises(CheckoutInProgressError):
            checkout.commit_cash(session, 10)

    checkout.commit_cash(session, 10)


def test_abort_has_no_effects_and_closes_session(checkout, cart_service, cart_id, inventory_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p3'))
    session = checkout.begin(cart_id, 'cash')
    checkout.abort(session)

    assert session.state == CheckoutState.ABORTED
    with pytest.raises(InvalidCheckoutStateError):
        checkout.commit_cash(session, 10)
    assert len(cart_service.get_cart(cart_id).items) == 1


def test_session_method_must_match(checkout, cart_service, cart_id, inventory_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p3'))
    session = checkout.begin(cart_id, 'cash')
    with pytest.raises(InvalidCheckoutStateError):
        checkout.commit_credit(session)


# ═══════════════════════════════════════════════════════════════════════════
# TARJETA / MÓVIL Y CRÉDITO MANUAL
# ═══════════════════════════════════════════════════════════════════════════

def test_card_payment(checkout, cart_service, cart_id, inventory_repo, sales_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p3'))
    result = checkout.commit_electronic(checkout.begin(cart_id, 'card'))
    assert result.sales[0].payment_method == PaymentMethod.CARD
    assert sales_repo.list_sales()[0].to_dict()['payment_method'] == 'card'


def test_card_payment_disabled(checkout, cart_service, cart_id, inventory_repo, settings_repo):
    settings_repo.set_setting('enable_card_payment', False)
    cart_service.add_line(cart_id, inventory_repo.get_product('p3'))
    with pytest.raises(InvalidCheckoutStateError):
        checkout.begin(cart_id, 'mobile')


def test_manual_credit_sale_only_touches_balance(checkout, cart_service, cart_id, inventory_repo, customer_repo):
    line = cart_service.add_line(cart_id, inventory_repo.get_product('p2'), qty=2)  # 100, exento

    sale = checkout.record_manual_credit_sale('c3', [line])

    assert sale.grand_total == pytest.approx(100.0)
    assert customer_repo.get_customer('c3').outstanding_balance == pytest.approx(100.0)
    assert inventory_repo.get_product('p2').stock_shop == 20


# ═══════════════════════════════════════════════════════════════════════════
# CANJE DE PUNTOS Y CLIENTE ACTUAL
# ═══════════════════════════════════════════════════════════════════════════

class RecordingLedger(LedgerService):
    """Anota el orden en que el cobro mueve la cuenta del cliente."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    def adjust_balance(self, customer_id, delta):
        self.calls.append('saldo')
        return super().adjust_balance(customer_id, delta)

    def redeem_points(self, customer_id, points):
        self.calls.append('canje')
        return super().redeem_points(customer_id, points)

    def award_points(self, customer_id, points):
        self.calls.append('puntos')
        return super().award_points(customer_id, points)


def test_removing_a_line_keeps_unused_points(checkout, cart_service, cart_id, inventory_repo, customer_repo):
    rice = cart_service.add_line(cart_id, inventory_repo.get_product('p1'))   # 100
    cart_service.add_line(cart_id, inventory_repo.get_product('p3'))          # 10
    cart_service.set_customer(cart_id, customer_repo.get_customer('c1'))      # 30 puntos
    cart_service.set_points_to_redeem(cart_id, 30)

    cart_service.remove_line(cart_id, rice.line_id)
    assert cart_service.get_cart(cart_id).points_to_redeem == 10

    result = checkout.commit_cash(checkout.begin(cart_id, 'cash'), 0)

    assert result.totals.discount == 10
    assert result.totals.grand_total == 0
    assert customer_repo.get_customer('c1').loyalty_points == 20


def test_points_spent_elsewhere_give_no_discount(
        checkout, cart_service, cart_id, inventory_repo, customer_repo, ledger, sales_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p1'))      # 100
    cart_service.set_customer(cart_id, customer_repo.get_customer('c1'))  # foto con 30 puntos
    ledger.redeem_points('c1', 30)                                        # canjeados en otra caja
    cart_service.set_points_to_redeem(cart_id, 30)

    assert checkout.quote(cart_id).discount == 0
    checkout.commit_cash(checkout.begin(cart_id, 'cash'), 100)

    assert sales_repo.list_sales()[0].grand_total == pytest.approx(100.0)
    assert customer_repo.get_customer('c1').loyalty_points == 1


def test_credit_charges_balance_before_moving_points(
        cart_service, cart_id, inventory_repo, customer_repo, settlement_repo, settings_repo,
        audit_service, sales_repo):
    ledger = RecordingLedger(customer_repo, settlement_repo, audit_service)
    checkout = CheckoutService(
        cart_service, sales_repo, inventory_repo, customer_repo, ledger, settings_repo, audit_service
    )
    cart_service.add_line(cart_id, inventory_repo.get_product('p1'))      # 100
    cart_service.set_customer(cart_id, customer_repo.get_customer('c1'))
    cart_service.set_points_to_redeem(cart_id, 30)

    checkout.commit_credit(checkout.begin(cart_id, 'credit'))

    assert ledger.calls == ['saldo', 'canje']
    customer = customer_repo.get_customer('c1')
    assert customer.outstanding_balance == pytest.approx(70.0)
    assert customer.loyalty_points == 0


def test_sales_carry_the_current_customer(checkout, cart_service, cart_id, inventory_repo, customer_repo):
    cart_service.add_line(cart_id, inventory_repo.get_product('p3'))
    cart_service.set_customer(cart_id, customer_repo.get_customer('c1'))
    customer_repo.update_customer('c1', {'name_en': 'Ali Hassan'})

    cash = checkout.commit_cash(checkout.begin(cart_id, 'cash'), 10)
    assert cash.sales[0].customer.name_en == 'Ali Hassan'

    cart_service.add_line(cart_id, inventory_repo.get_product('p3'))
    cart_service.set_customer(cart_id, customer_repo.get_customer('c1'))
    customer_repo.update_customer('c1', {'name_en': 'Ali H.'})

    card = checkout.commit_electronic(checkout.begin(cart_id, 'card'))
    assert card.sales[0].customer.name_en == 'Ali H.'
