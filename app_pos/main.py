# ==============================================================================
# APLICACIÓN FLASK - API JSON DE LA CAJA
# ==============================================================================
# Las rutas solo traducen HTTP ↔ servicios. Siempre devuelven JSON:
#   éxito → {"ok": true, ...}
#   error → {"ok": false, "error": "..."} con 4xx, o 502 si falló el almacenamiento
# ==============================================================================

import logging
import os
from typing import Any, Dict, List

from flask import Blueprint, Flask, current_app, request

from app_pos import config
from app_pos.app_container import AppContainer
from app_pos.exceptions import CartLineNotFoundError, InvalidAmountError, NoCustomerError, PosError
from app_pos.models import CartItem, PaymentMethod
from app_pos.performance_logger import init_profiling, set_logs_dir
from app_pos.services import (
    SplitBill,
    calculate_totals,
    is_near_expiry,
    max_redeemable_points,
    resolve,
    sale_tax_breakdown,
)

logger = logging.getLogger(__name__)

bp = Blueprint('pos', __name__)


# ═══════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def _container() -> AppContainer:
    return current_app.config['CONTAINER']


def _json() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def _number(value, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidAmountError(f'{name} inválido')


def _cart_payload(cart) -> Dict[str, Any]:
    container = _container()
    data = cart.to_dict()
    data['is_active'] = cart.id == container.cart_service.active_cart_id
    data['totals'] = container.checkout_service.quote(cart.id).to_dict()
    return data


def _get_product(product_id):
    product = _container().inventory_repo.get_product(str(product_id))
    if product is None:
        raise PosError(f'Producto {product_id} no encontrado')
    return product


def _get_customer(customer_id):
    customer = _container().customer_repo.get_customer(str(customer_id))
    if customer is None:
        raise NoCustomerError(f'Cliente {customer_id} no encontrado')
    return customer


@bp.errorhandler(PosError)
def _handle_pos_error(error: PosError):
    return error.to_dict(), error.status_code


# ═══════════════════════════════════════════════════════════════════════════
# CARRITOS
# ═══════════════════════════════════════════════════════════════════════════

@bp.route('/api/carts', methods=['GET'])
def api_list_carts():
    carts = _container().cart_service.list_carts()
    return {
        'ok': True,
        'active_cart_id': _container().cart_service.active_cart_id,
        'carts': [_cart_payload(c) for c in carts],
    }


@bp.route('/api/carts', methods=['POST'])
def api_create_cart():
    cart = _container().cart_service.create_cart()
    return {'ok': True, 'cart': _cart_payload(cart)}, 201


@bp.route('/api/carts/<cart_id>/activate', methods=['POST'])
def api_activate_cart(cart_id):
    cart = _container().cart_service.switch_active(cart_id)
    return {'ok': True, 'cart': _cart_payload(cart)}


@bp.route('/api/carts/<cart_id>', methods=['DELETE'])
def api_close_cart(cart_id):
    active = _container().cart_service.close_cart(cart_id)
    return {'ok': True, 'active_cart': _cart_payload(active)}


# ═══════════════════════════════════════════════════════════════════════════
# LÍNEAS, CLIENTE Y PUNTOS
# ═══════════════════════════════════════════════════════════════════════════

@bp.route('/api/carts/<cart_id>/lines', methods=['POST'])
def api_add_line(cart_id):
    """
    Agrega un producto.

    Body JSON:
    {
        "product_id": "p1",
        "unit": "Box",                      (opcional, pieza por defecto)
        "qty": 1,                           (opcional)
        "accept_expiry_discount": true      (opcional, 10% si está por vencer)
    }
    """
    data = _json()
    product = _get_product(data.get('product_id'))

    near_expiry = is_near_expiry(product)
    price_factor = 1
    if near_expiry and data.get('accept_expiry_discount'):
        price_factor = config.EXPIRY_DISCOUNT_FACTOR

    line = _container().cart_service.add_line(
        cart_id,
        product,
        data.get('unit'),
        price_factor,
        int(_number(data.get('qty', 1), 'Cantidad')),
    )
    cart = _container().cart_service.get_cart(cart_id)
    return {
        'ok': True,
        'line': line.to_dict(),
        'near_expiry': near_expiry,
        'cart': _cart_payload(cart),
    }


@bp.route('/api/carts/<cart_id>/lines/<line_id>/qty', methods=['POST'])
def api_set_qty(cart_id, line_id):
    qty = int(_number(_json().get('qty'), 'Cantidad'))
    line = _container().cart_service.set_qty(cart_id, line_id, qty)
    cart = _container().cart_service.get_cart(cart_id)
    return {
        'ok': True,
        'line': line.to_dict() if line else None,
        'cart': _cart_payload(cart),
    }


@bp.route('/api/carts/<cart_id>/lines/<line_id>/unit', methods=['POST'])
def api_change_unit(cart_id, line_id):
    service = _container().cart_service
    cart = service.get_cart(cart_id)
    current = cart.find_line(line_id)
    if current is None:
        raise CartLineNotFoundError(line_id)
    product = _get_product(current.product_id)

    line = service.change_unit(cart_id, line_id, product, _json().get('unit'))
    return {'ok': True, 'line': line.to_dict(), 'cart': _cart_payload(cart)}


@bp.route('/api/carts/<cart_id>/lines/<line_id>', methods=['DELETE'])
def api_remove_line(cart_id, line_id):
    _container().cart_service.remove_line(cart_id, line_id)
    cart = _container().cart_service.get_cart(cart_id)
    return {'ok': True, 'cart': _cart_payload(cart)}


@bp.route('/api/carts/<cart_id>/customer', methods=['POST'])
def api_set_customer(cart_id):
    """Body JSON: {"customer_id": "cust1"} o {"customer_id": null} para quitarlo."""
    customer_id = _json().get('customer_id')
    customer = _get_customer(customer_id) if customer_id else None
    cart = _container().cart_service.set_customer(cart_id, customer)
    return {'ok': True, 'cart': _cart_payload(cart)}


@bp.route('/api/carts/<cart_id>/loyalty', methods=['POST'])
def api_set_loyalty(cart_id):
    points = _number(_json().get('points', 0), 'Puntos')
    cart = _container().cart_service.set_points_to_redeem(cart_id, points)
    return {'ok': True, 'cart': _cart_payload(cart)}


@bp.route('/api/carts/<cart_id>/totals', methods=['GET'])
def api_cart_totals(cart_id):
    container = _container()
    cart = container.cart_service.get_cart(cart_id)
    totals = container.checkout_service.quote(cart_id)

    available = _get_customer(cart.customer.id).loyalty_points if cart.customer else 0
    return {
        'ok': True,
        'totals': totals.to_dict(),
        'currency': container.settings_repo.get_currency(),
        'tax_rate': container.settings_repo.get_tax_rate(),
        'available_points': available,
        'max_redeemable_points': max_redeemable_points(available, totals.subtotal_no_discount),
    }


# ═══════════════════════════════════════════════════════════════════════════
# COBRO
# ═══════════════════════════════════════════════════════════════════════════

@bp.route('/api/carts/<cart_id>/checkout/cash', methods=['POST'])
def api_checkout_cash(cart_id):
    """Body JSON: {"paid_amount": 150}"""
    checkout = _container().checkout_service
    paid = _number(_json().get('paid_amount'), 'Monto recibido')
    session = checkout.begin(cart_id, PaymentMethod.CASH)
    return checkout.commit_cash(session, paid).to_dict()


@bp.route('/api/carts/<cart_id>/checkout/credit', methods=['POST'])
def api_checkout_credit(cart_id):
    checkout = _container().checkout_service
    session = checkout.begin(cart_id, PaymentMethod.CREDIT)
    return checkout.commit_credit(session).to_dict()


@bp.route('/api/carts/<cart_id>/checkout/card', methods=['POST'])
def api_checkout_card(cart_id):
    checkout = _container().checkout_service
    session = checkout.begin(cart_id, PaymentMethod.CARD)
    return checkout.commit_electronic(session).to_dict()


@bp.route('/api/carts/<cart_id>/checkout/mobile', methods=['POST'])
def api_checkout_mobile(cart_id):
    checkout = _container().checkout_service
    session = checkout.begin(cart_id, PaymentMethod.MOBILE)
    return checkout.commit_electronic(session).to_dict()


@bp.route('/api/carts/<cart_id>/checkout/split', methods=['POST'])
def api_checkout_split(cart_id):
    """
    Divide la cuenta a crédito.

    Body JSON:
    {
        "customer_ids": ["c1", "c2", "c3"],
        "amounts": [40, 30, 30]      (opcional; por defecto reparto equitativo)
    }
    """
    container = _container()
    data = _json()
    cart = container.cart_service.get_cart(cart_id)
    totals = calculate_totals(cart.items, container.settings_repo.get_tax_rate(), 0)

    split = SplitBill(round(totals.grand_total, 2))
    entries = split.select_customers(data.get('customer_ids') or [])
    amounts = data.get('amounts')
    if amounts:
        if len(amounts) != len(entries):
            raise InvalidAmountError('Debe indicar un monto por cliente')
        for entry, amount in zip(entries, amounts):
            split.set_amount(entry.id, amount)

    checkout = container.checkout_service
    session = checkout.begin(cart_id, PaymentMethod.CREDIT)
    result = checkout.commit_split(session, split).to_dict()
    result['split'] = split.to_dict()
    return result


# ═══════════════════════════════════════════════════════════════════════════
# CUENTA CORRIENTE
# ═══════════════════════════════════════════════════════════════════════════

@bp.route('/api/customers/<customer_id>/settlements', methods=['POST'])
def api_record_settlement(customer_id):
    """Body JSON: {"amount": 500, "date": "2024-01-31" (opcional)}"""
    data = _json()
    settlement = _container().ledger_service.record_settlement(
        customer_id,
        _number(data.get('amount'), 'Monto'),
        data.get('date'),
    )
    return {'ok': True, 'settlement': settlement.to_dict()}, 201


@bp.route('/api/customers/<customer_id>/settlements', methods=['GET'])
def api_settlement_history(customer_id):
    ledger = _container().ledger_service
    history = ledger.get_settlement_history(customer_id, newest_first=True)
    customer = _get_customer(customer_id)
    return {
        'ok': True,
        'customer': customer.to_dict(include_history=False),
        'settlements': [s.to_dict() for s in history],
    }


@bp.route('/api/customers/<customer_id>/credit-sales', methods=['POST'])
def api_manual_credit_sale(customer_id):
    """
    Venta a crédito cargada a mano.

    Body JSON:
    {
        "items": [{"product_id": "p1", "qty": 2, "unit": "Piece"}],
        "date": "2024-01-31"     (opcional)
    }
    """
    data = _json()
    items: List[CartItem] = []
    for i, raw in enumerate(data.get('items') or []):
        product = _get_product(raw.get('product_id'))
        resolved = resolve(product, raw.get('unit'))
        qty = int(_number(raw.get('qty', 1), 'Cantidad'))
        if qty < 1:
            raise InvalidAmountError('Cantidad debe ser mayor a 0')
        items.append(CartItem(
            line_id=f'manual-{i + 1}',
            product_id=product.id,
            name_dv=product.name_dv,
            name_en=product.name_en,
            base_price=product.price,
            is_zero_tax=product.is_zero_tax,
            qty=qty,
            selected_unit=resolved.name,
            unit_price=resolved.price,
            unit_conversion=resolved.conversion,
            expiry_date=product.expiry_date,
        ))

    sale = _container().checkout_service.record_manual_credit_sale(
        customer_id, items, data.get('date')
    )
    return {'ok': True, 'sale': sale.to_dict()}, 201


@bp.route('/api/reports/outstanding', methods=['GET'])
def api_outstanding_report():
    report = _container().ledger_service.outstanding_report()
    report['ok'] = True
    report['currency'] = _container().settings_repo.get_currency()
    return report


@bp.route('/api/sales/<sale_id>/breakdown', methods=['GET'])
def api_sale_breakdown(sale_id):
    container = _container()
    sale = container.sales_repo.get_sale(sale_id)
    if sale is None:
        return {'ok': False, 'error': f'Venta {sale_id} no encontrada'}, 404
    return {
        'ok': True,
        'sale': sale.to_dict(),
        'breakdown': sale_tax_breakdown(sale.grand_total, container.settings_repo.get_tax_rate()),
    }


# ═══════════════════════════════════════════════════════════════════════════
# FÁBRICA DE LA APLICACIÓN
# ═══════════════════════════════════════════════════════════════════════════

def create_app(base_path: str = None) -> Flask:
    """
    Crea la app Flask.

    Args:
        base_path: Directorio de datos JSON (config.DATA_DIR por defecto)
    """
    base_path = base_path or config.DATA_DIR
    os.makedirs(base_path, exist_ok=True)

    app = Flask(__name__)
    app.secret_key = config.SECRET_KEY
    app.config['DEBUG'] = not config.PRODUCTION_MODE

    AppContainer.reset_instance()
    app.config['CONTAINER'] = AppContainer(base_path)

    set_logs_dir(os.path.join(base_path, 'logs'))
    init_profiling(app)

    app.register_blueprint(bp)
    logger.info("Caja iniciada con datos en %s", base_path)
    return app
