# ==============================================================================
# SERVICIO DE COBRO (CHECKOUT)
# ==============================================================================
# Convierte un carrito en una o más ventas.
#
# FLUJO:
#   begin(cart_id, método)     → sesión en REVIEWING (con totales)
#   commit_cash / commit_credit / commit_split / commit_electronic
#                              → COMMITTED
#   abort(sesión)              → ABORTED, sin efectos
#
# ORDEN DE EFECTOS AL CONFIRMAR:
#   1. Guardar venta(s)          (si falla: error, el carrito queda intacto)
#   2. Cuenta corriente          (saldo, canje, puntos ganados)
#   3. Stock                     (qty * conversión, una sola vez por carrito)
#   4. Vaciar carrito
#
# Un fallo en 2 o 3 no deshace la venta: se registra, se audita y se
# devuelve en CheckoutResult.warnings.
# ==============================================================================

import logging
import threading
import uuid
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from app_pos.config import SPLIT_TOLERANCE
from app_pos.exceptions import (
    CheckoutInProgressError,
    CreditLimitExceededError,
    EmptyCartError,
    InsufficientPaymentError,
    InvalidAmountError,
    InvalidCheckoutStateError,
    NoCustomerError,
    PosError,
    SplitTotalMismatchError,
)
from app_pos.models import (
    Cart,
    CartItem,
    CashSale,
    CheckoutState,
    CreditSale,
    Customer,
    PaymentMethod,
    SALE_TYPES,
    Sale,
    snapshot_items,
)
from app_pos.performance_logger import profile_function
from app_pos.repositories.interfaces import (
    ICustomerRepository,
    IInventoryRepository,
    ISalesRepository,
    ISettingsRepository,
)
from app_pos.services.audit_service import AuditService
from app_pos.services.cart_service import CartService
from app_pos.services.ledger_service import LedgerService
from app_pos.services.persistence import storage_errors
from app_pos.services.pricing import CartTotals, calculate_totals, max_redeemable_points, points_earned
from app_pos.services.split_bill_service import SplitBill

logger = logging.getLogger(__name__)


@dataclass
class CheckoutSession:
    """
    Sesión de cobro de un carrito.

    Attributes:
        cart_id: Carrito que se cobra
        method: Método elegido al iniciar
        state: REVIEWING hasta confirmar o abortar
        totals: Totales mostrados al iniciar
    """
    cart_id: str
    method: PaymentMethod
    state: CheckoutState = CheckoutState.REVIEWING
    totals: Optional[CartTotals] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'cart_id': self.cart_id,
            'method': self.method.value,
            'state': self.state.value,
            'totals': self.totals.to_dict() if self.totals else None,
        }


@dataclass
class CheckoutResult:
    """Resultado de un cobro confirmado."""
    sales: List[Sale]
    totals: CartTotals
    change: float = 0.0
    points_awarded: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ok': True,
            'sales': [s.to_dict() for s in self.sales],
            'totals': self.totals.to_dict(),
            'change': round(self.change, 2),
            'points_awarded': self.points_awarded,
            'warnings': list(self.warnings),
        }


class CheckoutService:
    """
    Servicio de cobro.

    Responsabilidades:
    - Validar cada método de pago sin tocar nada si falla
    - Crear la venta del tipo correcto (CashSale, CreditSale, ...)
    - Aplicar los efectos posteriores en orden
    - Rechazar un segundo cobro simultáneo del mismo carrito
    """

    def __init__(
        self,
        cart_service: CartService,
        sales_repo: ISalesRepository,
        inventory_repo: IInventoryRepository,
        customer_repo: ICustomerRepository,
        ledger_service: LedgerService,
        settings_repo: ISettingsRepository,
        audit_service: Optional[AuditService] = None,
        user: str = 'caja'
    ):
        self.cart_service = cart_service
        self.sales_repo = sales_repo
        self.inventory_repo = inventory_repo
        self.customer_repo = customer_repo
        self.ledger = ledger_service
        self.settings_repo = settings_repo
        self.audit_service = audit_service
        self.user = user

        self._in_flight = set()
        self._in_flight_lock = threading.Lock()

    # =========================================================================
    # HELPERS
    # =========================================================================

    @contextmanager
    def _guard(self, cart_id: str):
        """Marca el carrito como 'cobro en curso' mientras dura el bloque."""
        with self._in_flight_lock:
            if cart_id in self._in_flight:
                raise CheckoutInProgressError(cart_id)
            self._in_flight.add(cart_id)
        try:
            yield
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(cart_id)

    def _tax_rate(self) -> float:
        with storage_errors('leer configuración'):
            return self.settings_repo.get_tax_rate()

    @staticmethod
    def _today() -> str:
        return date.today().isoformat()

    @staticmethod
    def _new_sale_id() -> str:
        return f"sale-{uuid.uuid4().hex[:12]}"

    def _non_empty_cart(self, cart_id: str) -> Cart:
        cart = self.cart_service.get_cart(cart_id)
        if cart.is_empty:
            raise EmptyCartError()
        return cart

    @staticmethod
    def _require(session: CheckoutSession, *methods: PaymentMethod) -> None:
        if session.state != CheckoutState.REVIEWING:
            raise InvalidCheckoutStateError(
                f'La sesión de cobro está en estado {session.state.value}'
            )
        if methods and session.method not in methods:
            raise InvalidCheckoutStateError(
                f'La sesión de cobro fue iniciada para {session.method.value}'
            )

    def _fetch_customer(self, customer_id: str) -> Customer:
        with storage_errors('leer cliente'):
            customer = self.customer_repo.get_customer(customer_id)
        if customer is None:
            raise NoCustomerError(f'Cliente {customer_id} no encontrado')
        return customer

    def _persist_sales(self, sales: List[Sale]) -> None:
        """
        Guarda las ventas. Si una falla se eliminan las ya guardadas
        y se lanza RemotePersistenceError.
        """
        saved = []
        try:
            for sale in sales:
                with storage_errors('guardar venta'):
                    self.sales_repo.create_sale(sale.to_dict())
                saved.append(sale)
        except PosError:
            for sale in saved:
                try:
                    with storage_errors('anular venta'):
                        self.sales_repo.delete_sale(sale.id)
                except PosError:
                    logger.error("Venta %s quedó guardada sin completar el cobro", sale.id)
            raise

        for sale in sales:
            self._audit(
                'log_sale_created',
                sale.id,
                sale.payment_method.value,
                sale.grand_total,
                len(sale.items),
                sale.customer.display_name if sale.customer else None,
            )

    def _audit(self, event: str, *args) -> None:
        """Registra en auditoría; un fallo aquí no afecta una venta ya guardada."""
        if not self.audit_service:
            return
        try:
            getattr(self.audit_service, event)(self.user, *args)
        except (OSError, ValueError) as exc:
            logger.error("No se pudo auditar %s: %s", event, exc)

    # =========================================================================
    # CONSULTA
    # =========================================================================

    def _price(self, cart: Cart) -> Tuple[CartTotals, Optional[Customer]]:
        """
        Totales del carrito con el cliente releído del repositorio.

        El canje se recorta a los puntos que el cliente tiene ahora y al
        subtotal antes de descuento.

        Returns:
            Tupla (totales, cliente actual o None)
        """
        customer = self._fetch_customer(cart.customer.id) if cart.customer else None
        tax_rate = self._tax_rate()
        discount = 0
        if customer and cart.points_to_redeem:
            subtotal = calculate_totals(cart.items, tax_rate).subtotal_no_discount
            discount = min(int(cart.points_to_redeem),
                           max_redeemable_points(customer.loyalty_points, subtotal))
        return calculate_totals(cart.items, tax_rate, discount), customer

    def quote(self, cart_id: str) -> CartTotals:
        """Totales actuales del carrito (con canje de puntos si hay cliente)."""
        return self._price(self.cart_service.get_cart(cart_id))[0]

    # =========================================================================
    # MÁQUINA DE ESTADOS
    # =========================================================================

    def begin(self, cart_id: str, method: Union[PaymentMethod, str]) -> CheckoutSession:
        """
        Inicia el cobro de un carrito.

        Raises:
            EmptyCartError: carrito sin líneas
            InvalidCheckoutStateError: método deshabilitado en la tienda
        """
        try:
            method = PaymentMethod(method)
        except ValueError:
            raise InvalidCheckoutStateError(f'Método de pago desconocido: {method}')

        self._non_empty_cart(cart_id)
        if method in (PaymentMethod.CARD, PaymentMethod.MOBILE):
            with storage_errors('leer configuración'):
                enabled = self.settings_repo.card_payment_enabled()
            if not enabled:
                raise InvalidCheckoutStateError('Pago con tarjeta/móvil deshabilitado')

        return CheckoutSession(cart_id=cart_id, method=method, totals=self.quote(cart_id))

    def abort(self, session: CheckoutSession) -> CheckoutSession:
        """Cancela la sesión. No hay efectos que deshacer."""
        self._require(session)
        session.state = CheckoutState.ABORTED
        return session

    @profile_function(name="Cobro en efectivo")
    def commit_cash(self, session: CheckoutSession, paid_amount: float) -> CheckoutResult:
        """
        Confirma un cobro en efectivo.

        Args:
            session: Sesión iniciada con método cash
            paid_amount: Monto recibido

        Raises:
            InsufficientPaymentError: recibido < total
        """
        self._require(session, PaymentMethod.CASH)
        try:
            paid_amount = float(paid_amount)
        except (TypeError, ValueError):
            raise InvalidAmountError('Monto recibido inválido')

        with self._guard(session.cart_id):
            cart = self._non_empty_cart(session.cart_id)
            totals, customer = self._price(cart)
            grand = round(totals.grand_total, 2)
            if paid_amount < grand:
                raise InsufficientPaymentError(paid_amount, grand)

            change = round(paid_amount - grand, 2)
            sale = CashSale(
                id=self._new_sale_id(),
                date=self._today(),
                customer=customer,
                items=snapshot_items(cart.items),
                grand_total=grand,
                paid_amount=paid_amount,
                balance=change,
            )
            self._persist_sales([sale])
            self._audit('log_payment', sale.id, paid_amount, 'cash', change)

            warnings, awarded = self._apply_side_effects(
                cart, [sale], customer, redeem=int(totals.discount), award_total=grand
            )
            session.state = CheckoutState.COMMITTED
            return CheckoutResult([sale], totals, change, awarded, warnings)

    @profile_function(name="Venta a crédito")
    def commit_credit(self, session: CheckoutSession) -> CheckoutResult:
        """
        Confirma una venta a crédito.

        El límite de crédito es un tope por venta: se compara con el total
        de esta venta, sin sumar el saldo pendiente del cliente.

        Raises:
            NoCustomerError: carrito sin cliente
            CreditLimitExceededError: total > límite de crédito
        """
        self._require(session, PaymentMethod.CREDIT)

        with self._guard(session.cart_id):
            cart = self._non_empty_cart(session.cart_id)
            if cart.customer is None:
                raise NoCustomerError()
            totals, customer = self._price(cart)
            grand = round(totals.grand_total, 2)
            if customer.credit_limit < grand:
                raise CreditLimitExceededError(customer.display_name, customer.credit_limit, grand)

            sale = CreditSale(
                id=self._new_sale_id(),
                date=self._today(),
                customer=customer,
                items=snapshot_items(cart.items),
                grand_total=grand,
            )
            self._persist_sales([sale])

            warnings, awarded = self._apply_side_effects(
                cart,
                [sale],
                customer,
                redeem=int(totals.discount),
                charges=[(customer.id, grand, sale.id)],
                award_total=grand,
            )
            session.state = CheckoutState.COMMITTED
            return CheckoutResult([sale], totals, 0.0, awarded, warnings)

    @profile_function(name="Cuenta dividida")
    def commit_split(self, session: CheckoutSession, split_bill: SplitBill) -> CheckoutResult:
        """
        Confirma una cuenta dividida a crédito.

        Se crea una CreditSale por parte, cada una con todas las líneas del
        carrito. El stock se descuenta una sola vez. No aplica canje ni
        puntos ganados.

        Raises:
            SplitCustomerCountError: menos de 2 partes
            SplitTotalMismatchError: las partes no suman el total
            NoCustomerError: cliente de una parte inexistente
        """
        self._require(session, PaymentMethod.CREDIT)

        with self._guard(session.cart_id):
            cart = self._non_empty_cart(session.cart_id)
            totals = calculate_totals(cart.items, self._tax_rate(), 0)
            grand = round(totals.grand_total, 2)

            split_bill.validate()
            if abs(split_bill.total - grand) >= SPLIT_TOLERANCE:
                raise SplitTotalMismatchError(round(grand - split_bill.allocated, 2))

            customers = {}
            for entry in split_bill.entries:
                if entry.amount <= 0:
                    raise InvalidAmountError('Cada parte debe tener un monto mayor a 0')
                if entry.customer_id not in customers:
                    customers[entry.customer_id] = self._fetch_customer(entry.customer_id)

            sales = []
            charges = []
            for entry in split_bill.entries:
                sale = CreditSale(
                    id=self._new_sale_id(),
                    date=self._today(),
                    customer=customers[entry.customer_id],
                    items=snapshot_items(cart.items),
                    grand_total=round(entry.amount, 2),
                )
                sales.append(sale)
                charges.append((entry.customer_id, sale.grand_total, sale.id))

            self._persist_sales(sales)

            warnings, _ = self._apply_side_effects(cart, sales, None, charges=charges)
            session.state = CheckoutState.COMMITTED
            return CheckoutResult(sales, totals, 0.0, 0, warnings)

    @profile_function(name="Cobro electrónico")
    def commit_electronic(self, session: CheckoutSession) -> CheckoutResult:
        """Confirma un cobro con tarjeta o pago móvil por el total exacto."""
        self._require(session, PaymentMethod.CARD, PaymentMethod.MOBILE)

        with self._guard(session.cart_id):
            cart = self._non_empty_cart(session.cart_id)
            totals, customer = self._price(cart)
            grand = round(totals.grand_total, 2)

            sale_cls = SALE_TYPES[session.method]
            sale = sale_cls(
                id=self._new_sale_id(),
                date=self._today(),
                customer=customer,
                items=snapshot_items(cart.items),
                grand_total=grand,
            )
            self._persist_sales([sale])
            self._audit('log_payment', sale.id, grand, session.method.value)

            warnings, awarded = self._apply_side_effects(
                cart, [sale], customer, redeem=int(totals.discount), award_total=grand
            )
            session.state = CheckoutState.COMMITTED
            return CheckoutResult([sale], totals, 0.0, awarded, warnings)

    # =========================================================================
    # VENTA A CRÉDITO MANUAL
    # =========================================================================

    def record_manual_credit_sale(
        self,
        customer_id: str,
        items: Iterable[CartItem],
        sale_date: Optional[str] = None
    ) -> CreditSale:
        """
        Registra una venta a crédito cargada a mano (sin carrito).
        No descuenta stock ni mueve puntos; solo suma al saldo pendiente.

        Args:
            customer_id: Cliente al que se carga
            items: Líneas de la venta
            sale_date: Fecha YYYY-MM-DD (hoy por defecto)
        """
        items = list(items)
        if not items:
            raise EmptyCartError('La venta no tiene líneas')
        customer = self._fetch_customer(customer_id)

        totals = calculate_totals(items, self._tax_rate(), 0)
        sale = CreditSale(
            id=self._new_sale_id(),
            date=sale_date or self._today(),
            customer=customer,
            items=snapshot_items(items),
            grand_total=round(totals.grand_total, 2),
        )
        self._persist_sales([sale])
        self.ledger.adjust_balance(customer_id, sale.grand_total)
        self._audit('log_credit_charged', customer_id, sale.grand_total, sale.id)
        return sale

    # =========================================================================
    # EFECTOS POSTERIORES A LA VENTA
    # =========================================================================

    def _apply_side_effects(
        self,
        cart: Cart,
        sales: List[Sale],
        customer: Optional[Customer],
        redeem: float = 0,
        charges: Optional[List[tuple]] = None,
        award_total: float = 0
    ):
        """
        Aplica, en orden: cargos a crédito, canje de puntos, puntos ganados,
        descuento de stock y vaciado del carrito.

        Cada efecto es independiente: si uno falla se registra y se sigue.

        Args:
            customer: Cliente que canjea y gana puntos (None = sin lealtad)

        Returns:
            Tupla (advertencias, puntos ganados)
        """
        warnings: List[str] = []
        sale_id = sales[0].id
        awarded = 0

        def run(effect: str, fn: Callable[[], Any]) -> bool:
            try:
                fn()
                return True
            except PosError as exc:
                self._record_failure(sale_id, effect, exc.message, warnings)
            except (OSError, ValueError) as exc:
                self._record_failure(sale_id, effect, str(exc), warnings)
            return False

        for customer_id, amount, charged_sale in charges or []:
            if run('saldo pendiente', lambda: self.ledger.adjust_balance(customer_id, amount)):
                self._audit('log_credit_charged', customer_id, amount, charged_sale)

        if customer and redeem:
            run('canje de puntos', lambda: self.ledger.redeem_points(customer.id, redeem))

        if customer and award_total:
            points = points_earned(award_total)
            if points and run('puntos ganados', lambda: self.ledger.award_points(customer.id, points)):
                awarded = points

        deductions = self._stock_deductions(cart.items)
        for product_id, consumed in deductions.items():
            run(f'stock {product_id}', lambda: self._deduct_stock(product_id, consumed))
        if deductions:
            self._audit('log_stock_deducted', sale_id, dict(deductions))

        run('vaciar carrito', lambda: self.cart_service.clear(cart.id))
        return warnings, awarded

    @staticmethod
    def _stock_deductions(items: Iterable[CartItem]) -> Dict[str, float]:
        """Unidades base a descontar por producto (varias presentaciones se suman)."""
        deductions = OrderedDict()
        for item in items:
            deductions[item.product_id] = deductions.get(item.product_id, 0) + item.stock_consumed
        return deductions

    def _deduct_stock(self, product_id: str, consumed: float) -> None:
        with storage_errors('leer producto'):
            product = self.inventory_repo.get_product(product_id)
        if product is None:
            raise InvalidAmountError(f'Producto {product_id} no encontrado en inventario')

        new_stock = product.stock_shop - consumed
        if new_stock < 0:
            logger.warning("Stock negativo para %s: %s", product_id, new_stock)
        with storage_errors('actualizar stock'):
            self.inventory_repo.set_shop_stock(product_id, new_stock)

    def _record_failure(self, sale_id: str, effect: str, error: str, warnings: List[str]) -> None:
        logger.error("Venta %s: falló %s: %s", sale_id, effect, error)
        warnings.append(f'{effect}: {error}')
        self._audit('log_side_effect_failure', sale_id, effect, error)
