# ==============================================================================
# ERRORES DEL NÚCLEO DE CAJA
# ==============================================================================
# Todos heredan de PosError. Las rutas los capturan y devuelven
# {"ok": False, "error": mensaje} sin tocar el carrito ni los saldos.
# ==============================================================================

from typing import Any, Dict, List, Optional


class PosError(Exception):
    """Error de negocio con mensaje apto para mostrar al operador."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {'ok': False, 'error': self.message}


# ═══════════════════════════════════════════════════════════════════════════
# VALIDACIONES DE COBRO
# ═══════════════════════════════════════════════════════════════════════════

class EmptyCartError(PosError):
    def __init__(self, message: str = 'El carrito está vacío'):
        super().__init__(message)


class InsufficientPaymentError(PosError):
    def __init__(self, paid_amount: float, grand_total: float):
        super().__init__(
            f'Pago insuficiente: recibido {paid_amount:.2f}, total {grand_total:.2f}'
        )
        self.paid_amount = paid_amount
        self.grand_total = grand_total


class NoCustomerError(PosError):
    def __init__(self, message: str = 'Debe seleccionar un cliente para venta a crédito'):
        super().__init__(message)


class CreditLimitExceededError(PosError):
    def __init__(self, customer_name: str, credit_limit: float, grand_total: float):
        super().__init__(
            f'Límite de crédito excedido para {customer_name}: '
            f'límite {credit_limit:.2f}, total {grand_total:.2f}'
        )
        self.credit_limit = credit_limit
        self.grand_total = grand_total


class SplitTotalMismatchError(PosError):
    def __init__(self, remaining: float):
        if remaining >= 0:
            detail = f'falta asignar {remaining:.2f}'
        else:
            detail = f'sobran {abs(remaining):.2f}'
        super().__init__(f'Los montos divididos no cuadran con el total ({detail})')
        self.remaining = remaining


class SplitCustomerCountError(PosError):
    def __init__(self, count: int):
        super().__init__(f'Seleccione al menos 2 clientes para dividir la cuenta (seleccionados: {count})')
        self.count = count


class InvalidAmountError(PosError):
    pass


class LoyaltyRedemptionError(PosError):
    pass


# ═══════════════════════════════════════════════════════════════════════════
# ESTADO DEL CARRITO / CHECKOUT
# ═══════════════════════════════════════════════════════════════════════════

class CartNotFoundError(PosError):
    status_code = 404

    def __init__(self, cart_id: str):
        super().__init__(f'Carrito {cart_id} no encontrado')
        self.cart_id = cart_id


class CartLineNotFoundError(PosError):
    status_code = 404

    def __init__(self, line_id: str):
        super().__init__(f'Línea {line_id} no encontrada en el carrito')
        self.line_id = line_id


class CheckoutInProgressError(PosError):
    status_code = 409

    def __init__(self, cart_id: str):
        super().__init__(f'Ya hay un cobro en curso para el carrito {cart_id}')
        self.cart_id = cart_id


class InvalidCheckoutStateError(PosError):
    status_code = 409


# ═══════════════════════════════════════════════════════════════════════════
# PERSISTENCIA
# ═══════════════════════════════════════════════════════════════════════════

class RemotePersistenceError(PosError):
    """Envuelve cualquier fallo de un colaborador de almacenamiento."""

    status_code = 502

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        detail = f': {cause}' if cause else ''
        super().__init__(f'Error de almacenamiento en {operation}{detail}')
        self.operation = operation
        self.cause = cause


__all__: List[str] = [
    'PosError',
    'EmptyCartError',
    'InsufficientPaymentError',
    'NoCustomerError',
    'CreditLimitExceededError',
    'SplitTotalMismatchError',
    'SplitCustomerCountError',
    'InvalidAmountError',
    'LoyaltyRedemptionError',
    'CartNotFoundError',
    'CartLineNotFoundError',
    'CheckoutInProgressError',
    'InvalidCheckoutStateError',
    'RemotePersistenceError',
]
