# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio de caja.
# Diseñadas para ser independientes del mecanismo de persistencia.
# ==============================================================================

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type

from app_pos.config import BASE_UNIT_NAME


# ==============================================================================
# ENUMERACIONES
# ==============================================================================

class PaymentMethod(str, Enum):
    """Métodos de pago aceptados."""
    CASH = "cash"
    CREDIT = "credit"
    CARD = "card"
    MOBILE = "mobile"


class CheckoutState(str, Enum):
    """Estados de una sesión de cobro."""
    IDLE = "idle"
    REVIEWING = "reviewing"
    COMMITTED = "committed"
    ABORTED = "aborted"


class AuditType(str, Enum):
    """Tipos de eventos de auditoría."""
    VENTA = "VENTA"
    PAGO = "PAGO"
    STOCK = "STOCK"
    LEALTAD = "LEALTAD"
    CREDITO = "CREDITO"
    SISTEMA = "SISTEMA"


# ==============================================================================
# ENTIDADES DE CATÁLOGO
# ==============================================================================

@dataclass
class Unit:
    """
    Presentación alternativa de venta de un producto (ej: caja de 24).

    Attributes:
        name: Nombre de la presentación
        price: Precio de venta de una presentación
        conversion_factor: Unidades base que consume una presentación
        barcode: Código de barras propio
    """
    name: str
    price: float
    conversion_factor: float = 1
    barcode: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'price': self.price,
            'conversion_factor': self.conversion_factor,
            'barcode': self.barcode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Unit':
        return cls(
            name=data.get('name', ''),
            price=float(data.get('price', 0.0) or 0.0),
            conversion_factor=data.get('conversion_factor', 1) or 1,
            barcode=data.get('barcode', '') or '',
        )


@dataclass
class Product:
    """
    Producto del catálogo (solo lectura para el núcleo de caja).

    Attributes:
        id: Identificador único
        name_dv: Nombre en dhivehi
        name_en: Nombre en inglés
        price: Precio base por pieza (GST incluido)
        stock_shop: Stock en tienda, en unidades base
        is_zero_tax: True si el producto está exento de GST
        units: Presentaciones alternativas
        barcode: Código de barras de la pieza
        item_code: Código interno
        category: Categoría
        expiry_date: Fecha de vencimiento ISO (opcional)
    """
    id: str
    name_dv: str = ''
    name_en: str = ''
    price: float = 0.0
    stock_shop: float = 0
    is_zero_tax: bool = False
    units: List[Unit] = field(default_factory=list)
    barcode: str = ''
    item_code: str = ''
    category: str = ''
    expiry_date: Optional[str] = None

    def get_unit(self, name: str) -> Optional[Unit]:
        """Busca una presentación por nombre exacto."""
        for unit in self.units:
            if unit.name == name:
                return unit
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        return {
            'id': self.id,
            'name_dv': self.name_dv,
            'name_en': self.name_en,
            'price': self.price,
            'stock_shop': self.stock_shop,
            'is_zero_tax': self.is_zero_tax,
            'units': [u.to_dict() for u in self.units],
            'barcode': self.barcode,
            'item_code': self.item_code,
            'category': self.category,
            'expiry_date': self.expiry_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde diccionario."""
        return cls(
            id=str(data.get('id', '')),
            name_dv=data.get('name_dv', ''),
            name_en=data.get('name_en', ''),
            price=float(data.get('price', 0.0) or 0.0),
            stock_shop=data.get('stock_shop', 0) or 0,
            is_zero_tax=bool(data.get('is_zero_tax', False)),
            units=[Unit.from_dict(u) for u in data.get('units') or []],
            barcode=data.get('barcode', '') or '',
            item_code=data.get('item_code', '') or '',
            category=data.get('category', '') or '',
            expiry_date=data.get('expiry_date'),
        )


# ==============================================================================
# ENTIDADES DE CLIENTE
# ==============================================================================

@dataclass
class Settlement:
    """
    Abono registrado contra el saldo pendiente de un cliente.

    Attributes:
        id: Identificador del abono
        amount_paid: Monto abonado
        date: Fecha del abono (YYYY-MM-DD)
        previous_outstanding: Saldo antes del abono
        new_outstanding: Saldo después del abono, nunca negativo
    """
    id: str
    amount_paid: float
    date: str
    previous_outstanding: float
    new_outstanding: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'amount_paid': self.amount_paid,
            'date': self.date,
            'previous_outstanding': self.previous_outstanding,
            'new_outstanding': self.new_outstanding,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settlement':
        return cls(
            id=data.get('id', ''),
            amount_paid=float(data.get('amount_paid', 0.0) or 0.0),
            date=data.get('date', ''),
            previous_outstanding=float(data.get('previous_outstanding', 0.0) or 0.0),
            new_outstanding=float(data.get('new_outstanding', 0.0) or 0.0),
        )


@dataclass
class Customer:
    """
    Cliente con cuenta de crédito y puntos de lealtad.

    Attributes:
        id: Identificador único
        code: Código legible (CUST001)
        name_dv: Nombre en dhivehi
        name_en: Nombre en inglés
        phone: Teléfono
        email: Correo
        credit_limit: Tope por venta a crédito
        loyalty_points: Puntos disponibles (nunca negativos)
        outstanding_balance: Deuda pendiente (nunca negativa)
        settlement_history: Abonos en orden de registro
    """
    id: str
    code: str = ''
    name_dv: str = ''
    name_en: str = ''
    phone: str = ''
    email: str = ''
    credit_limit: float = 0.0
    loyalty_points: float = 0
    outstanding_balance: float = 0.0
    settlement_history: List[Settlement] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name_en or self.name_dv or self.code or self.id

    def to_dict(self, include_history: bool = True) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        d = {
            'id': self.id,
            'code': self.code,
            'name_dv': self.name_dv,
            'name_en': self.name_en,
            'phone': self.phone,
            'email': self.email,
            'credit_limit': self.credit_limit,
            'loyalty_points': self.loyalty_points,
            'outstanding_balance': self.outstanding_balance,
        }
        if include_history:
            d['settlement_history'] = [s.to_dict() for s in self.settlement_history]
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Customer':
        """Crea instancia desde diccionario."""
        return cls(
            id=str(data.get('id', '')),
            code=data.get('code', '') or '',
            name_dv=data.get('name_dv', '') or '',
            name_en=data.get('name_en', '') or '',
            phone=data.get('phone', '') or '',
            email=data.get('email', '') or '',
            credit_limit=float(data.get('credit_limit', 0.0) or 0.0),
            loyalty_points=data.get('loyalty_points', 0) or 0,
            outstanding_balance=float(data.get('outstanding_balance', 0.0) or 0.0),
            settlement_history=[
                Settlement.from_dict(s) for s in data.get('settlement_history') or []
            ],
        )


# ==============================================================================
# ENTIDADES DE CARRITO
# ==============================================================================

@dataclass
class CartItem:
    """
    Línea del carrito: copia del producto + cantidad y presentación elegida.

    Attributes:
        line_id: Identificador de la línea dentro del carrito
        product_id: ID del producto
        name_dv: Nombre en dhivehi
        name_en: Nombre en inglés
        base_price: Precio base del producto por pieza
        is_zero_tax: Exento de GST
        qty: Cantidad vendida (>= 1 mientras exista la línea)
        selected_unit: Presentación elegida ("Piece" por defecto)
        unit_price: Precio cobrado por cada unidad vendida
        unit_conversion: Unidades base de stock por unidad vendida
        expiry_date: Fecha de vencimiento del producto
    """
    line_id: str
    product_id: str
    name_dv: str = ''
    name_en: str = ''
    base_price: float = 0.0
    is_zero_tax: bool = False
    qty: int = 1
    selected_unit: str = BASE_UNIT_NAME
    unit_price: float = 0.0
    unit_conversion: float = 1
    expiry_date: Optional[str] = None

    @property
    def line_total(self) -> float:
        """Total de la línea (unit_price * qty), sin redondear."""
        return self.unit_price * self.qty

    @property
    def stock_consumed(self) -> float:
        """Unidades base que descuenta esta línea del stock."""
        return self.qty * self.unit_conversion

    def to_dict(self) -> Dict[str, Any]:
        return {
            'line_id': self.line_id,
            'product_id': self.product_id,
            'name_dv': self.name_dv,
            'name_en': self.name_en,
            'base_price': self.base_price,
            'is_zero_tax': self.is_zero_tax,
            'qty': self.qty,
            'selected_unit': self.selected_unit,
            'unit_price': self.unit_price,
            'unit_conversion': self.unit_conversion,
            'expiry_date': self.expiry_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartItem':
        base_price = float(data.get('base_price', data.get('price', 0.0)) or 0.0)
        return cls(
            line_id=data.get('line_id', ''),
            product_id=str(data.get('product_id', '')),
            name_dv=data.get('name_dv', '') or '',
            name_en=data.get('name_en', '') or '',
            base_price=base_price,
            is_zero_tax=bool(data.get('is_zero_tax', False)),
            qty=int(data.get('qty', 1)),
            selected_unit=data.get('selected_unit') or BASE_UNIT_NAME,
            unit_price=float(data.get('unit_price', base_price) or 0.0),
            unit_conversion=data.get('unit_conversion', 1) or 1,
            expiry_date=data.get('expiry_date'),
        )


@dataclass
class Cart:
    """
    Carrito en curso. Pueden coexistir varios; uno solo está activo.

    Attributes:
        id: Identificador del carrito
        display_number: Número visible (1, 2, ...), estable en la sesión
        customer: Cliente asociado (None = cliente de paso)
        items: Líneas en orden de ingreso
        points_to_redeem: Puntos de lealtad pendientes de canjear
    """
    id: str
    display_number: int = 1
    customer: Optional[Customer] = None
    items: List[CartItem] = field(default_factory=list)
    points_to_redeem: float = 0

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find_line(self, line_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.line_id == line_id:
                return item
        return None

    def find_matching_line(self, product_id: str, unit_name: str) -> Optional[CartItem]:
        """Busca la línea del mismo producto y la misma presentación."""
        for item in self.items:
            if item.product_id == product_id and (item.selected_unit or BASE_UNIT_NAME) == unit_name:
                return item
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'display_number': self.display_number,
            'customer': self.customer.to_dict(include_history=False) if self.customer else None,
            'items': [item.to_dict() for item in self.items],
            'points_to_redeem': self.points_to_redeem,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Cart':
        customer = data.get('customer')
        return cls(
            id=data.get('id', ''),
            display_number=int(data.get('display_number', 1)),
            customer=Customer.from_dict(customer) if customer else None,
            items=[CartItem.from_dict(i) for i in data.get('items') or []],
            points_to_redeem=data.get('points_to_redeem', 0) or 0,
        )


# ==============================================================================
# ENTIDADES DE VENTA (unión etiquetada por método de pago)
# ==============================================================================

@dataclass(frozen=True)
class Sale:
    """
    Venta finalizada e inmutable.
    Cada subclase lleva exactamente los campos de su método de pago.

    Attributes:
        id: Identificador de la venta
        date: Fecha (YYYY-MM-DD)
        customer: Copia del cliente al momento de la venta (o None)
        items: Copia de las líneas vendidas
        grand_total: Total cobrado, GST incluido
    """
    payment_method: ClassVar[PaymentMethod]

    id: str
    date: str
    customer: Optional[Customer]
    items: Tuple[CartItem, ...]
    grand_total: float

    def _base_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'date': self.date,
            'customer': self.customer.to_dict(include_history=False) if self.customer else None,
            'items': [item.to_dict() for item in self.items],
            'grand_total': self.grand_total,
            'payment_method': self.payment_method.value,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        return self._base_dict()

    @staticmethod
    def _base_kwargs(data: Dict[str, Any]) -> Dict[str, Any]:
        customer = data.get('customer')
        return {
            'id': data.get('id', ''),
            'date': data.get('date', ''),
            'customer': Customer.from_dict(customer) if customer else None,
            'items': tuple(CartItem.from_dict(i) for i in data.get('items') or []),
            'grand_total': float(data.get('grand_total', 0.0) or 0.0),
        }


@dataclass(frozen=True)
class CashSale(Sale):
    """Venta en efectivo: registra lo recibido y el vuelto."""
    payment_method: ClassVar[PaymentMethod] = PaymentMethod.CASH

    paid_amount: float = 0.0
    balance: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        d = self._base_dict()
        d['paid_amount'] = self.paid_amount
        d['balance'] = self.balance
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CashSale':
        return cls(
            paid_amount=float(data.get('paid_amount', 0.0) or 0.0),
            balance=float(data.get('balance', 0.0) or 0.0),
            **Sale._base_kwargs(data),
        )


@dataclass(frozen=True)
class CreditSale(Sale):
    """Venta a crédito: el total pasa al saldo pendiente del cliente."""
    payment_method: ClassVar[PaymentMethod] = PaymentMethod.CREDIT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CreditSale':
        return cls(**Sale._base_kwargs(data))


@dataclass(frozen=True)
class CardSale(Sale):
    """Venta con tarjeta: se cobra el total exacto."""
    payment_method: ClassVar[PaymentMethod] = PaymentMethod.CARD

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CardSale':
        return cls(**Sale._base_kwargs(data))


@dataclass(frozen=True)
class MobileSale(Sale):
    """Venta con pago móvil: se cobra el total exacto."""
    payment_method: ClassVar[PaymentMethod] = PaymentMethod.MOBILE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MobileSale':
        return cls(**Sale._base_kwargs(data))


SALE_TYPES: Dict[PaymentMethod, Type[Sale]] = {
    PaymentMethod.CASH: CashSale,
    PaymentMethod.CREDIT: CreditSale,
    PaymentMethod.CARD: CardSale,
    PaymentMethod.MOBILE: MobileSale,
}


def sale_from_dict(data: Dict[str, Any]) -> Sale:
    """Reconstruye la variante correcta de Sale según 'payment_method'."""
    method = PaymentMethod(data.get('payment_method', PaymentMethod.CASH.value))
    return SALE_TYPES[method].from_dict(data)


def snapshot_items(items: List[CartItem]) -> Tuple[CartItem, ...]:
    """Copia profunda de las líneas para adjuntarlas a una venta."""
    return tuple(copy.deepcopy(item) for item in items)


# ==============================================================================
# DIVISIÓN DE CUENTA
# ==============================================================================

@dataclass
class SplitEntry:
    """
    Parte de una cuenta dividida (existe solo durante la división).

    Attributes:
        id: Identificador de la parte
        customer_id: Cliente que asume la parte
        amount: Monto asignado
    """
    id: str
    customer_id: str
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'customer_id': self.customer_id, 'amount': self.amount}
