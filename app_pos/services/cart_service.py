# ==============================================================================
# SERVICIO DE CARRITOS
# ==============================================================================
# Centraliza la lógica de los carritos abiertos de la caja.
# Pueden coexistir varios carritos (clientes en espera); uno está activo.
# Toda mutación se guarda en carts.json antes de volver.
# ==============================================================================

import threading
import uuid
from typing import List, Optional

from app_pos.exceptions import (
    CartLineNotFoundError,
    CartNotFoundError,
    InvalidAmountError,
    LoyaltyRedemptionError,
)
from app_pos.models import Cart, CartItem, Customer, Product
from app_pos.repositories.interfaces import ICartRepository
from app_pos.services import unit_resolver
from app_pos.services.persistence import storage_errors
from app_pos.services.pricing import calculate_totals, max_redeemable_points


class CartService:
    """
    Servicio para gestión de carritos.

    Responsabilidades:
    - Abrir/cerrar carritos y cambiar el activo
    - Agregar líneas (fusionando producto + presentación repetidos)
    - Cambiar cantidad/presentación, quitar líneas
    - Asociar cliente y puntos a canjear
    - Persistir la colección completa tras cada cambio
    """

    def __init__(self, cart_repo: ICartRepository):
        """
        Carga los carritos guardados.
        Si no hay ninguno se crea uno; si el activo no existe se usa el primero.

        Args:
            cart_repo: Almacenamiento local de carritos
        """
        self.cart_repo = cart_repo
        self._lock = threading.RLock()

        with storage_errors('cargar carritos'):
            self._carts, self._active_id = cart_repo.load_state()

        if not self._carts:
            self._new_cart()
        if self._active_id not in self._carts:
            self._active_id = next(iter(self._carts))
        self._save()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _save(self) -> None:
        with storage_errors('guardar carritos'):
            self.cart_repo.save_state(self._carts, self._active_id)

    def _new_cart(self) -> Cart:
        number = max((c.display_number for c in self._carts.values()), default=0) + 1
        cart = Cart(id=f"cart-{uuid.uuid4().hex[:8]}", display_number=number)
        self._carts[cart.id] = cart
        return cart

    def _cart(self, cart_id: str) -> Cart:
        cart = self._carts.get(cart_id)
        if cart is None:
            raise CartNotFoundError(cart_id)
        return cart

    @staticmethod
    def _line(cart: Cart, line_id: str) -> CartItem:
        line = cart.find_line(line_id)
        if line is None:
            raise CartLineNotFoundError(line_id)
        return line

    @staticmethod
    def _redeem_limit(cart: Cart) -> int:
        if cart.customer is None:
            return 0
        subtotal = calculate_totals(cart.items, 0).subtotal_no_discount
        return max_redeemable_points(cart.customer.loyalty_points, subtotal)

    def _clamp_points(self, cart: Cart) -> None:
        """Los puntos pendientes no pueden superar el subtotal que queda."""
        if cart.points_to_redeem:
            cart.points_to_redeem = min(cart.points_to_redeem, self._redeem_limit(cart))

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_cart(self, cart_id: str) -> Cart:
        with self._lock:
            return self._cart(cart_id)

    def list_carts(self) -> List[Cart]:
        """Carritos en orden de apertura."""
        with self._lock:
            return list(self._carts.values())

    @property
    def active_cart_id(self) -> str:
        return self._active_id

    def get_active_cart(self) -> Cart:
        with self._lock:
            return self._carts[self._active_id]

    # =========================================================================
    # COLECCIÓN DE CARRITOS
    # =========================================================================

    def create_cart(self) -> Cart:
        """Abre un carrito nuevo y lo deja activo."""
        with self._lock:
            cart = self._new_cart()
            self._active_id = cart.id
            self._save()
            return cart

    def switch_active(self, cart_id: str) -> Cart:
        with self._lock:
            cart = self._cart(cart_id)
            self._active_id = cart_id
            self._save()
            return cart

    def close_cart(self, cart_id: str) -> Cart:
        """
        Cierra (descarta) un carrito.
        Siempre queda al menos uno abierto: cerrar el último crea otro.

        Returns:
            El carrito que queda activo
        """
        with self._lock:
            self._cart(cart_id)
            del self._carts[cart_id]
            if not self._carts:
                self._new_cart()
            if self._active_id not in self._carts:
                self._active_id = next(iter(self._carts))
            self._save()
            return self._carts[self._active_id]

    # =========================================================================
    # LÍNEAS
    # =========================================================================

    def add_line(
        self,
        cart_id: str,
        product: Product,
        unit_name: Optional[str] = None,
        price_factor: float = 1,
        qty: int = 1
    ) -> CartItem:
        """
        Agrega un producto al carrito.

        Si ya hay una línea del mismo producto con la misma presentación
        se incrementa su cantidad en lugar de crear otra.

        Args:
            cart_id: ID del carrito
            product: Producto del catálogo
            unit_name: Presentación ("Piece" o None = unidad base)
            price_factor: Multiplicador de precio (0.9 = producto por vencer)
            qty: Cantidad a agregar

        Returns:
            La línea creada o actualizada
        """
        if qty is None or int(qty) < 1:
            raise InvalidAmountError('Cantidad debe ser mayor a 0')
        qty = int(qty)

        resolved = unit_resolver.resolve(product, unit_name)

        with self._lock:
            cart = self._cart(cart_id)
            existing = cart.find_matching_line(product.id, resolved.name)
            if existing:
                existing.qty += qty
                line = existing
            else:
                line = CartItem(
                    line_id=uuid.uuid4().hex[:12],
                    product_id=product.id,
                    name_dv=product.name_dv,
                    name_en=product.name_en,
                    base_price=product.price,
                    is_zero_tax=product.is_zero_tax,
                    qty=qty,
                    selected_unit=resolved.name,
                    unit_price=resolved.price * price_factor,
                    unit_conversion=resolved.conversion,
                    expiry_date=product.expiry_date,
                )
                cart.items.append(line)
            self._save()
            return line

    def set_qty(self, cart_id: str, line_id: str, qty: int) -> Optional[CartItem]:
        """
        Fija la cantidad de una línea. Cantidad <= 0 quita la línea.

        Returns:
            La línea actualizada, o None si se quitó
        """
        with self._lock:
            cart = self._cart(cart_id)
            line = self._line(cart, line_id)
            if qty <= 0:
                cart.items.remove(line)
                line = None
            else:
                line.qty = int(qty)
            self._clamp_points(cart)
            self._save()
            return line

    def change_unit(
        self,
        cart_id: str,
        line_id: str,
        product: Product,
        unit_name: Optional[str]
    ) -> CartItem:
        """
        Cambia la presentación de una línea y la vuelve a tarificar.
        La cantidad se conserva. Si otra línea ya usa esa presentación,
        ambas se fusionan.
        """
        resolved = unit_resolver.resolve(product, unit_name)
        with self._lock:
            cart = self._cart(cart_id)
            line = self._line(cart, line_id)

            other = cart.find_matching_line(line.product_id, resolved.name)
            if other is not None and other is not line:
                other.qty += line.qty
                cart.items.remove(line)
                self._clamp_points(cart)
                self._save()
                return other

            line.selected_unit = resolved.name
            line.unit_price = resolved.price
            line.unit_conversion = resolved.conversion
            self._clamp_points(cart)
            self._save()
            return line

    def remove_line(self, cart_id: str, line_id: str) -> None:
        with self._lock:
            cart = self._cart(cart_id)
            cart.items.remove(self._line(cart, line_id))
            self._clamp_points(cart)
            self._save()

    # =========================================================================
    # CLIENTE Y LEALTAD
    # =========================================================================

    def set_customer(self, cart_id: str, customer: Optional[Customer]) -> Cart:
        """Asocia (o quita) el cliente. Los puntos pendientes se anulan."""
        with self._lock:
            cart = self._cart(cart_id)
            cart.customer = customer
            cart.points_to_redeem = 0
            self._save()
            return cart

    def set_points_to_redeem(self, cart_id: str, points: float) -> Cart:
        """
        Fija los puntos a canjear en el próximo cobro.

        Raises:
            LoyaltyRedemptionError: sin cliente, negativo, fraccionario
                o sobre el máximo
        """
        try:
            whole = float(points).is_integer()
        except (TypeError, ValueError):
            whole = False
        if not whole:
            raise LoyaltyRedemptionError('Los puntos a canjear deben ser un número entero')
        points = int(points)

        with self._lock:
            cart = self._cart(cart_id)
            if points < 0:
                raise LoyaltyRedemptionError('Los puntos a canjear no pueden ser negativos')
            if points and cart.customer is None:
                raise LoyaltyRedemptionError('Seleccione un cliente para canjear puntos')

            limit = self._redeem_limit(cart)
            if points > limit:
                raise LoyaltyRedemptionError(f'Máximo canjeable: {limit} puntos')

            cart.points_to_redeem = points
            self._save()
            return cart

    def clear(self, cart_id: str) -> Cart:
        """Vacía líneas, cliente y puntos. El carrito sigue abierto."""
        with self._lock:
            cart = self._cart(cart_id)
            cart.items = []
            cart.customer = None
            cart.points_to_redeem = 0
            self._save()
            return cart
