# ==============================================================================
# CÁLCULO DE PRECIOS E IMPUESTOS (GST INCLUSIVO)
# ==============================================================================
# Funciones puras: mismas entradas → mismos totales, sin estado oculto.
#
# Los precios ya incluyen GST. Un descuento fijo (canje de puntos) se
# reparte a prorrata y solo la parte gravada lleva impuesto, así una
# línea exenta nunca paga GST.
# ==============================================================================

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable

from app_pos.config import LOYALTY_POINTS_DIVISOR
from app_pos.models import CartItem


@dataclass(frozen=True)
class CartTotals:
    """
    Totales de un carrito.

    Attributes:
        taxable_total: Suma de líneas gravadas (GST incluido)
        zero_tax_total: Suma de líneas exentas
        subtotal_no_discount: taxable_total + zero_tax_total
        discount: Descuento fijo aplicado (canje de puntos)
        grand_total: Total a cobrar, nunca negativo
        gst_amount: GST contenido en grand_total
        subtotal: grand_total sin GST (lo que se muestra como subtotal)
    """
    taxable_total: float = 0.0
    zero_tax_total: float = 0.0
    subtotal_no_discount: float = 0.0
    discount: float = 0.0
    grand_total: float = 0.0
    gst_amount: float = 0.0
    subtotal: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'taxable_total': round(self.taxable_total, 2),
            'zero_tax_total': round(self.zero_tax_total, 2),
            'subtotal_no_discount': round(self.subtotal_no_discount, 2),
            'discount': round(self.discount, 2),
            'grand_total': round(self.grand_total, 2),
            'gst_amount': round(self.gst_amount, 2),
            'subtotal': round(self.subtotal, 2),
        }


def calculate_totals(
    items: Iterable[CartItem],
    tax_rate: float,
    discount: float = 0.0
) -> CartTotals:
    """
    Calcula los totales de un conjunto de líneas.

    Args:
        items: Líneas del carrito
        tax_rate: Tasa de GST en porcentaje (8 = 8%)
        discount: Descuento fijo en moneda (puntos canjeados)

    Returns:
        CartTotals
    """
    taxable_total = 0.0
    zero_tax_total = 0.0
    for item in items:
        if item.is_zero_tax:
            zero_tax_total += item.unit_price * item.qty
        else:
            taxable_total += item.unit_price * item.qty

    discount = max(0.0, float(discount or 0))
    subtotal_no_discount = taxable_total + zero_tax_total
    grand_total = max(0.0, subtotal_no_discount - discount)

    taxable_ratio = taxable_total / subtotal_no_discount if subtotal_no_discount > 0 else 0.0
    taxable_after_discount = grand_total * taxable_ratio
    gst_amount = taxable_after_discount - taxable_after_discount / (1 + tax_rate / 100)

    return CartTotals(
        taxable_total=taxable_total,
        zero_tax_total=zero_tax_total,
        subtotal_no_discount=subtotal_no_discount,
        discount=discount,
        grand_total=grand_total,
        gst_amount=gst_amount,
        subtotal=grand_total - gst_amount,
    )


def max_redeemable_points(available_points: float, subtotal_no_discount: float) -> int:
    """
    Máximo de puntos canjeables: ni más de los que tiene el cliente
    ni más de lo necesario para dejar la cuenta en cero.
    """
    cap = min(float(available_points or 0), float(subtotal_no_discount or 0))
    return max(0, int(math.floor(cap)))


def points_earned(grand_total: float) -> int:
    """Puntos ganados por una venta: 1 por cada LOYALTY_POINTS_DIVISOR."""
    if grand_total <= 0:
        return 0
    return int(math.floor(grand_total / LOYALTY_POINTS_DIVISOR))


def sale_tax_breakdown(grand_total: float, tax_rate: float) -> Dict[str, float]:
    """
    Desglose estilo boleta de una venta ya registrada.

    Returns:
        Dict con subtotal, gst_amount y grand_total (redondeados a 2)
    """
    subtotal = grand_total / (1 + tax_rate / 100)
    return {
        'subtotal': round(subtotal, 2),
        'gst_amount': round(grand_total - subtotal, 2),
        'grand_total': round(grand_total, 2),
    }
