# ==============================================================================
# RESOLUCIÓN DE PRESENTACIONES (UNIDADES DE VENTA)
# ==============================================================================
# Dado un producto y el nombre de una presentación, devuelve el precio por
# unidad vendida y cuántas unidades base consume del stock.
# Una presentación desconocida nunca bloquea la venta: se usa la pieza.
# ==============================================================================

from dataclasses import dataclass
from datetime import date
from typing import Optional

from app_pos.config import BASE_UNIT_NAME, NEAR_EXPIRY_DAYS
from app_pos.models import Product


@dataclass(frozen=True)
class ResolvedUnit:
    name: str
    price: float
    conversion: float


def resolve(product: Product, unit_name: Optional[str] = None) -> ResolvedUnit:
    """
    Resuelve precio y factor de conversión de una presentación.

    Args:
        product: Producto
        unit_name: Nombre de la presentación ("Piece" o None = unidad base)

    Returns:
        ResolvedUnit con el nombre efectivo, precio y conversión
    """
    if unit_name and unit_name != BASE_UNIT_NAME:
        unit = product.get_unit(unit_name)
        if unit is not None:
            return ResolvedUnit(unit.name, float(unit.price), unit.conversion_factor or 1)
    return ResolvedUnit(BASE_UNIT_NAME, float(product.price), 1)


def is_near_expiry(
    product: Product,
    today: Optional[date] = None,
    days: int = NEAR_EXPIRY_DAYS
) -> bool:
    """True si el producto vence dentro de `days` días (o ya venció)."""
    if not product.expiry_date:
        return False
    try:
        expiry = date.fromisoformat(product.expiry_date[:10])
    except ValueError:
        return False
    today = today or date.today()
    return (expiry - today).days <= days
