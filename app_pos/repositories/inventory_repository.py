# ==============================================================================
# REPOSITORIO DE INVENTARIO
# ==============================================================================
# Encapsula el acceso a inventory.json
# Formato: {"p1": {producto}, "p2": {producto}}
# ==============================================================================

import os
from typing import Dict, Optional

from app_pos.models import Product
from app_pos.repositories.base import DictRepository


class InventoryRepository(DictRepository):
    """
    Repositorio del catálogo de productos.
    El núcleo de caja solo lee productos y ajusta stock_shop.
    """

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, 'inventory.json'))

    def get_product(self, product_id: str) -> Optional[Product]:
        """
        Obtiene un producto por ID.

        Returns:
            Product o None si no existe
        """
        data = self.get_by_id(product_id)
        if data is None:
            return None
        data.setdefault('id', str(product_id))
        return Product.from_dict(data)

    def get_all_products(self) -> Dict[str, Product]:
        products = {}
        for pid, data in self.get_all().items():
            data.setdefault('id', pid)
            products[pid] = Product.from_dict(data)
        return products

    def save_product(self, product: Product) -> None:
        """Crea o reemplaza un producto (usado al sembrar datos y en tests)."""
        self.update(product.id, product.to_dict())

    def set_shop_stock(self, product_id: str, new_quantity: float) -> bool:
        """
        Fija el stock de tienda de un producto.

        Args:
            product_id: ID del producto
            new_quantity: Nuevo stock en unidades base

        Returns:
            True si el producto existe y se actualizó
        """
        return self.patch(product_id, {'stock_shop': new_quantity})
