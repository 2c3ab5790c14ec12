# ==============================================================================
# REPOSITORIO DE CARRITOS
# ==============================================================================
# Persiste todos los carritos abiertos y el carrito activo en carts.json
# para que sobrevivan un reinicio de la aplicación.
# ==============================================================================

import os
from typing import Any, Dict, Optional, Tuple

from app_pos.models import Cart
from app_pos.repositories.base import BaseRepository


class CartRepository(BaseRepository):
    """
    Repositorio de carritos abiertos.

    Formato de datos en carts.json:
    {
        "active_cart_id": "cart-1a2b",
        "carts": {
            "cart-1a2b": {"id": "cart-1a2b", "display_number": 1, ...},
            "cart-9f8e": {...}
        }
    }

    El orden de "carts" es el orden de apertura.
    """

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, 'carts.json'))

    def _empty_data(self) -> Dict[str, Any]:
        return {'active_cart_id': None, 'carts': {}}

    def load_state(self) -> Tuple[Dict[str, Cart], Optional[str]]:
        """
        Carga la colección de carritos.

        Returns:
            Tupla (carritos por id, id del carrito activo)
        """
        data = self._load()
        carts = {
            cid: Cart.from_dict(cart_data)
            for cid, cart_data in (data.get('carts') or {}).items()
        }
        return carts, data.get('active_cart_id')

    def save_state(self, carts: Dict[str, Cart], active_cart_id: Optional[str]) -> None:
        """Guarda la colección completa y el carrito activo."""
        self._dump({
            'active_cart_id': active_cart_id,
            'carts': {cid: cart.to_dict() for cid, cart in carts.items()},
        })
