# ==============================================================================
# REPOSITORIO DE VENTAS
# ==============================================================================
# Encapsula todo el acceso a sales.json
# Las ventas se almacenan como lista: [{venta1}, {venta2}, ...]
# ==============================================================================

import os
import uuid
from typing import Any, Dict, List, Optional

from app_pos.models import Sale, sale_from_dict
from app_pos.repositories.base import ListRepository


class SalesRepository(ListRepository):
    """
    Repositorio de ventas finalizadas.

    Formato de datos en sales.json:
    [
        {
            "id": "sale-3f2a...",
            "date": "2024-01-01",
            "payment_method": "cash",
            "grand_total": 120.0,
            "paid_amount": 150.0,
            "balance": 30.0,
            "items": [...],
            "customer": {...}
        }
    ]
    """

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, 'sales.json'))

    @staticmethod
    def new_sale_id() -> str:
        return f"sale-{uuid.uuid4().hex[:12]}"

    def create_sale(self, sale_data: Dict[str, Any]) -> str:
        """
        Registra una venta.

        Args:
            sale_data: Venta serializada (asigna 'id' si no viene)

        Returns:
            ID de la venta
        """
        if not sale_data.get('id'):
            sale_data['id'] = self.new_sale_id()
        self.append(sale_data)
        return sale_data['id']

    def delete_sale(self, sale_id: str) -> bool:
        """
        Elimina una venta.

        Returns:
            True si existía
        """
        return self.remove_where('id', sale_id) > 0

    def get_sale(self, sale_id: str) -> Optional[Sale]:
        data = self.find_by('id', sale_id)
        return sale_from_dict(data) if data else None

    def list_sales(self) -> List[Sale]:
        return [sale_from_dict(d) for d in self.get_all()]

    def get_sales_by_customer(self, customer_id: str) -> List[Sale]:
        """Ventas cuyo cliente coincide, en orden de registro."""
        return [
            sale_from_dict(d) for d in self.get_all()
            if (d.get('customer') or {}).get('id') == customer_id
        ]
