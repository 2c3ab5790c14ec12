# ==============================================================================
# REPOSITORIO DE CLIENTES
# ==============================================================================
# Encapsula el acceso a customers.json
# El historial de abonos vive en settlements.json (SettlementRepository).
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from app_pos.models import Customer
from app_pos.repositories.base import DictRepository


class CustomerRepository(DictRepository):
    """
    Repositorio de clientes.

    Formato de datos en customers.json:
    {
        "cust1": {
            "id": "cust1",
            "code": "CUST001",
            "credit_limit": 5000,
            "loyalty_points": 0,
            "outstanding_balance": 1500,
            ...
        }
    }
    """

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, 'customers.json'))

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        """
        Obtiene un cliente por ID (sin historial de abonos).

        Returns:
            Customer o None si no existe
        """
        data = self.get_by_id(customer_id)
        if data is None:
            return None
        data.setdefault('id', str(customer_id))
        data.pop('settlement_history', None)
        return Customer.from_dict(data)

    def list_customers(self) -> List[Customer]:
        customers = []
        for cid, data in self.get_all().items():
            data.setdefault('id', cid)
            data.pop('settlement_history', None)
            customers.append(Customer.from_dict(data))
        return customers

    def save_customer(self, customer: Customer) -> None:
        """Crea o reemplaza un cliente."""
        self.update(customer.id, customer.to_dict(include_history=False))

    def update_customer(self, customer_id: str, fields: Dict[str, Any]) -> bool:
        """
        Actualiza campos parciales de un cliente.

        Args:
            customer_id: ID del cliente
            fields: Campos a modificar (ej: {'loyalty_points': 12})

        Returns:
            True si el cliente existe
        """
        return self.patch(customer_id, fields)
