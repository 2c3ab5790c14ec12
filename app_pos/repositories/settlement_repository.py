# ==============================================================================
# REPOSITORIO DE ABONOS (SETTLEMENTS)
# ==============================================================================
# Encapsula el acceso a settlements.json
# Solo se agregan registros: el historial nunca se edita ni se reordena.
# ==============================================================================

import os
from typing import List

from app_pos.models import Settlement
from app_pos.repositories.base import ListRepository


class SettlementRepository(ListRepository):
    """
    Repositorio de abonos contra saldos pendientes.

    Formato de datos en settlements.json:
    [
        {
            "customer_id": "cust1",
            "id": "set-...",
            "amount_paid": 500.0,
            "date": "2023-10-20",
            "previous_outstanding": 2000.0,
            "new_outstanding": 1500.0
        }
    ]
    """

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, 'settlements.json'))

    def create_settlement(self, customer_id: str, settlement: Settlement) -> None:
        """Agrega un abono al final del historial."""
        record = settlement.to_dict()
        record['customer_id'] = customer_id
        self.append(record)

    def get_by_customer(self, customer_id: str) -> List[Settlement]:
        """Abonos de un cliente en orden de registro (más antiguo primero)."""
        return [
            Settlement.from_dict(r) for r in self.find_all_by('customer_id', customer_id)
        ]
