# ==============================================================================
# REPOSITORIO DE AUDITORÍA
# ==============================================================================
# Encapsula todo el acceso a audit.json
# La auditoría se almacena como lista, más reciente primero.
# ==============================================================================

import os
from datetime import datetime
from typing import Any, Dict, List

from .base import ListRepository


class AuditRepository(ListRepository):
    """
    Repositorio del log de auditoría.

    Formato de datos en audit.json:
    [
        {
            "type": "VENTA",
            "user": "caja1",
            "message": "Venta sale-1a2b (cash) - Total: MVR 120.00",
            "timestamp": "2024-01-01 10:00:00",
            "related_id": "sale-1a2b",
            "details": {...}
        }
    ]
    """

    # Límite de registros para evitar archivos muy grandes
    MAX_LOGS = 10000

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, 'audit.json'))

    def load(self) -> List[Dict[str, Any]]:
        """Logs ordenados por timestamp descendente."""
        return sorted(
            self.get_all(),
            key=lambda x: x.get('timestamp', ''),
            reverse=True
        )

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        """
        Registra un nuevo evento de auditoría.

        Args:
            log_type: Tipo de evento (VENTA, PAGO, STOCK, LEALTAD, CREDITO, SISTEMA)
            user: Usuario que realizó la acción
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (venta, cliente, producto)
            details: Detalles adicionales
        """
        log_entry = {
            'type': log_type,
            'user': user or 'sistema',
            'message': message,
            'timestamp': datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            'related_id': related_id,
            'details': details or {}
        }

        with self._mutate() as logs:
            logs.insert(0, log_entry)
            del logs[self.MAX_LOGS:]

    def get_by_type(self, log_type: str) -> List[Dict[str, Any]]:
        return [entry for entry in self.get_all() if entry.get('type') == log_type]
