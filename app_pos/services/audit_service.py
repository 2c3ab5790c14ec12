# ==============================================================================
# SERVICIO DE AUDITORÍA
# ==============================================================================
# Centraliza el registro de eventos de la caja.
# Formatea mensajes humanizados y categoriza eventos.
# ==============================================================================

from typing import Any, Dict, List, Optional

from app_pos.config import DEFAULT_CURRENCY
from app_pos.models import AuditType
from app_pos.repositories.interfaces import IAuditRepository


class AuditService:
    """
    Servicio para registro y consulta de auditoría.

    Centraliza:
    - Registro de eventos con mensajes humanizados
    - Categorización (VENTA, PAGO, STOCK, LEALTAD, CREDITO, SISTEMA)

    La regla de oro: Si entra dinero → siempre log de PAGO
    """

    def __init__(self, audit_repo: IAuditRepository, currency: str = DEFAULT_CURRENCY):
        """
        Args:
            audit_repo: Repositorio de auditoría
            currency: Símbolo de moneda para los mensajes
        """
        self.audit_repo = audit_repo
        self.currency = currency

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Registra un evento de auditoría genérico.

        Args:
            log_type: Tipo de evento (VENTA, PAGO, STOCK, etc.)
            user: Usuario que realizó la acción
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (venta, cliente, producto)
            details: Detalles adicionales
        """
        if isinstance(log_type, AuditType):
            log_type = log_type.value
        self.audit_repo.log(log_type, user, message, related_id, details or {})

    def log_sale_created(
        self,
        user: str,
        sale_id: str,
        method: str,
        total: float,
        items_count: int,
        customer_name: Optional[str] = None
    ) -> None:
        """
        Registra una venta finalizada.

        Args:
            user: Usuario de caja
            sale_id: ID de la venta
            method: Método de pago (cash, credit, card, mobile)
            total: Total de la venta
            items_count: Cantidad de líneas
            customer_name: Cliente (None = cliente de paso)
        """
        customer_info = f" - Cliente: {customer_name}" if customer_name else ""
        message = (
            f"Venta {sale_id} ({method}) por {user} - Total: {self.currency} {total:.2f}"
            f" - {items_count} items{customer_info}"
        )
        self.log(
            AuditType.VENTA,
            user,
            message,
            sale_id,
            {'method': method, 'total': total, 'items_count': items_count}
        )

    def log_payment(
        self,
        user: str,
        sale_id: str,
        amount: float,
        method: str,
        change: Optional[float] = None
    ) -> None:
        """
        Registra un pago recibido.
        REGLA DE ORO: Si entra dinero, siempre se debe llamar esta función.
        """
        message = f"Pago recibido en {sale_id}: {self.currency} {amount:.2f} ({method})"
        if change:
            message += f" - Vuelto: {self.currency} {change:.2f}"
        self.log(
            AuditType.PAGO,
            user,
            message,
            sale_id,
            {'amount': amount, 'method': method, 'change': change}
        )

    def log_stock_deducted(
        self,
        user: str,
        sale_id: str,
        deductions: Dict[str, float]
    ) -> None:
        """
        Registra la salida de stock de una venta.

        Args:
            user: Usuario
            sale_id: ID de la venta (la primera, en ventas divididas)
            deductions: Unidades base descontadas por producto
        """
        parts = [f"-{qty:g} {pid}" for pid, qty in list(deductions.items())[:3]]
        desc = ", ".join(parts)
        if len(deductions) > 3:
            desc += f" (+{len(deductions) - 3} más)"
        message = f"Salida de stock por venta {sale_id}: {desc}"
        self.log(AuditType.STOCK, user, message, sale_id, {'deductions': deductions})

    def log_loyalty(
        self,
        user: str,
        customer_id: str,
        points: float,
        action: str
    ) -> None:
        """
        Registra movimiento de puntos.

        Args:
            action: 'award' o 'redeem'
        """
        verb = 'ganados' if action == 'award' else 'canjeados'
        message = f"Cliente {customer_id}: {points:g} puntos {verb}"
        self.log(
            AuditType.LEALTAD,
            user,
            message,
            customer_id,
            {'points': points, 'action': action}
        )

    def log_settlement(
        self,
        user: str,
        customer_id: str,
        amount: float,
        previous: float,
        new: float
    ) -> None:
        """Registra un abono contra el saldo pendiente."""
        message = (
            f"Abono de {customer_id}: {self.currency} {amount:.2f} - "
            f"Saldo {previous:.2f} → {new:.2f}"
        )
        if new <= 0:
            message += " - SALDADO"
        self.log(
            AuditType.PAGO,
            user,
            message,
            customer_id,
            {'amount': amount, 'previous_outstanding': previous, 'new_outstanding': new}
        )

    def log_credit_charged(self, user: str, customer_id: str, amount: float, sale_id: str) -> None:
        message = f"Cargo a crédito de {customer_id}: {self.currency} {amount:.2f} (venta {sale_id})"
        self.log(AuditType.CREDITO, user, message, customer_id, {'amount': amount, 'sale_id': sale_id})

    def log_side_effect_failure(
        self,
        user: str,
        sale_id: str,
        effect: str,
        error: str
    ) -> None:
        """
        Registra un efecto posterior a la venta que no se pudo aplicar.
        La venta ya existe; el operador debe corregir a mano.
        """
        message = f"Venta {sale_id}: falló '{effect}' - {error}"
        self.log(AuditType.SISTEMA, user, message, sale_id, {'effect': effect, 'error': error})

    # =========================================================================
    # CONSULTA DE LOGS
    # =========================================================================

    def get_all_logs(self) -> List[Dict[str, Any]]:
        """Obtiene todos los logs ordenados por fecha."""
        return self.audit_repo.load()

    def get_logs_by_type(self, log_type: str) -> List[Dict[str, Any]]:
        """Filtra logs por tipo."""
        return self.audit_repo.get_by_type(log_type)
