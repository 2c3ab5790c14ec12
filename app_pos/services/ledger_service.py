# ==============================================================================
# SERVICIO DE CUENTA CORRIENTE DE CLIENTES
# ==============================================================================
# Puntos de lealtad, saldo pendiente (ventas a crédito) y abonos.
#
# REGLAS:
# - Puntos y saldo nunca quedan negativos
# - Un abono: nuevo saldo = max(0, saldo anterior - monto)
# - El historial de abonos solo crece; se muestra del más reciente al más antiguo
# - Registrar el mismo abono dos veces crea dos entradas (sin deduplicar)
# ==============================================================================

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from app_pos.exceptions import InvalidAmountError, NoCustomerError
from app_pos.models import Customer, Settlement
from app_pos.repositories.interfaces import ICustomerRepository, ISettlementRepository
from app_pos.services.audit_service import AuditService
from app_pos.services.persistence import storage_errors

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Servicio de cuenta corriente.

    Todas las operaciones leen el cliente del repositorio y escriben
    solo los campos que cambian.
    """

    def __init__(
        self,
        customer_repo: ICustomerRepository,
        settlement_repo: ISettlementRepository,
        audit_service: Optional[AuditService] = None,
        user: str = 'caja'
    ):
        self.customer_repo = customer_repo
        self.settlement_repo = settlement_repo
        self.audit_service = audit_service
        self.user = user

    def _get_customer(self, customer_id: str) -> Customer:
        with storage_errors('leer cliente'):
            customer = self.customer_repo.get_customer(customer_id)
        if customer is None:
            raise NoCustomerError(f'Cliente {customer_id} no encontrado')
        return customer

    def _update(self, customer_id: str, fields: Dict[str, Any], operation: str) -> None:
        with storage_errors(operation):
            updated = self.customer_repo.update_customer(customer_id, fields)
        if not updated:
            raise NoCustomerError(f'Cliente {customer_id} no encontrado')

    # =========================================================================
    # PUNTOS DE LEALTAD
    # =========================================================================

    def award_points(self, customer_id: str, points: float) -> float:
        """
        Suma puntos al cliente.

        Returns:
            Nuevo saldo de puntos
        """
        if points < 0:
            raise InvalidAmountError('Los puntos otorgados no pueden ser negativos')
        customer = self._get_customer(customer_id)
        new_points = (customer.loyalty_points or 0) + points
        self._update(customer_id, {'loyalty_points': new_points}, 'otorgar puntos')
        if self.audit_service and points:
            self.audit_service.log_loyalty(self.user, customer_id, points, 'award')
        return new_points

    def redeem_points(self, customer_id: str, points: float) -> float:
        """Descuenta puntos canjeados; nunca baja de cero."""
        if points < 0:
            raise InvalidAmountError('Los puntos canjeados no pueden ser negativos')
        customer = self._get_customer(customer_id)
        new_points = max(0, (customer.loyalty_points or 0) - points)
        self._update(customer_id, {'loyalty_points': new_points}, 'canjear puntos')
        if self.audit_service and points:
            self.audit_service.log_loyalty(self.user, customer_id, points, 'redeem')
        return new_points

    # =========================================================================
    # SALDO PENDIENTE
    # =========================================================================

    def adjust_balance(self, customer_id: str, delta: float) -> float:
        """
        Suma (o resta) al saldo pendiente.

        Returns:
            Nuevo saldo pendiente (>= 0)
        """
        customer = self._get_customer(customer_id)
        new_balance = max(0.0, customer.outstanding_balance + delta)
        self._update(customer_id, {'outstanding_balance': new_balance}, 'actualizar saldo')
        return new_balance

    def record_settlement(
        self,
        customer_id: str,
        amount_paid: float,
        settlement_date: Optional[str] = None
    ) -> Settlement:
        """
        Registra un abono contra el saldo pendiente.

        El abono se agrega al historial antes de actualizar el saldo.
        Un abono mayor que la deuda deja el saldo en 0.

        Args:
            customer_id: ID del cliente
            amount_paid: Monto abonado (> 0)
            settlement_date: Fecha YYYY-MM-DD (hoy por defecto)

        Returns:
            Settlement registrado
        """
        try:
            amount_paid = float(amount_paid)
        except (TypeError, ValueError):
            raise InvalidAmountError('Monto de abono inválido')
        if amount_paid <= 0:
            raise InvalidAmountError('El monto del abono debe ser mayor a 0')

        customer = self._get_customer(customer_id)
        previous = customer.outstanding_balance
        settlement = Settlement(
            id=f"set-{uuid.uuid4().hex[:12]}",
            amount_paid=amount_paid,
            date=settlement_date or date.today().isoformat(),
            previous_outstanding=previous,
            new_outstanding=max(0.0, previous - amount_paid),
        )

        with storage_errors('registrar abono'):
            self.settlement_repo.create_settlement(customer_id, settlement)
        self._update(
            customer_id,
            {'outstanding_balance': settlement.new_outstanding},
            'actualizar saldo'
        )

        if self.audit_service:
            self.audit_service.log_settlement(
                self.user, customer_id, amount_paid, previous, settlement.new_outstanding
            )
        return settlement

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_settlement_history(
        self,
        customer_id: str,
        newest_first: bool = True
    ) -> List[Settlement]:
        self._get_customer(customer_id)
        with storage_errors('leer abonos'):
            history = self.settlement_repo.get_by_customer(customer_id)
        if newest_first:
            history = list(reversed(history))
        return history

    def outstanding_report(self) -> Dict[str, Any]:
        """
        Reporte de clientes con saldo pendiente.

        Returns:
            Dict con:
            - customers: lista (mayor deuda primero) con último abono
            - total_outstanding: suma de saldos
            - count: cantidad de clientes con deuda
        """
        with storage_errors('leer clientes'):
            customers = self.customer_repo.list_customers()

        rows = []
        for customer in customers:
            if customer.outstanding_balance <= 0:
                continue
            with storage_errors('leer abonos'):
                history = self.settlement_repo.get_by_customer(customer.id)
            last = history[-1] if history else None
            rows.append({
                'id': customer.id,
                'code': customer.code,
                'name': customer.display_name,
                'phone': customer.phone,
                'credit_limit': customer.credit_limit,
                'outstanding_balance': round(customer.outstanding_balance, 2),
                'last_settlement_date': last.date if last else None,
                'last_settlement_amount': last.amount_paid if last else None,
            })

        rows.sort(key=lambda r: r['outstanding_balance'], reverse=True)
        return {
            'customers': rows,
            'total_outstanding': round(sum(r['outstanding_balance'] for r in rows), 2),
            'count': len(rows),
        }
