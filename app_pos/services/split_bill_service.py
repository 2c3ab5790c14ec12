# ==============================================================================
# DIVISIÓN DE CUENTA ENTRE CLIENTES (CRÉDITO)
# ==============================================================================
# Reparte el total de un carrito entre 2 o más clientes.
# Al seleccionar, cada parte recibe total/n redondeado a 2 decimales y la
# última absorbe la diferencia, así la suma siempre da el total exacto.
# ==============================================================================

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Sequence

from app_pos.config import SPLIT_TOLERANCE
from app_pos.exceptions import (
    CartLineNotFoundError,
    InvalidAmountError,
    SplitCustomerCountError,
    SplitTotalMismatchError,
)
from app_pos.models import SplitEntry

CENT = Decimal('0.01')


def _money(value: float) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class SplitBill:
    """
    Cuenta dividida.

    Uso:
        split = SplitBill(100)
        split.select_customers(['c1', 'c2', 'c3'])   # 33.33 / 33.33 / 33.34
        split.set_amount(split.entries[0].id, 50)
        split.validate()                              # SplitTotalMismatchError
    """

    def __init__(self, total: float):
        self.total = float(total)
        self.entries: List[SplitEntry] = []

    def select_customers(self, customer_ids: Sequence[str]) -> List[SplitEntry]:
        """Reemplaza las partes por un reparto equitativo entre los clientes."""
        ids = [cid for cid in customer_ids if cid]
        if len(ids) < 2:
            raise SplitCustomerCountError(len(ids))

        total = _money(self.total)
        share = (total / len(ids)).quantize(CENT, rounding=ROUND_HALF_UP)
        amounts = [share] * (len(ids) - 1)
        amounts.append(total - sum(amounts))

        self.entries = [
            SplitEntry(id=f"split-{i + 1}", customer_id=cid, amount=float(amount))
            for i, (cid, amount) in enumerate(zip(ids, amounts))
        ]
        return self.entries

    def set_amount(self, entry_id: str, amount: float) -> SplitEntry:
        """Edita el monto de una parte (no reequilibra las demás)."""
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise InvalidAmountError('Monto inválido')
        if amount < 0:
            raise InvalidAmountError('El monto no puede ser negativo')
        for entry in self.entries:
            if entry.id == entry_id:
                entry.amount = amount
                return entry
        raise CartLineNotFoundError(entry_id)

    @property
    def allocated(self) -> float:
        return float(sum(_money(e.amount) for e in self.entries))

    @property
    def remaining(self) -> float:
        return float(_money(self.total) - sum(_money(e.amount) for e in self.entries))

    @property
    def is_balanced(self) -> bool:
        return abs(self.remaining) < SPLIT_TOLERANCE

    def validate(self) -> None:
        if len(self.entries) < 2:
            raise SplitCustomerCountError(len(self.entries))
        if not self.is_balanced:
            raise SplitTotalMismatchError(self.remaining)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'entries': [e.to_dict() for e in self.entries],
            'allocated': self.allocated,
            'remaining': self.remaining,
            'is_balanced': self.is_balanced,
        }
