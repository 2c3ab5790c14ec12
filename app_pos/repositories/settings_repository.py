# ==============================================================================
# REPOSITORIO DE CONFIGURACIÓN DE TIENDA
# ==============================================================================
# Encapsula el acceso a settings.json
# Guarda la configuración de la tienda que usa la caja (GST, moneda, ...).
# ==============================================================================

import os
from typing import Any, Dict

from app_pos import config
from .base import DictRepository


class SettingsRepository(DictRepository):
    """
    Repositorio de configuración de la tienda.

    Formato de datos en settings.json:
    {
        "tax_rate": 8,
        "currency": "MVR",
        "enable_card_payment": true
    }

    Las claves ausentes toman el valor por defecto de config.py.
    """

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, 'settings.json'))

    @staticmethod
    def defaults() -> Dict[str, Any]:
        return {
            'tax_rate': config.DEFAULT_TAX_RATE,
            'currency': config.DEFAULT_CURRENCY,
            'enable_card_payment': config.ENABLE_CARD_PAYMENT,
        }

    def get_shop_settings(self) -> Dict[str, Any]:
        """Configuración efectiva (defaults + valores guardados)."""
        settings = self.defaults()
        settings.update(self.get_all())
        return settings

    def get_setting(self, key: str, default: Any = None) -> Any:
        return self.get_shop_settings().get(key, default)

    def set_setting(self, key: str, value: Any) -> None:
        with self._mutate() as settings:
            settings[key] = value

    # =========================================================================
    # Métodos específicos para configuraciones comunes
    # =========================================================================

    def get_tax_rate(self) -> float:
        """Tasa de GST en porcentaje (ej: 8.0)."""
        try:
            return float(self.get_setting('tax_rate', config.DEFAULT_TAX_RATE))
        except (TypeError, ValueError):
            return config.DEFAULT_TAX_RATE

    def set_tax_rate(self, rate: float) -> None:
        if rate < 0:
            rate = 0.0
        self.set_setting('tax_rate', rate)

    def get_currency(self) -> str:
        return self.get_setting('currency', config.DEFAULT_CURRENCY)

    def card_payment_enabled(self) -> bool:
        return bool(self.get_setting('enable_card_payment', config.ENABLE_CARD_PAYMENT))
