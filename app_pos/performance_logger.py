# ==============================================================================
# TIEMPOS DE CAJA
# ==============================================================================
# Mide cuánto tardan las rutas de la API y los cobros.
#
#   <logs>/performance.log   una línea por request
#   <logs>/slow.log          solo rutas y cobros sobre el umbral
#
# Se apaga con POS_ENABLE_PROFILING=0.
# ==============================================================================

import logging
import os
import threading
import time
from datetime import datetime
from functools import wraps

from flask import g, request

from app_pos import config

logger = logging.getLogger(__name__)

ENABLE_PROFILING = config.ENABLE_PROFILING

LOGS_DIR = os.path.join(config.DATA_DIR, 'logs')

# Nombre que ve el encargado en los logs, por regla de Flask
ROUTE_NAMES = {
    'GET /api/carts': 'Ver carritos',
    'POST /api/carts': 'Abrir carrito',
    'POST /api/carts/<cart_id>/activate': 'Cambiar carrito activo',
    'DELETE /api/carts/<cart_id>': 'Cerrar carrito',
    'POST /api/carts/<cart_id>/lines': 'Agregar producto',
    'POST /api/carts/<cart_id>/lines/<line_id>/qty': 'Cambiar cantidad',
    'POST /api/carts/<cart_id>/lines/<line_id>/unit': 'Cambiar presentación',
    'DELETE /api/carts/<cart_id>/lines/<line_id>': 'Quitar producto',
    'POST /api/carts/<cart_id>/customer': 'Asignar cliente',
    'POST /api/carts/<cart_id>/loyalty': 'Canjear puntos',
    'GET /api/carts/<cart_id>/totals': 'Ver totales',
    'POST /api/carts/<cart_id>/checkout/cash': 'Cobrar en efectivo',
    'POST /api/carts/<cart_id>/checkout/credit': 'Venta a crédito',
    'POST /api/carts/<cart_id>/checkout/card': 'Cobrar con tarjeta',
    'POST /api/carts/<cart_id>/checkout/mobile': 'Cobrar con pago móvil',
    'POST /api/carts/<cart_id>/checkout/split': 'Dividir cuenta',
    'POST /api/customers/<customer_id>/settlements': 'Registrar abono',
    'GET /api/customers/<customer_id>/settlements': 'Ver abonos',
    'POST /api/customers/<customer_id>/credit-sales': 'Venta a crédito manual',
    'GET /api/reports/outstanding': 'Ver saldos pendientes',
    'GET /api/sales/<sale_id>/breakdown': 'Ver desglose de IVA',
}


class _Timing:
    """Acumulado de una operación medida."""

    __slots__ = ('calls', 'total_ms', 'max_ms', 'slow_calls')

    def __init__(self):
        self.calls = 0
        self.total_ms = 0.0
        self.max_ms = 0.0
        self.slow_calls = 0

    def add(self, ms: float, slow: bool) -> None:
        self.calls += 1
        self.total_ms += ms
        self.max_ms = max(self.max_ms, ms)
        if slow:
            self.slow_calls += 1

    def summary(self) -> dict:
        return {
            'calls': self.calls,
            'avg_time': round(self.total_ms / self.calls, 2) if self.calls else 0,
            'max_time': round(self.max_ms, 2),
            'slow_calls': self.slow_calls,
        }


_timings = {}
_lock = threading.Lock()


# =========================================================================
# ESCRITURA
# =========================================================================

def set_logs_dir(path):
    """Apunta los logs a otra carpeta (create_app usa <datos>/logs)."""
    global LOGS_DIR
    LOGS_DIR = path


def _severity(ms):
    if ms >= config.THRESHOLD_CRITICAL:
        return 'CRÍTICO'
    if ms >= config.THRESHOLD_WARNING:
        return 'LENTO'
    return None


def _append(filename, kind, label, detail, ms, severity):
    line = ' | '.join(filter(None, [
        datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
        kind,
        label,
        detail,
        f'{ms:.0f} ms',
        severity,
    ]))
    try:
        with _lock:
            os.makedirs(LOGS_DIR, exist_ok=True)
            with open(os.path.join(LOGS_DIR, filename), 'a', encoding='utf-8') as f:
                f.write(line + '\n')
    except OSError as exc:
        logger.debug("No se pudo escribir %s: %s", filename, exc)


def _record(kind, label, detail, ms, to_performance_log):
    severity = _severity(ms)
    if to_performance_log:
        _append('performance.log', kind, label, detail, ms, severity)
    if severity:
        _append('slow.log', kind, label, detail, ms, severity)
    with _lock:
        _timings.setdefault(label, _Timing()).add(ms, severity is not None)


# =========================================================================
# RUTAS
# =========================================================================

def init_profiling(app):
    """Cronometra cada request de la app."""
    if not ENABLE_PROFILING:
        return

    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _stop_timer(response):
        started = g.pop('request_started', None)
        if started is None:
            return response
        ms = (time.perf_counter() - started) * 1000
        rule = f"{request.method} {request.url_rule or request.path}"
        _record('RUTA', ROUTE_NAMES.get(rule, rule),
                f"{request.method} {request.path} -> {response.status_code}",
                ms, to_performance_log=True)
        return response


# =========================================================================
# COBROS
# =========================================================================

def profile_function(name):
    """
    Cronometra una operación de la caja.

    Args:
        name: Nombre legible ("Cobro en efectivo")

    Solo las llamadas sobre el umbral se escriben en slow.log; todas
    cuentan para get_function_stats().
    """
    def decorator(fn):
        if not ENABLE_PROFILING:
            return fn

        @wraps(fn)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                ms = (time.perf_counter() - started) * 1000
                _record('FUNCIÓN', name, fn.__qualname__, ms, to_performance_log=False)

        return wrapper

    return decorator


def get_function_stats():
    """
    Returns:
        dict: {nombre de ruta o cobro: {calls, avg_time, max_time, slow_calls}}
    """
    with _lock:
        return {label: t.summary() for label, t in _timings.items()}


def reset_stats():
    with _lock:
        _timings.clear()
