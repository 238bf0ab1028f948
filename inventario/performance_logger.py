# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide el tiempo de rutas y de operaciones de negocio clave.
# Guarda logs legibles en logs/ para análisis humano.
#
# ACTIVAR/DESACTIVAR: INVENTARIO_PROFILING=0 o configure(enabled=False)
# ==============================================================================

import os
import threading
import time
from collections import defaultdict
from datetime import datetime
from functools import wraps

from inventario.logger import get_logger

log = get_logger('profiling')

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

DEFAULT_LOGS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')

_config = {
    'enabled': os.environ.get('INVENTARIO_PROFILING', '1').strip().lower() not in ('0', 'false', 'no', 'off'),
    'logs_dir': os.environ.get('INVENTARIO_LOGS_DIR') or DEFAULT_LOGS_DIR,
}

# Nombres legibles para las rutas de la API
ROUTE_NAMES = {
    'GET /health': 'Estado del servicio',
    'GET /api/dashboard': 'Ver panel principal',
    'GET /api/dashboard/pending-clients': 'Ver clientes con pedidos pendientes',

    'GET /api/products': 'Listar productos',
    'POST /api/products': 'Crear producto',
    'PATCH /api/products/<product_id>': 'Editar producto',
    'DELETE /api/products/<product_id>': 'Eliminar producto',
    'POST /api/products/<product_id>/price': 'Cambiar precio',
    'POST /api/pricing/overrides': 'Precio por comuna',

    'GET /api/clients': 'Listar clientes',
    'POST /api/clients': 'Agregar cliente',
    'PATCH /api/clients/<client_id>': 'Editar cliente',
    'DELETE /api/clients/<client_id>': 'Eliminar cliente',

    'GET /api/orders': 'Listar pedidos',
    'POST /api/orders': 'Crear pedido',
    'PATCH /api/orders/<order_id>': 'Editar pedido',
    'POST /api/orders/mark-delivered': 'Marcar entregas',
    'POST /api/orders/cancel': 'Cancelar pedidos',

    'GET /api/debts': 'Ver deudas',
    'POST /api/debts': 'Registrar deuda',
    'POST /api/debts/<debt_id>/pay': 'Cobrar deuda',

    'GET /api/cashflow': 'Ver flujo de caja',
    'POST /api/cashflow': 'Registrar movimiento',
    'DELETE /api/cashflow/<entry_id>': 'Eliminar movimiento',

    'GET /api/reports/inventory': 'Reporte de inventario',
}


def configure(enabled: bool = None, logs_dir: str = None) -> None:
    """
    Cambia la configuración en tiempo de ejecución.

    Args:
        enabled: Activa o desactiva el profiling
        logs_dir: Carpeta donde se escriben los logs
    """
    if enabled is not None:
        _config['enabled'] = bool(enabled)
    if logs_dir is not None:
        _config['logs_dir'] = logs_dir


def is_enabled() -> bool:
    return _config['enabled']


def _log_path(name):
    return os.path.join(_config['logs_dir'], name)


# ═══════════════════════════════════════════════════════════════════════════
# ESTADÍSTICAS DE FUNCIONES (en memoria)
# ═══════════════════════════════════════════════════════════════════════════

# {nombre_funcion: {calls, total_time, max_time}}
_function_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0})
_stats_lock = threading.Lock()
_write_lock = threading.Lock()


def _get_timestamp():
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _write_log(filename, content):
    """Agrega contenido a un archivo de log. Un error de escritura no detiene la petición."""
    try:
        with _write_lock:
            os.makedirs(_config['logs_dir'], exist_ok=True)
            with open(_log_path(filename), 'a', encoding='utf-8') as f:
                f.write(content)
    except OSError as e:
        log.warning("No se pudo escribir %s: %s", filename, e)


def _get_route_name(method, path, rule=None):
    """Nombre legible para una ruta; si no hay match, la ruta tal cual."""
    for candidate in (path, rule):
        if candidate and f"{method} {candidate}" in ROUTE_NAMES:
            return ROUTE_NAMES[f"{method} {candidate}"]
    return f"{method} {path}"


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ PROFILING DE RUTAS
# ═══════════════════════════════════════════════════════════════════════════

def log_route_performance(method, path, rule, time_ms, origin=None):
    """
    Registra el tiempo de una ruta en performance.log

    Args:
        method: GET, POST, etc.
        path: Ruta solicitada
        rule: Regla de Flask (con parámetros)
        time_ms: Tiempo en milisegundos
        origin: Origen o IP del cliente
    """
    if not is_enabled():
        return

    log_entry = f"""
════════════════════════════════════════
[PERFORMANCE] {_get_timestamp()}
────────────────────────────────────────
Acción: {_get_route_name(method, path, rule)}
Origen: {origin or 'desconocido'}
Ruta: {method} {path}
Tiempo: {time_ms:.0f} ms
"""
    _write_log('performance.log', log_entry)


def log_slow_route(method, path, rule, time_ms, origin=None, level='WARNING'):
    """Registra una ruta lenta en slow_routes.log ('WARNING' o 'CRITICAL')."""
    if not is_enabled():
        return

    severity = 'LENTA' if level == 'WARNING' else 'MUY LENTA'
    threshold = THRESHOLD_WARNING if level == 'WARNING' else THRESHOLD_CRITICAL

    log_entry = f"""
[{level}] {_get_timestamp()}
────────────────────────────────────────
Ruta {severity}: {_get_route_name(method, path, rule)}
Origen: {origin or 'desconocido'}
Detalle: {method} {path}
Tiempo: {time_ms:.0f} ms (umbral: {threshold} ms)
────────────────────────────────────────
"""
    _write_log('slow_routes.log', log_entry)


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ HOOKS PARA FLASK
# ═══════════════════════════════════════════════════════════════════════════

def init_profiling(app):
    """
    Registra los hooks before_request/after_request en la app Flask.
    Los hooks consultan is_enabled() en cada petición.
    """
    from flask import g, request

    @app.before_request
    def _start_timer():
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        if not is_enabled() or not hasattr(g, 'start_time'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000
        method = request.method
        path = request.path
        rule = str(request.url_rule) if request.url_rule else path
        origin = request.headers.get('Origin') or request.remote_addr

        log_route_performance(method, path, rule, elapsed, origin)
        if elapsed >= THRESHOLD_CRITICAL:
            log_slow_route(method, path, rule, elapsed, origin, 'CRITICAL')
        elif elapsed >= THRESHOLD_WARNING:
            log_slow_route(method, path, rule, elapsed, origin, 'WARNING')

        return response


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ DECORADOR PARA OPERACIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Decorador que mide llamadas, tiempo promedio y tiempo máximo.

    Uso:
        @profile_function
        def mark_delivered(self, ...):
            ...

        @profile_function(name="Crear deuda")
        def create_debt(self, ...):
            ...
    """
    def decorator(fn):
        func_name = name or fn.__qualname__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not is_enabled():
                return fn(*args, **kwargs)
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                with _stats_lock:
                    stats = _function_stats[func_name]
                    stats['calls'] += 1
                    stats['total_time'] += elapsed_ms
                    if elapsed_ms > stats['max_time']:
                        stats['max_time'] = elapsed_ms
                if elapsed_ms >= THRESHOLD_WARNING:
                    _log_slow_function_call(func_name, elapsed_ms)

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


def _log_slow_function_call(func_name, time_ms):
    severity = 'CRÍTICO' if time_ms >= THRESHOLD_CRITICAL else 'LENTO'
    log_entry = f"""
[{severity}] {_get_timestamp()}
Función: {func_name}
Tiempo: {time_ms:.0f} ms
────────────────────────────────────────
"""
    _write_log('slow_functions.log', log_entry)


# ═══════════════════════════════════════════════════════════════════════════
# 4️⃣ REPORTE DE ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

def get_function_stats():
    """
    Returns:
        dict: {nombre: {calls, avg_time, max_time}}
    """
    with _stats_lock:
        result = {}
        for func_name, stats in _function_stats.items():
            calls = stats['calls']
            avg = stats['total_time'] / calls if calls > 0 else 0
            result[func_name] = {
                'calls': calls,
                'avg_time': round(avg, 2),
                'max_time': round(stats['max_time'], 2),
            }
        return result


def reset_stats():
    """Reinicia las estadísticas (útil para testing)"""
    with _stats_lock:
        _function_stats.clear()


__all__ = [
    'THRESHOLD_WARNING',
    'THRESHOLD_CRITICAL',
    'configure',
    'is_enabled',
    'init_profiling',
    'profile_function',
    'get_function_stats',
    'reset_stats',
]
