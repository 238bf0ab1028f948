# ==============================================================================
# API HTTP - Rutas Flask
# ==============================================================================
# Las rutas solo orquestan: leen la petición, llaman al servicio y
# responden JSON. Toda regla de negocio vive en services/.
#
# ERRORES: cualquier ServiceError se responde como
#   {"ok": false, "error": mensaje, "message": mensaje} + status HTTP
# ==============================================================================

import os

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from inventario import performance_logger
from inventario.app_container import AppContainer, DEFAULT_DATA_DIR, get_container
from inventario.logger import get_logger
from inventario.performance_logger import init_profiling
from inventario.services import ServiceError, run_startup_backup

log = get_logger('api')

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN (variables de entorno)
# ═══════════════════════════════════════════════════════════════════════════

DEFAULT_CORS_ORIGINS = 'http://localhost:5173,http://127.0.0.1:5173'


def _env_flag(name: str, default: str = '1') -> bool:
    return os.environ.get(name, default).strip().lower() not in ('0', 'false', 'no', 'off')


DATA_DIR = os.environ.get('INVENTARIO_DATA_DIR') or DEFAULT_DATA_DIR
CORS_ORIGINS = frozenset(
    origin.strip()
    for origin in os.environ.get('INVENTARIO_CORS_ORIGINS', DEFAULT_CORS_ORIGINS).split(',')
    if origin.strip()
)
BACKUPS_ENABLED = _env_flag('INVENTARIO_BACKUPS')

ALLOWED_METHODS = 'GET, POST, PATCH, DELETE, OPTIONS'
ALLOWED_HEADERS = 'Content-Type'

app = Flask(__name__)
app.json.sort_keys = False
app.config['DATA_DIR'] = DATA_DIR

# Mide rendimiento de rutas. Logs en logs/
# Para desactivar: INVENTARIO_PROFILING=0
init_profiling(app)


def configure_app(
    base_path: str = None,
    clock=None,
    id_generator=None,
    profiling: bool = None,
    logs_dir: str = None
) -> AppContainer:
    """
    Reconfigura la app: carpeta de datos, reloj, ids y profiling.

    Args:
        base_path: Carpeta de datos (db.json)
        clock: Reloj inyectable
        id_generator: Generador de ids inyectable
        profiling: Activa o desactiva el profiling
        logs_dir: Carpeta de logs del profiling

    Returns:
        Contenedor recién creado
    """
    AppContainer.reset_instance()
    app.config['DATA_DIR'] = base_path or DATA_DIR
    performance_logger.configure(enabled=profiling, logs_dir=logs_dir)
    return get_container(app.config['DATA_DIR'], clock, id_generator)


def container() -> AppContainer:
    return get_container(app.config['DATA_DIR'])


def _json_body() -> dict:
    """Cuerpo JSON de la petición; vacío si no hay cuerpo. JSON mal formado → 400."""
    if not request.get_data():
        return {}
    data = request.get_json(force=True)
    return data if isinstance(data, dict) else {}


def _error(message: str, status: int):
    return jsonify({'ok': False, 'error': message, 'message': message}), status


# ═══════════════════════════════════════════════════════════════════════════
# ORÍGENES PERMITIDOS Y CABECERAS
# ═══════════════════════════════════════════════════════════════════════════

@app.before_request
def check_origin():
    origin = request.headers.get('Origin')
    if origin and origin not in CORS_ORIGINS:
        log.warning("Origen rechazado: %s", origin)
        return _error('Origen no permitido', 403)
    if request.method == 'OPTIONS':
        return '', 204
    return None


@app.after_request
def set_response_headers(response):
    origin = request.headers.get('Origin')
    if origin and origin in CORS_ORIGINS:
        response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Access-Control-Allow-Methods'] = ALLOWED_METHODS
        response.headers['Access-Control-Allow-Headers'] = ALLOWED_HEADERS
        response.headers.add('Vary', 'Origin')
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
    return response


# ═══════════════════════════════════════════════════════════════════════════
# MANEJO DE ERRORES
# ═══════════════════════════════════════════════════════════════════════════

@app.errorhandler(ServiceError)
def handle_service_error(error: ServiceError):
    return _error(error.message, error.status_code)


@app.errorhandler(HTTPException)
def handle_http_error(error: HTTPException):
    return _error(error.description or error.name, error.code or 500)


@app.errorhandler(Exception)
def handle_unexpected_error(error: Exception):
    log.exception("Error no controlado en %s %s", request.method, request.path)
    return _error('Error inesperado', 500)


# ═══════════════════════════════════════════════════════════════════════════
# ESTADO Y PANEL
# ═══════════════════════════════════════════════════════════════════════════

@app.route('/health')
def health():
    return {'status': 'ok', 'timestamp': container().clock.now_iso()}


@app.route('/api/dashboard')
def dashboard():
    return container().report_service.dashboard()


@app.route('/api/dashboard/pending-clients')
def pending_clients():
    return container().report_service.pending_clients()


@app.route('/api/reports/inventory')
def inventory_report():
    return container().report_service.inventory_report()


# ═══════════════════════════════════════════════════════════════════════════
# PRODUCTOS Y PRECIOS
# ═══════════════════════════════════════════════════════════════════════════

@app.route('/api/products', methods=['GET'])
def list_products():
    return jsonify(container().catalog_service.list_products())


@app.route('/api/products', methods=['POST'])
def create_product():
    product = container().catalog_service.create_product(_json_body())
    return product, 201


@app.route('/api/products/<product_id>', methods=['PATCH'])
def update_product(product_id):
    return container().catalog_service.update_product(product_id, _json_body())


@app.route('/api/products/<product_id>/price', methods=['POST'])
def update_product_price(product_id):
    return container().catalog_service.set_price(product_id, _json_body().get('unitPrice'))


@app.route('/api/products/<product_id>', methods=['DELETE'])
def delete_product(product_id):
    return container().catalog_service.delete_product(product_id)


@app.route('/api/pricing/overrides', methods=['POST'])
def set_price_override():
    payload = _json_body()
    overrides = container().pricing_service.set_override(
        payload.get('comuna'),
        payload.get('productId'),
        payload.get('precio'),
    )
    return {'overrides': overrides}


# ═══════════════════════════════════════════════════════════════════════════
# CLIENTES
# ═══════════════════════════════════════════════════════════════════════════

@app.route('/api/clients', methods=['GET'])
def list_clients():
    return jsonify(container().client_service.list_clients())


@app.route('/api/clients', methods=['POST'])
def create_client():
    client, total = container().client_service.create_client(_json_body())
    return {'client': client, 'clientsTotal': total}, 201


@app.route('/api/clients/<client_id>', methods=['PATCH'])
def update_client(client_id):
    return container().client_service.update_client(client_id, _json_body())


@app.route('/api/clients/<client_id>', methods=['DELETE'])
def delete_client(client_id):
    removed = container().client_service.delete_client(client_id)
    return {'clientId': client_id, 'removedOrders': removed}


# ═══════════════════════════════════════════════════════════════════════════
# PEDIDOS
# ═══════════════════════════════════════════════════════════════════════════

@app.route('/api/orders', methods=['GET'])
def list_orders():
    return jsonify(container().order_service.list_orders())


@app.route('/api/orders', methods=['POST'])
def create_order():
    payload = _json_body()
    order, total = container().order_service.create_order(payload.get('clienteId'), payload.get('items'))
    return {'order': order, 'ordersTotal': total}, 201


@app.route('/api/orders/<order_id>', methods=['PATCH'])
def update_order(order_id):
    payload = _json_body()
    return container().order_service.update_order(order_id, payload.get('clienteId'), payload.get('items'))


@app.route('/api/orders/mark-delivered', methods=['POST'])
def mark_orders_delivered():
    payload = _json_body()
    service = container().order_service
    if 'deliveries' in payload:
        return service.mark_delivered(deliveries=payload.get('deliveries'))
    return service.mark_delivered(order_ids=payload.get('orderIds'))


@app.route('/api/orders/cancel', methods=['POST'])
def cancel_orders():
    removed, total = container().order_service.cancel_orders(_json_body().get('orderIds'))
    return {'removed': removed, 'ordersTotal': total}


# ═══════════════════════════════════════════════════════════════════════════
# DEUDAS
# ═══════════════════════════════════════════════════════════════════════════

@app.route('/api/debts', methods=['GET'])
def list_debts():
    return container().debt_service.list_debts()


@app.route('/api/debts', methods=['POST'])
def create_debt():
    payload = _json_body()
    debt = container().debt_service.create_debt(
        payload.get('clientId'),
        selections=payload.get('selections'),
        order_ids=payload.get('orderIds'),
        note=payload.get('note'),
    )
    return {'debt': debt}, 201


@app.route('/api/debts/<debt_id>/pay', methods=['POST'])
def pay_debt(debt_id):
    return container().debt_service.pay_debt(debt_id, _json_body().get('paymentMethod'))


# ═══════════════════════════════════════════════════════════════════════════
# FLUJO DE CAJA
# ═══════════════════════════════════════════════════════════════════════════

@app.route('/api/cashflow', methods=['GET'])
def list_cashflow():
    return container().cashflow_service.list_transactions()


@app.route('/api/cashflow', methods=['POST'])
def create_cashflow_entry():
    entry, summary = container().cashflow_service.create_entry(_json_body())
    return {'entry': entry, 'summary': summary}, 201


@app.route('/api/cashflow/<entry_id>', methods=['DELETE'])
def delete_cashflow_entry(entry_id):
    summary = container().cashflow_service.delete_entry(entry_id)
    return {'entryId': entry_id, 'summary': summary}


# ═══════════════════════════════════════════════════════════════════════════
# BACKUP AL INICIAR
# ═══════════════════════════════════════════════════════════════════════════
# Para desactivar: INVENTARIO_BACKUPS=0
if BACKUPS_ENABLED:
    run_startup_backup(DATA_DIR)


if __name__ == "__main__":
    # Desarrollo local. En producción usar WSGI (gunicorn wsgi:app)
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 4000))

    log.info("Inventario escuchando en http://%s:%s (datos: %s)", HOST, PORT, DATA_DIR)
    app.run(host=HOST, port=PORT, debug=DEBUG)
