# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de negocio de la aplicación.
#
# PRINCIPIOS:
# 1. Cada mutación es document_repo.mutate(función): todo o nada
# 2. Las reglas fallidas lanzan ServiceError (el borrador se descarta)
# 3. Las rutas solo llaman a servicios
# 4. Toda mutación registra su entrada en el registro de actividad
#
# ESTRUCTURA:
# ├── errors.py           → ServiceError y subclases (404 / 400)
# ├── clock.py            → Reloj e ids inyectables
# ├── activity_service.py → Registro de actividad (máx. 30)
# ├── pricing_service.py  → Precios por comuna
# ├── catalog_service.py  → Productos
# ├── client_service.py   → Clientes
# ├── order_service.py    → Pedidos y entregas por línea
# ├── debt_service.py     → Deudas y cobros
# ├── cashflow_service.py → Ingresos y egresos
# ├── report_service.py   → Panel, pendientes e inventario
# └── backup_service.py   → Backups diarios de db.json
# ==============================================================================

from inventario.services.errors import (
    ServiceError,
    NotFoundError,
    ValidationError,
    InvalidStateError,
)
from inventario.services.clock import Clock, IdGenerator, SystemClock, UuidIdGenerator
from inventario.services.activity_service import ActivityService, format_clp
from inventario.services.pricing_service import (
    PricingService,
    resolve_price,
    normalize_price_overrides,
    ensure_pricing_shape,
)
from inventario.services.catalog_service import CatalogService
from inventario.services.client_service import ClientService
from inventario.services.order_service import OrderService, recompute_order_status
from inventario.services.cashflow_service import CashflowService, compute_summary
from inventario.services.debt_service import DebtService
from inventario.services.report_service import ReportService
from inventario.services.backup_service import BackupService, run_startup_backup

__all__ = [
    'ServiceError',
    'NotFoundError',
    'ValidationError',
    'InvalidStateError',
    'Clock',
    'IdGenerator',
    'SystemClock',
    'UuidIdGenerator',
    'ActivityService',
    'format_clp',
    'PricingService',
    'resolve_price',
    'normalize_price_overrides',
    'ensure_pricing_shape',
    'CatalogService',
    'ClientService',
    'OrderService',
    'recompute_order_status',
    'CashflowService',
    'compute_summary',
    'DebtService',
    'ReportService',
    'BackupService',
    'run_startup_backup',
]
