# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Entidades del dominio (dataclasses) y enumeraciones de estado.
# Independientes del mecanismo de persistencia (documento JSON único).
# ==============================================================================

from .entities import (
    # Constantes
    GENERAL_PRICE_KEY,
    DEFAULT_UNIT,
    DEFAULT_CATEGORY,
    MAX_ACTIVITIES,
    DELIVERY_DAYS,

    # Estados
    LineStatus,
    OrderStatus,
    DebtStatus,
    CashflowType,
    PaymentMethod,
    derive_order_status,

    # Normalizadores
    to_number,
    as_number,
    normalize_price_value,
    clean_text,
    normalize_unit,

    # Precios
    GeneralOverride,
    PerProductOverride,
    Override,
    parse_override,
    PricingConfig,

    # Entidades
    Product,
    Client,
    OrderLine,
    Order,
    DebtItem,
    Debt,
    CashflowEntry,
    ActivityEntry,
)

__all__ = [
    'GENERAL_PRICE_KEY',
    'DEFAULT_UNIT',
    'DEFAULT_CATEGORY',
    'MAX_ACTIVITIES',
    'DELIVERY_DAYS',

    'LineStatus',
    'OrderStatus',
    'DebtStatus',
    'CashflowType',
    'PaymentMethod',
    'derive_order_status',

    'to_number',
    'as_number',
    'normalize_price_value',
    'clean_text',
    'normalize_unit',

    'GeneralOverride',
    'PerProductOverride',
    'Override',
    'parse_override',
    'PricingConfig',

    'Product',
    'Client',
    'OrderLine',
    'Order',
    'DebtItem',
    'Debt',
    'CashflowEntry',
    'ActivityEntry',
]
