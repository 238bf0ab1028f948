# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio de reparto.
# Se persisten como diccionarios camelCase dentro del documento JSON único.
# ==============================================================================

import math
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Iterable, Union
from enum import Enum


# ==============================================================================
# CONSTANTES
# ==============================================================================

# Clave reservada: precio por comuna que aplica a todos los productos
GENERAL_PRICE_KEY = '__general__'

DEFAULT_UNIT = 'Unidad'
DEFAULT_CATEGORY = 'General'

# Tamaño máximo del registro de actividad (más recientes primero)
MAX_ACTIVITIES = 30

DELIVERY_DAYS = ['Lunes', 'Martes', 'Miércoles', 'Jueves', 'Viernes', 'Sábado', 'Domingo']


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class LineStatus(str, Enum):
    """Estado de una línea de pedido."""
    PENDIENTE = 'pendiente'
    ENTREGADO = 'entregado'
    DEUDA = 'deuda'


class OrderStatus(str, Enum):
    """Estado derivado de un pedido (nunca se asigna a mano)."""
    PENDIENTE = 'pendiente'
    DEUDA = 'deuda'
    COMPLETADO = 'completado'


class DebtStatus(str, Enum):
    PENDIENTE = 'pendiente'
    PAGADA = 'pagada'


class CashflowType(str, Enum):
    INGRESO = 'ingreso'
    EGRESO = 'egreso'


class PaymentMethod(str, Enum):
    """Métodos de pago aceptados en el flujo de caja."""
    EFECTIVO = 'efectivo'
    TRANSFERENCIA = 'transferencia'
    OTRO = 'otro'

    @classmethod
    def normalize(cls, value: Any) -> 'PaymentMethod':
        """Cualquier valor no reconocido (o ausente) se considera OTRO."""
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.OTRO


def derive_order_status(line_statuses: Iterable[str]) -> OrderStatus:
    """
    Calcula el estado de un pedido a partir de los estados de sus líneas.

    Precedencia estricta:
        1. alguna línea pendiente  → pendiente
        2. alguna línea en deuda   → deuda
        3. alguna línea entregada  → completado
        4. sin líneas              → pendiente
    """
    statuses = set(line_statuses)
    if LineStatus.PENDIENTE.value in statuses:
        return OrderStatus.PENDIENTE
    if LineStatus.DEUDA.value in statuses:
        return OrderStatus.DEUDA
    if LineStatus.ENTREGADO.value in statuses:
        return OrderStatus.COMPLETADO
    return OrderStatus.PENDIENTE


# ==============================================================================
# NORMALIZADORES DE VALORES
# ==============================================================================

def to_number(value: Any) -> Optional[float]:
    """
    Convierte números y strings numéricos a float.
    Retorna None para valores no numéricos, vacíos, booleanos o no finitos.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        try:
            parsed = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def as_number(value: float) -> Union[int, float]:
    """Entero si el valor no tiene decimales (240.0 → 240)."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def normalize_price_value(value: Any) -> Optional[Union[int, float]]:
    """Precio válido: número finito y no negativo. Cualquier otro valor → None."""
    parsed = to_number(value)
    if parsed is None or parsed < 0:
        return None
    return as_number(parsed)


def clean_text(value: Any) -> str:
    """String recortado; cualquier otro tipo se convierte en ''."""
    return value.strip() if isinstance(value, str) else ''


def normalize_unit(unit: Any) -> str:
    cleaned = clean_text(unit)
    return cleaned or DEFAULT_UNIT


# ==============================================================================
# PRECIOS POR COMUNA - Variante etiquetada
# ==============================================================================

@dataclass(frozen=True)
class GeneralOverride:
    """Precio único para todos los productos de una comuna."""
    price: Union[int, float]

    def resolve(self, product_id: str, fallback: Union[int, float]) -> Union[int, float]:
        return self.price

    def to_dict(self) -> Dict[str, Any]:
        return {GENERAL_PRICE_KEY: self.price}


@dataclass(frozen=True)
class PerProductOverride:
    """
    Precios por producto dentro de una comuna.
    Puede incluir la clave general como respaldo para productos sin precio propio.
    """
    prices: Dict[str, Union[int, float]] = field(default_factory=dict)

    def resolve(self, product_id: str, fallback: Union[int, float]) -> Union[int, float]:
        if product_id in self.prices:
            return self.prices[product_id]
        if GENERAL_PRICE_KEY in self.prices:
            return self.prices[GENERAL_PRICE_KEY]
        return fallback

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.prices)


Override = Union[GeneralOverride, PerProductOverride]


def parse_override(value: Any) -> Optional[Override]:
    """
    Interpreta el valor almacenado para una comuna.

    - Número o string numérico → GeneralOverride
    - Diccionario → PerProductOverride (se descartan precios inválidos)
    - Cualquier otra forma → None (se ignora, no es error)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, str)):
        price = normalize_price_value(value)
        return GeneralOverride(price) if price is not None else None
    if isinstance(value, dict):
        prices = {}
        for product_key, raw_price in value.items():
            price = normalize_price_value(raw_price)
            if price is not None:
                prices[str(product_key)] = price
        return PerProductOverride(prices) if prices else None
    return None


@dataclass
class PricingConfig:
    """
    Sección "pricing" del documento.

    Attributes:
        precio_caja: Precio base informativo
        precios_por_comuna: comuna → override normalizado
    """
    precio_caja: Union[int, float] = 0
    precios_por_comuna: Dict[str, Override] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'precioCaja': self.precio_caja,
            'preciosPorComuna': {
                comuna: override.to_dict()
                for comuna, override in self.precios_por_comuna.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'PricingConfig':
        """Crea la configuración descartando formas mal construidas."""
        if not isinstance(data, dict):
            return cls()
        overrides = {}
        raw_overrides = data.get('preciosPorComuna')
        if isinstance(raw_overrides, dict):
            for comuna, raw in raw_overrides.items():
                parsed = parse_override(raw)
                if parsed is not None:
                    overrides[comuna] = parsed
        base = normalize_price_value(data.get('precioCaja'))
        return cls(
            precio_caja=base if base is not None else 0,
            precios_por_comuna=overrides,
        )


# ==============================================================================
# CATÁLOGO Y CLIENTES
# ==============================================================================

@dataclass
class Product:
    """
    Producto del catálogo.

    Attributes:
        id: Identificador único
        name: Nombre visible
        unit_price: Precio base (se usa si no hay precio por comuna)
        category: Categoría para clasificación
        notes: Notas libres
        unit: Etiqueta de unidad ("Unidad", "Caja", ...)
    """
    id: str
    name: str
    unit_price: Union[int, float] = 0
    category: str = DEFAULT_CATEGORY
    notes: str = ''
    unit: str = DEFAULT_UNIT

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'unitPrice': self.unit_price,
            'category': self.category,
            'notes': self.notes,
            'unit': normalize_unit(self.unit),
        }


@dataclass
class Client:
    """
    Cliente de reparto.

    La comuna es la dimensión usada para los precios por comuna.
    """
    id: str
    nombre_completo: str
    telefono: str
    direccion: str
    comuna: str
    dia_reparto: Optional[str] = None
    region: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'id': self.id,
            'nombreCompleto': self.nombre_completo,
            'telefono': self.telefono,
            'direccion': self.direccion,
            'comuna': self.comuna,
        }
        if self.dia_reparto:
            d['diaReparto'] = self.dia_reparto
        if self.region:
            d['region'] = self.region
        return d


# ==============================================================================
# PEDIDOS
# ==============================================================================

@dataclass
class OrderLine:
    """
    Línea de pedido rastreable individualmente.

    Attributes:
        line_id: Identificador único dentro del pedido
        product_id: Producto pedido
        cantidad: Cantidad (> 0)
        status: pendiente / entregado / deuda
    """
    line_id: str
    product_id: str
    cantidad: Union[int, float]
    status: LineStatus = LineStatus.PENDIENTE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lineId': self.line_id,
            'productId': self.product_id,
            'cantidad': self.cantidad,
            'status': self.status.value if isinstance(self.status, Enum) else self.status,
        }


@dataclass
class Order:
    """
    Pedido de un cliente.

    El campo estado se deriva SIEMPRE de las líneas (ver derive_order_status).
    """
    id: str
    cliente_id: str
    created_at: str
    items: List[OrderLine] = field(default_factory=list)
    updated_at: Optional[str] = None
    delivered_at: Optional[str] = None
    debt_id: Optional[str] = None

    @property
    def estado(self) -> OrderStatus:
        return derive_order_status(line.status.value for line in self.items)

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'id': self.id,
            'clienteId': self.cliente_id,
            'estado': self.estado.value,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'deliveredAt': self.delivered_at,
            'items': [line.to_dict() for line in self.items],
        }
        if self.debt_id:
            d['debtId'] = self.debt_id
        return d


# ==============================================================================
# DEUDAS
# ==============================================================================

@dataclass
class DebtItem:
    """Producto agregado dentro de una deuda (snapshot de precio y cantidad)."""
    product_id: str
    name: str
    unit: str
    unit_price: Union[int, float]
    quantity: Union[int, float] = 0
    subtotal: Union[int, float] = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productId': self.product_id,
            'name': self.name,
            'unit': self.unit,
            'unitPrice': self.unit_price,
            'quantity': as_number(self.quantity),
            'subtotal': as_number(self.subtotal),
        }


@dataclass
class Debt:
    """
    Deuda de un cliente creada desde líneas pendientes.

    Attributes:
        id: Identificador único
        client_id: Cliente deudor
        order_ids: Pedidos de origen
        amount: Suma de subtotales (> 0)
        items: Agregado por producto
        note: Nota opcional
        status: pendiente / pagada
        cashflow_entry_id: Ingreso generado al pagar
    """
    id: str
    client_id: str
    order_ids: List[str]
    amount: Union[int, float]
    items: List[DebtItem]
    created_at: str
    updated_at: str
    note: str = ''
    status: DebtStatus = DebtStatus.PENDIENTE
    paid_at: Optional[str] = None
    cashflow_entry_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'clientId': self.client_id,
            'orderIds': list(self.order_ids),
            'amount': as_number(self.amount),
            'status': self.status.value if isinstance(self.status, Enum) else self.status,
            'note': self.note,
            'items': [item.to_dict() for item in self.items],
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'paidAt': self.paid_at,
            'cashflowEntryId': self.cashflow_entry_id,
        }


# ==============================================================================
# FLUJO DE CAJA Y ACTIVIDAD
# ==============================================================================

@dataclass
class CashflowEntry:
    """
    Movimiento de caja (ingreso o egreso).

    Attributes:
        amount: Monto (> 0)
        date: Fecha del movimiento (ingresada por el usuario o ahora)
        payment_method: efectivo / transferencia / otro
    """
    id: str
    type: CashflowType
    amount: Union[int, float]
    date: str
    created_at: str
    category: str = ''
    description: str = ''
    payment_method: PaymentMethod = PaymentMethod.OTRO

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type.value if isinstance(self.type, Enum) else self.type,
            'amount': as_number(self.amount),
            'category': self.category,
            'description': self.description,
            'date': self.date,
            'createdAt': self.created_at,
            'paymentMethod': (
                self.payment_method.value
                if isinstance(self.payment_method, Enum) else self.payment_method
            ),
        }


@dataclass
class ActivityEntry:
    """Evento del registro de actividad (texto en español, legible)."""
    id: str
    title: str
    detail: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'detail': self.detail,
            'createdAt': self.created_at,
        }
