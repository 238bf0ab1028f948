# ==============================================================================
# SERVICIO DE ACTIVIDAD
# ==============================================================================
# Centraliza el registro de actividad del negocio.
# Formatea mensajes humanizados en español y mantiene solo los últimos 30.
#
# REGLA: toda mutación registra exactamente una entrada (salvo la
# cancelación de pedidos, que registra una por pedido eliminado).
# ==============================================================================

from typing import Any, Dict, List, Optional, Union

from inventario.models import ActivityEntry, MAX_ACTIVITIES
from inventario.repositories import Document
from inventario.services.clock import Clock, IdGenerator


def format_clp(amount: Union[int, float]) -> str:
    """
    Formatea un monto al estilo es-CL: separador de miles '.', decimales ','.

    >>> format_clp(1500)
    '$1.500'
    >>> format_clp(1234.5)
    '$1.234,5'
    """
    value = float(amount or 0)
    negative = value < 0
    value = round(abs(value), 3)
    integer = int(value)
    decimals = round(value - integer, 3)
    text = f"{integer:,}".replace(',', '.')
    if decimals:
        frac = f"{decimals:.3f}"[2:].rstrip('0')
        text = f"{text},{frac}"
    return f"-${text}" if negative else f"${text}"


def _plural(count: int, singular: str, plural: str = None) -> str:
    return singular if count == 1 else (plural or singular + 's')


def _client_parts(client: Optional[Dict[str, Any]]) -> List[str]:
    parts = []
    if client:
        parts.append(client.get('nombreCompleto') or 'Cliente')
        if client.get('comuna'):
            parts.append(client['comuna'])
    return parts


class ActivityService:
    """
    Servicio para el registro de actividad.

    Todas las funciones log_* escriben sobre el borrador del documento que
    se está mutando: la entrada se persiste junto con el cambio o no se
    persiste en absoluto.
    """

    def __init__(self, clock: Clock, id_generator: IdGenerator):
        self.clock = clock
        self.id_generator = id_generator

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def record(self, draft: Document, title: str, detail: str) -> Dict[str, Any]:
        """
        Agrega una entrada al inicio del registro y recorta a MAX_ACTIVITIES.

        Args:
            draft: Borrador del documento
            title: Título corto
            detail: Detalle legible

        Returns:
            Entrada creada
        """
        entry = ActivityEntry(
            id=self.id_generator.new_id(),
            title=title,
            detail=detail,
            created_at=self.clock.now_iso(),
        ).to_dict()
        activities = draft.setdefault('activities', [])
        activities.insert(0, entry)
        if len(activities) > MAX_ACTIVITIES:
            del activities[MAX_ACTIVITIES:]
        return entry

    # =========================================================================
    # CATÁLOGO
    # =========================================================================

    def log_product_created(self, draft: Document, product: Dict[str, Any]) -> None:
        self.record(draft, f"Producto creado: {product['name']}", 'Nuevo producto agregado al inventario')

    def log_product_updated(self, draft: Document, product: Dict[str, Any]) -> None:
        self.record(draft, f"Producto actualizado: {product['name']}", 'Se actualizaron detalles del producto.')

    def log_price_updated(self, draft: Document, product: Dict[str, Any]) -> None:
        self.record(
            draft,
            f"Precio actualizado: {product['name']}",
            f"Nuevo precio unidad {format_clp(product['unitPrice'])}",
        )

    def log_product_deleted(
        self,
        draft: Document,
        product: Dict[str, Any],
        adjusted_orders: List[str],
        removed_orders: List[str]
    ) -> None:
        detail_parts = []
        if adjusted_orders:
            detail_parts.append(f"{len(adjusted_orders)} pedidos actualizados")
        if removed_orders:
            detail_parts.append(f"{len(removed_orders)} pedidos eliminados")
        self.record(
            draft,
            f"Producto eliminado: {product['name']}",
            ' · '.join(detail_parts) if detail_parts else 'Producto removido del inventario',
        )

    def log_price_override(
        self,
        draft: Document,
        product_name: str,
        comuna: str,
        price: Union[int, float]
    ) -> None:
        self.record(
            draft,
            'Precio por comuna actualizado',
            f"{product_name} · {comuna} → {format_clp(price)}",
        )

    # =========================================================================
    # CLIENTES
    # =========================================================================

    def log_client_added(self, draft: Document, client: Dict[str, Any]) -> None:
        day = client.get('diaReparto')
        self.record(
            draft,
            f"Cliente agregado: {client['nombreCompleto']}",
            f"{client['comuna']} · {client['telefono']}" + (f" · Entrega {day}" if day else ''),
        )

    def log_client_updated(self, draft: Document, client: Dict[str, Any]) -> None:
        self.record(
            draft,
            f"Cliente actualizado: {client.get('nombreCompleto', '')}",
            f"{client.get('comuna') or 'Sin comuna'} · {client.get('telefono') or 'Sin teléfono'}",
        )

    def log_client_deleted(self, draft: Document, client: Dict[str, Any]) -> None:
        self.record(
            draft,
            f"Cliente eliminado: {client.get('nombreCompleto', '')}",
            f"{client.get('comuna') or 'Sin comuna'} · {client.get('telefono') or 'Sin teléfono'}",
        )

    # =========================================================================
    # PEDIDOS
    # =========================================================================

    def log_order_created(self, draft: Document, order: Dict[str, Any], client: Optional[Dict[str, Any]]) -> None:
        count = len(order['items'])
        self.record(
            draft,
            f"Pedido creado: {order['id']}",
            f"{client['nombreCompleto']} · {count} ítems" if client else 'Pedido registrado',
        )

    def log_order_updated(self, draft: Document, order: Dict[str, Any], client: Optional[Dict[str, Any]]) -> None:
        count = len(order['items'])
        self.record(
            draft,
            f"Pedido actualizado: {order['id']}",
            f"{client['nombreCompleto']} · {count} ítems" if client else f"Pedido {order['id']} actualizado",
        )

    def log_order_delivered(
        self,
        draft: Document,
        order: Dict[str, Any],
        client: Optional[Dict[str, Any]],
        delivered_count: int
    ) -> None:
        parts = _client_parts(client)
        parts.append(f"Pedido {order['id']}")
        parts.append(f"{delivered_count} {_plural(delivered_count, 'producto')} entregado{'' if delivered_count == 1 else 's'}")
        self.record(draft, f"Pedido entregado: {order['id']}", ' · '.join(parts))

    def log_order_cancelled(self, draft: Document, order: Dict[str, Any], client: Optional[Dict[str, Any]]) -> None:
        parts = _client_parts(client)
        parts.append(f"Pedido {order['id']}")
        self.record(draft, f"Pedido cancelado: {order['id']}", ' · '.join(parts))

    # =========================================================================
    # DEUDAS Y CAJA
    # =========================================================================

    def log_debt_created(self, draft: Document, debt: Dict[str, Any], client: Optional[Dict[str, Any]]) -> None:
        name = (client or {}).get('nombreCompleto') or 'Cliente'
        orders = len(debt['orderIds'])
        self.record(
            draft,
            f"Deuda registrada: {name}",
            f"{format_clp(debt['amount'])} · {orders} {_plural(orders, 'pedido')}",
        )

    def log_debt_paid(
        self,
        draft: Document,
        debt: Dict[str, Any],
        client: Optional[Dict[str, Any]],
        method: str
    ) -> None:
        name = (client or {}).get('nombreCompleto') or 'Cliente'
        self.record(draft, f"Deuda pagada: {name}", f"{format_clp(debt['amount'])} · {method}")

    def log_cashflow_recorded(self, draft: Document, entry: Dict[str, Any]) -> None:
        label = 'Ingreso' if entry['type'] == 'ingreso' else 'Egreso'
        self.record(
            draft,
            f"{label} registrado",
            f"{entry['category'] or 'Sin categoría'} · {format_clp(entry['amount'])}",
        )

    def log_cashflow_deleted(self, draft: Document, entry: Dict[str, Any]) -> None:
        label = 'Ingreso' if entry.get('type') == 'ingreso' else 'Egreso'
        self.record(
            draft,
            f"{label} eliminado",
            f"{entry.get('category') or 'Sin categoría'} · {format_clp(entry.get('amount', 0))}",
        )
