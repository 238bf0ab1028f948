# ==============================================================================
# SERVICIO DE PEDIDOS
# ==============================================================================
# Ciclo de vida de pedidos a nivel de línea.
#
# FLUJO:
# 1. Crear pedido → todas las líneas 'pendiente'
# 2. Entregar (total o parcial) → líneas 'entregado'
# 3. Pasar a deuda (ver DebtService) → líneas 'deuda'
# 4. Pagar deuda → líneas 'deuda' pasan a 'entregado'
#
# El estado del pedido NUNCA se asigna a mano: siempre se recalcula desde
# las líneas con recompute_order_status().
# ==============================================================================

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Tuple

from inventario.logger import get_logger
from inventario.models import (
    LineStatus,
    OrderStatus,
    Order,
    OrderLine,
    derive_order_status,
    to_number,
    as_number,
)
from inventario.performance_logger import profile_function
from inventario.repositories import Document, IDocumentStore
from inventario.services.activity_service import ActivityService
from inventario.services.clock import Clock, IdGenerator
from inventario.services.errors import InvalidStateError, NotFoundError, ValidationError
from inventario.services.pricing_service import PricingService

log = get_logger('orders')

# orderId → set de lineIds, o None para "todas las líneas pendientes"
Selection = Dict[str, Optional[set]]

_LEGACY_STATUS = {
    OrderStatus.COMPLETADO.value: LineStatus.ENTREGADO.value,
    OrderStatus.DEUDA.value: LineStatus.DEUDA.value,
}
_LINE_STATUSES = {status.value for status in LineStatus}


# ==============================================================================
# FUNCIONES DE APOYO (compartidas con deudas y reportes)
# ==============================================================================

def find_by_id(records: Iterable[Dict[str, Any]], record_id: Any) -> Optional[Dict[str, Any]]:
    """Primer registro con ese id, o None."""
    return next((r for r in records if r.get('id') == record_id), None)


def parse_quantity(item: Dict[str, Any]) -> Optional[float]:
    """Cantidad de un ítem (acepta el alias 'quantity'). None si no es > 0."""
    raw = item.get('cantidad')
    if raw is None:
        raw = item.get('quantity')
    quantity = to_number(raw)
    if quantity is None or quantity <= 0:
        return None
    return quantity


def normalize_order(order: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normaliza un pedido guardado antes del seguimiento por línea.

    - lineId faltante → '<orderId>-<n>' (estable entre lecturas)
    - status faltante o desconocido → heredado del estado del pedido
    - 'quantity' → 'cantidad'

    Args:
        order: Pedido (se modifica en el lugar)

    Returns:
        El mismo pedido
    """
    items = order.get('items')
    if not isinstance(items, list):
        order['items'] = []
        return order

    inherited = _LEGACY_STATUS.get(order.get('estado'), LineStatus.PENDIENTE.value)
    used_ids = {item.get('lineId') for item in items if isinstance(item, dict)}
    normalized = []

    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            continue
        if not item.get('lineId'):
            line_id = f"{order.get('id')}-{index}"
            while line_id in used_ids:
                line_id += 'b'
            used_ids.add(line_id)
            item['lineId'] = line_id
        if item.get('status') not in _LINE_STATUSES:
            item['status'] = inherited
        if 'cantidad' not in item and 'quantity' in item:
            item['cantidad'] = item.pop('quantity')
        quantity = to_number(item.get('cantidad'))
        item['cantidad'] = as_number(quantity) if quantity is not None else 0
        normalized.append(item)

    order['items'] = normalized
    return order


def recompute_order_status(order: Dict[str, Any], now: str) -> OrderStatus:
    """
    Recalcula el estado del pedido desde sus líneas.

    deliveredAt se fija a `now` cuando el pedido pasa a completado y se
    limpia si vuelve a pendiente. Pasar a deuda no lo modifica.

    Args:
        order: Pedido (ya normalizado)
        now: Timestamp de la mutación

    Returns:
        Estado resultante
    """
    previous = order.get('estado')
    status = derive_order_status(item.get('status') for item in order.get('items', []))
    order['estado'] = status.value

    if status == OrderStatus.COMPLETADO:
        if previous != OrderStatus.COMPLETADO.value or not order.get('deliveredAt'):
            order['deliveredAt'] = now
    elif status == OrderStatus.PENDIENTE:
        order['deliveredAt'] = None
    return status


def parse_selections(entries: Any, id_key: str = 'orderId') -> Selection:
    """
    Agrupa selecciones [{orderId, lineIds?}] por pedido.

    Varias entradas para el mismo pedido se combinan; una entrada sin lineIds
    ("todas") absorbe cualquier lista parcial.

    Args:
        entries: Lista de selecciones tal como llega en la petición
        id_key: Clave del id de pedido dentro de cada selección

    Returns:
        OrderedDict orderId → set(lineIds) | None
    """
    selection: Selection = OrderedDict()
    if not isinstance(entries, list):
        return selection

    for entry in entries:
        if not isinstance(entry, dict):
            continue
        order_id = entry.get(id_key)
        if not isinstance(order_id, str) or not order_id.strip():
            continue
        order_id = order_id.strip()
        line_ids = entry.get('lineIds')

        if not isinstance(line_ids, list):
            selection[order_id] = None
            continue
        if order_id in selection and selection[order_id] is None:
            continue
        requested = {lid for lid in line_ids if isinstance(lid, str) and lid}
        selection.setdefault(order_id, set()).update(requested)

    return selection


def selection_from_order_ids(order_ids: Any) -> Selection:
    """Forma heredada: lista de ids de pedido, todas sus líneas pendientes."""
    selection: Selection = OrderedDict()
    if isinstance(order_ids, list):
        for order_id in order_ids:
            if isinstance(order_id, str) and order_id.strip():
                selection[order_id.strip()] = None
    return selection


def pending_lines(order: Dict[str, Any], line_ids: Optional[set]) -> List[Dict[str, Any]]:
    """Líneas pendientes del pedido, filtradas por lineIds si se entregan."""
    return [
        item for item in order.get('items', [])
        if item.get('status') == LineStatus.PENDIENTE.value
        and (line_ids is None or item.get('lineId') in line_ids)
    ]


class OrderService:
    """
    Servicio para gestión de pedidos.

    Responsabilidades:
    - Crear y editar pedidos
    - Entregas totales o parciales por línea
    - Cancelación de pedidos pendientes
    - Normalización de pedidos legacy
    """

    def __init__(
        self,
        document_repo: IDocumentStore,
        clock: Clock,
        id_generator: IdGenerator,
        activity_service: ActivityService,
        pricing_service: PricingService
    ):
        self.document_repo = document_repo
        self.clock = clock
        self.id_generator = id_generator
        self.activity_service = activity_service
        self.pricing_service = pricing_service

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def list_orders(self) -> List[Dict[str, Any]]:
        """Todos los pedidos, normalizados y con su estado recalculado."""
        doc = self.document_repo.read_document()
        orders = []
        for order in doc['orders']:
            normalize_order(order)
            order['estado'] = derive_order_status(i['status'] for i in order['items']).value
            orders.append(order)
        return orders

    # =========================================================================
    # CREAR / EDITAR
    # =========================================================================

    def _build_lines(self, items: List[Any], product_ids: Optional[set] = None) -> List[OrderLine]:
        lines = []
        for item in items:
            if not isinstance(item, dict):
                continue
            product_id = item.get('productId')
            quantity = parse_quantity(item)
            if not product_id or quantity is None:
                continue
            if product_ids is not None and product_id not in product_ids:
                continue
            lines.append(OrderLine(
                line_id=self.id_generator.new_id(),
                product_id=product_id,
                cantidad=as_number(quantity),
            ))
        return lines

    @profile_function
    def create_order(self, cliente_id: Any, items: Any) -> Tuple[Dict[str, Any], int]:
        """
        Crea un pedido con todas sus líneas pendientes.

        Los ítems inválidos se descartan en silencio; si no queda ninguno
        la operación falla.

        Args:
            cliente_id: Cliente del pedido
            items: Lista de {productId, cantidad}

        Returns:
            Tupla (pedido, total de pedidos)

        Raises:
            ValidationError: Falta el cliente o no hay ítems válidos
        """
        if not cliente_id or not isinstance(items, list) or not items:
            raise ValidationError('clienteId y items son requeridos')

        lines = self._build_lines(items)
        if not lines:
            raise ValidationError('items deben incluir cantidades válidas')

        now = self.clock.now_iso()
        order = Order(
            id=self.id_generator.new_id(),
            cliente_id=cliente_id,
            created_at=now,
            items=lines,
        ).to_dict()

        def apply(draft: Document) -> Document:
            draft['orders'].append(order)
            client = find_by_id(draft['clients'], cliente_id)
            self.activity_service.log_order_created(draft, order, client)
            return draft

        data = self.document_repo.mutate(apply)
        log.info("Pedido %s creado (%d líneas)", order['id'], len(lines))
        return order, len(data['orders'])

    @profile_function
    def update_order(self, order_id: str, cliente_id: Any = None, items: Any = None) -> Dict[str, Any]:
        """
        Edita un pedido que aún no está completado.

        Reemplazar los ítems reinicia TODAS las líneas a 'pendiente' con
        lineIds nuevos; el avance de entregas/deudas de esas líneas se pierde.

        Args:
            order_id: Pedido a editar
            cliente_id: Nuevo cliente (debe existir)
            items: Nueva lista de ítems (productos existentes)

        Returns:
            Pedido actualizado

        Raises:
            ValidationError: Nada que actualizar, cliente o ítems inválidos
            NotFoundError: El pedido no existe
            InvalidStateError: El pedido está completado
        """
        if cliente_id is None and not isinstance(items, list):
            raise ValidationError('Debes especificar campos para actualizar')

        def apply(draft: Document) -> Document:
            order = find_by_id(draft['orders'], order_id)
            if order is None:
                raise NotFoundError('Pedido no encontrado')

            now = self.clock.now_iso()
            normalize_order(order)
            if recompute_order_status(order, now) == OrderStatus.COMPLETADO:
                raise InvalidStateError('No se pueden editar pedidos completados')

            if cliente_id:
                if find_by_id(draft['clients'], cliente_id) is None:
                    raise ValidationError('Cliente no válido')
                order['clienteId'] = cliente_id

            if isinstance(items, list):
                product_ids = {p.get('id') for p in draft['products']}
                lines = self._build_lines(items, product_ids)
                if not lines:
                    raise ValidationError('Debes incluir al menos un producto válido')
                order['items'] = [line.to_dict() for line in lines]
                recompute_order_status(order, now)

            order['updatedAt'] = now
            client = find_by_id(draft['clients'], order['clienteId'])
            self.activity_service.log_order_updated(draft, order, client)
            return draft

        data = self.document_repo.mutate(apply)
        return find_by_id(data['orders'], order_id)

    # =========================================================================
    # CANCELAR
    # =========================================================================

    @profile_function
    def cancel_orders(self, order_ids: Any) -> Tuple[List[str], int]:
        """
        Elimina pedidos pendientes.

        Los pedidos completados o en deuda y los ids desconocidos se omiten.

        Args:
            order_ids: Lista de ids

        Returns:
            Tupla (ids eliminados, total de pedidos restantes)

        Raises:
            ValidationError: Lista vacía o ningún pedido cancelable
        """
        if not isinstance(order_ids, list) or not order_ids:
            raise ValidationError('orderIds debe ser un arreglo con al menos un id')

        ids = set(order_ids)
        removed: List[str] = []

        def apply(draft: Document) -> Document:
            remaining = []
            for order in draft['orders']:
                if order.get('id') not in ids:
                    remaining.append(order)
                    continue
                normalize_order(order)
                status = derive_order_status(item['status'] for item in order['items'])
                if status != OrderStatus.PENDIENTE:
                    remaining.append(order)
                    continue
                removed.append(order['id'])
                client = find_by_id(draft['clients'], order.get('clienteId'))
                self.activity_service.log_order_cancelled(draft, order, client)

            if not removed:
                raise ValidationError('No se encontraron pedidos pendientes para cancelar')
            draft['orders'] = remaining
            return draft

        data = self.document_repo.mutate(apply)
        log.info("Pedidos cancelados: %s", ', '.join(removed))
        return removed, len(data['orders'])

    # =========================================================================
    # ENTREGAS
    # =========================================================================

    @profile_function(name='OrderService.mark_delivered')
    def mark_delivered(self, deliveries: Any = None, order_ids: Any = None) -> Dict[str, Any]:
        """
        Marca como entregadas líneas pendientes.

        El monto entregado NO se registra en caja aquí: quien llama debe
        registrar el ingreso por separado.

        Args:
            deliveries: [{orderId, lineIds?}] (sin lineIds = todas las pendientes)
            order_ids: Forma heredada, lista de ids de pedido

        Returns:
            {deliveredItems, totalAmount, updatedOrders, ordersTotal}

        Raises:
            ValidationError: Sin pedidos o ninguna línea pendiente entregada
        """
        selection = parse_selections(deliveries) if deliveries is not None else selection_from_order_ids(order_ids)
        if not selection:
            raise ValidationError('Debes indicar al menos un pedido a entregar')

        delivered_items: List[Dict[str, Any]] = []
        updated_orders: List[str] = []

        def apply(draft: Document) -> Document:
            now = self.clock.now_iso()
            for order_id, line_ids in selection.items():
                order = find_by_id(draft['orders'], order_id)
                if order is None:
                    continue
                normalize_order(order)
                client = find_by_id(draft['clients'], order.get('clienteId'))

                lines = pending_lines(order, line_ids)
                for line in lines:
                    product = find_by_id(draft['products'], line['productId'])
                    unit_price = self.pricing_service.price_for_client(
                        draft, product or {'id': line['productId']}, client
                    )
                    line['status'] = LineStatus.ENTREGADO.value
                    delivered_items.append({
                        'orderId': order['id'],
                        'lineId': line['lineId'],
                        'productId': line['productId'],
                        'productName': (product or {}).get('name', ''),
                        'quantity': line['cantidad'],
                        'unitPrice': unit_price,
                        'subtotal': as_number(float(line['cantidad']) * float(unit_price)),
                        'clientId': order.get('clienteId'),
                    })

                recompute_order_status(order, now)
                if lines:
                    order['updatedAt'] = now
                    updated_orders.append(order['id'])
                    self.activity_service.log_order_delivered(draft, order, client, len(lines))

            if not delivered_items:
                raise ValidationError('No hay productos pendientes para entregar')
            return draft

        data = self.document_repo.mutate(apply)
        total = as_number(float(sum(item['subtotal'] for item in delivered_items)))
        log.info("Entregadas %d líneas en %d pedidos", len(delivered_items), len(updated_orders))
        return {
            'deliveredItems': delivered_items,
            'totalAmount': total,
            'updatedOrders': updated_orders,
            'ordersTotal': len(data['orders']),
        }
