# ==============================================================================
# SERVICIO DE DEUDAS
# ==============================================================================
# Convierte líneas pendientes en una deuda del cliente y luego la cobra.
#
# FLUJO:
# 1. create_debt → líneas seleccionadas pasan a 'deuda', se guarda un
#    snapshot de precio y cantidad agregado por producto
# 2. pay_debt → ingreso "Cobranza" en caja, deuda 'pagada', líneas en
#    'deuda' de sus pedidos pasan a 'entregado'
#
# Una deuda nunca recalcula precios después de creada.
# ==============================================================================

from collections import OrderedDict
from typing import Any, Dict

from inventario.logger import get_logger
from inventario.models import (
    Debt,
    DebtItem,
    DebtStatus,
    LineStatus,
    OrderStatus,
    PaymentMethod,
    clean_text,
    normalize_unit,
)
from inventario.performance_logger import profile_function
from inventario.repositories import Document, IDocumentStore
from inventario.services.activity_service import ActivityService
from inventario.services.cashflow_service import CashflowService, compute_summary
from inventario.services.clock import Clock, IdGenerator
from inventario.services.errors import InvalidStateError, NotFoundError, ValidationError
from inventario.services.order_service import (
    find_by_id,
    normalize_order,
    parse_selections,
    pending_lines,
    recompute_order_status,
    selection_from_order_ids,
)
from inventario.services.pricing_service import PricingService

log = get_logger('debts')

DEBT_PAYMENT_CATEGORY = 'Cobranza'


class DebtService:
    """
    Servicio del libro de deudas.

    Responsabilidades:
    - Crear deudas desde líneas pendientes (todo o nada)
    - Cobrar deudas generando el ingreso en caja
    - Listar deudas con su cliente
    """

    def __init__(
        self,
        document_repo: IDocumentStore,
        clock: Clock,
        id_generator: IdGenerator,
        activity_service: ActivityService,
        pricing_service: PricingService,
        cashflow_service: CashflowService
    ):
        self.document_repo = document_repo
        self.clock = clock
        self.id_generator = id_generator
        self.activity_service = activity_service
        self.pricing_service = pricing_service
        self.cashflow_service = cashflow_service

    def list_debts(self) -> Dict[str, Any]:
        """
        Deudas más recientes primero, cada una con su cliente embebido
        (None si el cliente fue eliminado).
        """
        doc = self.document_repo.read_document()
        debts = []
        for debt in sorted(doc['debts'], key=lambda d: d.get('createdAt') or '', reverse=True):
            debts.append({**debt, 'client': find_by_id(doc['clients'], debt.get('clientId'))})
        return {'debts': debts, 'generatedAt': self.clock.now_iso()}

    @profile_function(name='DebtService.create_debt')
    def create_debt(
        self,
        client_id: Any,
        selections: Any = None,
        order_ids: Any = None,
        note: Any = ''
    ) -> Dict[str, Any]:
        """
        Crea una deuda desde líneas pendientes.

        Las selecciones por línea tienen prioridad sobre la lista heredada de
        pedidos. Cualquier pedido inválido aborta toda la operación.

        Args:
            client_id: Cliente deudor
            selections: [{orderId, lineIds?}]
            order_ids: Forma heredada, pedidos completos
            note: Nota opcional

        Returns:
            Deuda creada

        Raises:
            ValidationError: Datos faltantes, pedido de otro cliente o monto no positivo
            NotFoundError: Cliente o pedido inexistente
            InvalidStateError: Pedido no pendiente o selección desactualizada
        """
        if not isinstance(client_id, str) or not client_id.strip():
            raise ValidationError('clientId es requerido')
        client_id = client_id.strip()

        if isinstance(selections, list) and selections:
            selection = parse_selections(selections)
        else:
            selection = selection_from_order_ids(order_ids)
        if not selection:
            raise ValidationError('Debes seleccionar al menos un pedido pendiente')

        created: Dict[str, Any] = {}

        def apply(draft: Document) -> Document:
            now = self.clock.now_iso()
            client = find_by_id(draft['clients'], client_id)
            if client is None:
                raise NotFoundError('Cliente no encontrado')

            # Validar todos los pedidos antes de tocar cualquiera
            orders = []
            for order_id in selection:
                order = find_by_id(draft['orders'], order_id)
                if order is None:
                    raise NotFoundError(f"Pedido {order_id} no encontrado")
                if order.get('clienteId') != client_id:
                    raise ValidationError(f"El pedido {order_id} no pertenece al cliente")
                normalize_order(order)
                if recompute_order_status(order, now) != OrderStatus.PENDIENTE:
                    raise InvalidStateError(f"El pedido {order_id} no está pendiente")
                orders.append(order)

            aggregated: Dict[str, DebtItem] = OrderedDict()
            for order in orders:
                lines = pending_lines(order, selection[order['id']])
                if not lines:
                    raise InvalidStateError(
                        f"La selección del pedido {order['id']} ya no está pendiente; actualiza el listado"
                    )
                for line in lines:
                    product_id = line['productId']
                    product = find_by_id(draft['products'], product_id) or {'id': product_id}
                    price = self.pricing_service.price_for_client(draft, product, client)
                    quantity = float(line['cantidad'])

                    item = aggregated.get(product_id)
                    if item is None:
                        item = DebtItem(
                            product_id=product_id,
                            name=product.get('name', ''),
                            unit=normalize_unit(product.get('unit')),
                            unit_price=price,
                        )
                        aggregated[product_id] = item
                    item.quantity += quantity
                    item.subtotal += quantity * float(price)
                    line['status'] = LineStatus.DEUDA.value

            items = list(aggregated.values())
            amount = sum(float(item.subtotal) for item in items)
            if not items or amount <= 0:
                raise ValidationError('El monto de la deuda debe ser mayor a 0')

            debt = Debt(
                id=self.id_generator.new_id(),
                client_id=client_id,
                order_ids=[order['id'] for order in orders],
                amount=amount,
                items=items,
                created_at=now,
                updated_at=now,
                note=clean_text(note),
            ).to_dict()
            draft['debts'].append(debt)

            for order in orders:
                recompute_order_status(order, now)
                order['debtId'] = debt['id']
                order['updatedAt'] = now
                if not order.get('deliveredAt'):
                    order['deliveredAt'] = now

            self.activity_service.log_debt_created(draft, debt, client)
            created.update(debt)
            return draft

        self.document_repo.mutate(apply)
        log.info("Deuda %s creada por %s", created['id'], created['amount'])
        return created

    @profile_function(name='DebtService.pay_debt')
    def pay_debt(self, debt_id: str, payment_method: Any = None) -> Dict[str, Any]:
        """
        Cobra una deuda pendiente.

        Un segundo cobro de la misma deuda se rechaza.

        Args:
            debt_id: Deuda a cobrar
            payment_method: efectivo / transferencia / otro

        Returns:
            {debt, entry, summary}

        Raises:
            NotFoundError: La deuda no existe
            InvalidStateError: La deuda ya está pagada
        """
        method = PaymentMethod.normalize(payment_method)
        result: Dict[str, Any] = {}

        def apply(draft: Document) -> Document:
            debt = find_by_id(draft['debts'], debt_id)
            if debt is None:
                raise NotFoundError('Deuda no encontrada')
            if debt.get('status') == DebtStatus.PAGADA.value:
                raise InvalidStateError('La deuda ya fue pagada')

            client = find_by_id(draft['clients'], debt.get('clientId'))
            client_name = (client or {}).get('nombreCompleto') or 'cliente'
            entry = self.cashflow_service.build_entry(
                'ingreso',
                debt.get('amount'),
                category=DEBT_PAYMENT_CATEGORY,
                description=f"Pago deuda {client_name}",
                payment_method=method.value,
            )
            draft['cashflow'].append(entry)

            now = entry['createdAt']
            debt['status'] = DebtStatus.PAGADA.value
            debt['paidAt'] = now
            debt['updatedAt'] = now
            debt['cashflowEntryId'] = entry['id']

            for order_id in debt.get('orderIds', []):
                order = find_by_id(draft['orders'], order_id)
                if order is None:
                    continue
                normalize_order(order)
                for item in order['items']:
                    if item['status'] == LineStatus.DEUDA.value:
                        item['status'] = LineStatus.ENTREGADO.value
                recompute_order_status(order, now)
                order['updatedAt'] = now

            self.activity_service.log_debt_paid(draft, debt, client, method.value)
            result['debt'] = debt
            result['entry'] = entry
            return draft

        data = self.document_repo.mutate(apply)
        result['summary'] = compute_summary(data['cashflow'])
        log.info("Deuda %s pagada (%s)", debt_id, method.value)
        return result
