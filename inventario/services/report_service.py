# ==============================================================================
# SERVICIO DE REPORTES
# ==============================================================================
# Vistas de solo lectura: panel principal, clientes con pendientes e
# inventario. Nunca modifican el documento.
# ==============================================================================

from collections import OrderedDict
from typing import Any, Dict, List

from inventario.models import (
    LineStatus,
    OrderStatus,
    derive_order_status,
    as_number,
    normalize_unit,
)
from inventario.performance_logger import profile_function
from inventario.repositories import IDocumentStore
from inventario.services.catalog_service import normalize_product
from inventario.services.clock import Clock
from inventario.services.order_service import find_by_id, normalize_order
from inventario.services.pricing_service import PricingService


class ReportService:
    """
    Servicio de reportes y métricas.

    Todos los precios mostrados pasan por PricingService, igual que al
    entregar o crear deudas.
    """

    def __init__(self, document_repo: IDocumentStore, clock: Clock, pricing_service: PricingService):
        self.document_repo = document_repo
        self.clock = clock
        self.pricing_service = pricing_service

    # =========================================================================
    # PANEL PRINCIPAL
    # =========================================================================

    def dashboard(self) -> Dict[str, Any]:
        """
        Returns:
            {metrics, products, activities, pricing, settings}
        """
        doc = self.document_repo.read_document()
        open_orders = 0
        for order in doc['orders']:
            normalize_order(order)
            if derive_order_status(i['status'] for i in order['items']) == OrderStatus.PENDIENTE:
                open_orders += 1

        return {
            'metrics': {
                'productosActivos': len(doc['products']),
                'pedidosPendientes': open_orders,
                'clientesActivos': len(doc['clients']),
            },
            'products': [normalize_product(p) for p in doc['products']],
            'activities': doc['activities'],
            'pricing': self.pricing_service.get_pricing(doc),
            'settings': doc['settings'],
        }

    # =========================================================================
    # CLIENTES CON PENDIENTES
    # =========================================================================

    @profile_function(name='ReportService.pending_clients')
    def pending_clients(self) -> Dict[str, Any]:
        """
        Agrupa por cliente todas las líneas pendientes de sus pedidos.

        Se omiten los pedidos sin líneas pendientes, los de clientes
        eliminados y las líneas de productos eliminados.

        Returns:
            {clients: [...], generatedAt} ordenado por totalAmount descendente
        """
        doc = self.document_repo.read_document()
        grouped: Dict[str, Dict[str, Any]] = OrderedDict()

        for order in doc['orders']:
            client = find_by_id(doc['clients'], order.get('clienteId'))
            if client is None:
                continue
            normalize_order(order)

            order_items: List[Dict[str, Any]] = []
            for line in order['items']:
                if line['status'] != LineStatus.PENDIENTE.value:
                    continue
                product = find_by_id(doc['products'], line['productId'])
                if product is None:
                    continue
                price = self.pricing_service.price_for_client(doc, product, client)
                order_items.append({
                    'lineId': line['lineId'],
                    'productId': product['id'],
                    'product': {
                        'id': product['id'],
                        'name': product.get('name', ''),
                        'unitPrice': price,
                        'unit': normalize_unit(product.get('unit')),
                    },
                    'quantity': line['cantidad'],
                    'unitPrice': price,
                    'subtotal': as_number(float(line['cantidad']) * float(price)),
                })

            if not order_items:
                continue

            entry = grouped.setdefault(client['id'], {
                'client': client,
                'products': OrderedDict(),
                'totalAmount': 0.0,
                'orderIds': [],
                'latestOrderAt': None,
                'orders': [],
            })
            for item in order_items:
                product_entry = entry['products'].setdefault(item['productId'], {
                    'product': item['product'],
                    'quantity': 0.0,
                    'subtotal': 0.0,
                })
                product_entry['quantity'] += float(item['quantity'])
                product_entry['subtotal'] += float(item['subtotal'])
                entry['totalAmount'] += float(item['subtotal'])

            entry['orderIds'].append(order['id'])
            created_at = order.get('createdAt')
            if created_at and (entry['latestOrderAt'] is None or created_at > entry['latestOrderAt']):
                entry['latestOrderAt'] = created_at
            entry['orders'].append({
                'orderId': order['id'],
                'createdAt': created_at,
                'items': order_items,
            })

        clients = []
        for entry in grouped.values():
            products = sorted(
                (
                    {
                        'product': p['product'],
                        'quantity': as_number(p['quantity']),
                        'subtotal': as_number(p['subtotal']),
                    }
                    for p in entry['products'].values()
                ),
                key=lambda p: p['subtotal'],
                reverse=True,
            )
            clients.append({
                'client': entry['client'],
                'products': products,
                'totalAmount': as_number(entry['totalAmount']),
                'totalUnits': as_number(float(sum(p['quantity'] for p in products))),
                'orderIds': entry['orderIds'],
                'orderCount': len(entry['orderIds']),
                'latestOrderAt': entry['latestOrderAt'],
                'orders': entry['orders'],
            })

        clients.sort(key=lambda c: c['totalAmount'], reverse=True)
        return {'clients': clients, 'generatedAt': self.clock.now_iso()}

    # =========================================================================
    # INVENTARIO
    # =========================================================================

    def inventory_report(self) -> Dict[str, Any]:
        """
        Returns:
            {generatedAt, totals: {totalProducts}, rows}
        """
        doc = self.document_repo.read_document()
        rows = [
            {
                'id': p.get('id'),
                'name': p.get('name'),
                'unitPrice': p.get('unitPrice'),
                'category': p.get('category'),
                'unit': normalize_unit(p.get('unit')),
            }
            for p in doc['products']
        ]
        return {
            'generatedAt': self.clock.now_iso(),
            'totals': {'totalProducts': len(rows)},
            'rows': rows,
        }
