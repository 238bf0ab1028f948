import pytest

from inventario.services import ValidationError


@pytest.fixture
def two_line_order(make_product, make_client, make_order):
    tomates = make_product('Tomates', 100)
    paltas = make_product('Paltas', 50)
    client = make_client()
    order = make_order(client, (tomates, 2), (paltas, 3))
    return order, tomates, paltas


def test_delivery_uses_commune_price(container, make_product, make_client, make_order, get_order):
    """Producto a 100, comuna X con precio general 80: 3 unidades → 240."""
    product = make_product('Caja', 100)
    container.pricing_service.set_override('X', '__general__', 80)
    client = make_client(comuna='X')
    order = make_order(client, (product, 3))

    result = container.order_service.mark_delivered(deliveries=[{'orderId': order['id']}])

    item = result['deliveredItems'][0]
    assert item['unitPrice'] == 80
    assert item['subtotal'] == 240
    assert item['lineId'] == order['items'][0]['lineId']
    assert item['clientId'] == client['id']
    assert result['totalAmount'] == 240
    assert result['updatedOrders'] == [order['id']]
    assert result['ordersTotal'] == 1

    stored = get_order(order['id'])
    assert stored['estado'] == 'completado'
    assert stored['deliveredAt'] is not None
    # la entrega no registra caja
    assert container.document_repo.read_document()['cashflow'] == []


def test_product_override_beats_general_on_delivery(container, make_product, make_client, make_order):
    product = make_product('Caja', 100)
    container.pricing_service.set_override('X', '__general__', 80)
    container.pricing_service.set_override('X', product['id'], 70)
    client = make_client(comuna='X')
    order = make_order(client, (product, 2))

    result = container.order_service.mark_delivered(order_ids=[order['id']])

    assert result['deliveredItems'][0]['unitPrice'] == 70
    assert result['totalAmount'] == 140


def test_partial_delivery_keeps_order_pending(container, two_line_order, get_order):
    order, tomates, paltas = two_line_order
    first, second = order['items']

    result = container.order_service.mark_delivered(
        deliveries=[{'orderId': order['id'], 'lineIds': [first['lineId']]}]
    )

    assert result['totalAmount'] == 200
    stored = get_order(order['id'])
    assert [line['status'] for line in stored['items']] == ['entregado', 'pendiente']
    assert stored['estado'] == 'pendiente'
    assert stored['deliveredAt'] is None

    pending = container.report_service.pending_clients()['clients']
    assert len(pending) == 1
    assert [p['product']['id'] for p in pending[0]['products']] == [paltas['id']]
    assert pending[0]['orders'][0]['items'][0]['lineId'] == second['lineId']


def test_delivering_same_line_twice_fails_without_changes(container, two_line_order):
    order, _, _ = two_line_order
    line_id = order['items'][0]['lineId']
    container.order_service.mark_delivered(deliveries=[{'orderId': order['id'], 'lineIds': [line_id]}])
    before = container.document_repo.read_document()

    with pytest.raises(ValidationError) as exc:
        container.order_service.mark_delivered(deliveries=[{'orderId': order['id'], 'lineIds': [line_id]}])

    assert exc.value.message == 'No hay productos pendientes para entregar'
    assert container.document_repo.read_document() == before


def test_entry_without_line_ids_subsumes_partial_entries(container, two_line_order, get_order):
    order, _, _ = two_line_order
    first = order['items'][0]['lineId']

    result = container.order_service.mark_delivered(deliveries=[
        {'orderId': order['id'], 'lineIds': [first]},
        {'orderId': order['id']},
    ])

    assert len(result['deliveredItems']) == 2
    assert result['totalAmount'] == 350
    assert get_order(order['id'])['estado'] == 'completado'


def test_partial_entries_for_same_order_are_merged(container, two_line_order):
    order, _, _ = two_line_order
    first, second = (line['lineId'] for line in order['items'])

    result = container.order_service.mark_delivered(deliveries=[
        {'orderId': order['id'], 'lineIds': [first]},
        {'orderId': order['id'], 'lineIds': [second]},
    ])

    assert {item['lineId'] for item in result['deliveredItems']} == {first, second}
    assert result['updatedOrders'] == [order['id']]


def test_unknown_orders_are_skipped(container, two_line_order):
    order, _, _ = two_line_order

    result = container.order_service.mark_delivered(order_ids=['ghost', order['id']])
    assert result['updatedOrders'] == [order['id']]

    with pytest.raises(ValidationError):
        container.order_service.mark_delivered(order_ids=['ghost'])
    with pytest.raises(ValidationError):
        container.order_service.mark_delivered(deliveries=[])


def test_delivery_activity_per_order(container, two_line_order):
    order, _, _ = two_line_order

    container.order_service.mark_delivered(order_ids=[order['id']])

    activity = container.document_repo.read_document()['activities'][0]
    assert activity['title'] == f"Pedido entregado: {order['id']}"
    assert activity['detail'] == f"Ana Pérez · Cartagena · Pedido {order['id']} · 2 productos entregados"
