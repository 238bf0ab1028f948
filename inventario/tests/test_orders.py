import pytest

from inventario.services import InvalidStateError, NotFoundError, ValidationError
from inventario.services.order_service import parse_selections, recompute_order_status

NOW = '2024-02-01T12:00:00.000Z'


# ---------------------------------------------------------------------------
# Crear
# ---------------------------------------------------------------------------

def test_create_order_drops_invalid_items(container, make_product, make_client):
    product = make_product()
    client = make_client()

    order, total = container.order_service.create_order(client['id'], [
        {'productId': product['id'], 'cantidad': 3},
        {'productId': product['id'], 'cantidad': 0},
        {'cantidad': 2},
        {'productId': product['id'], 'cantidad': 'abc'},
        'basura',
    ])

    assert total == 1
    assert len(order['items']) == 1
    line = order['items'][0]
    assert line['status'] == 'pendiente'
    assert line['cantidad'] == 3
    assert line['lineId']
    assert order['estado'] == 'pendiente'
    assert order['deliveredAt'] is None

    activity = container.document_repo.read_document()['activities'][0]
    assert activity['title'] == f"Pedido creado: {order['id']}"
    assert activity['detail'] == 'Ana Pérez · 1 ítems'


def test_create_order_accepts_quantity_alias(container, make_product, make_client):
    product = make_product()
    client = make_client()

    order, _ = container.order_service.create_order(client['id'], [{'productId': product['id'], 'quantity': '2.5'}])

    assert order['items'][0]['cantidad'] == 2.5


@pytest.mark.parametrize('cliente_id, items', [
    (None, [{'productId': 'p', 'cantidad': 1}]),
    ('c', []),
    ('c', 'no es lista'),
    ('c', [{'productId': 'p', 'cantidad': -1}]),
])
def test_create_order_validation(container, cliente_id, items):
    with pytest.raises(ValidationError):
        container.order_service.create_order(cliente_id, items)
    assert container.document_repo.read_document()['orders'] == []


def test_create_order_does_not_check_client_exists(container, make_product):
    product = make_product()

    order, _ = container.order_service.create_order('ghost', [{'productId': product['id'], 'cantidad': 1}])

    assert order['clienteId'] == 'ghost'
    assert container.document_repo.read_document()['activities'][0]['detail'] == 'Pedido registrado'


# ---------------------------------------------------------------------------
# Editar
# ---------------------------------------------------------------------------

def test_replacing_items_resets_line_progress(container, make_product, make_client, make_order):
    tomates = make_product('Tomates', 100)
    paltas = make_product('Paltas', 50)
    client = make_client()
    order = make_order(client, (tomates, 2), (paltas, 3))
    first_line = order['items'][0]['lineId']
    container.order_service.mark_delivered(deliveries=[{'orderId': order['id'], 'lineIds': [first_line]}])

    updated = container.order_service.update_order(order['id'], items=[
        {'productId': tomates['id'], 'cantidad': 5},
        {'productId': 'ghost', 'cantidad': 1},
    ])

    # la entrega anterior se pierde: todas las líneas vuelven a pendiente
    assert len(updated['items']) == 1
    assert updated['items'][0]['status'] == 'pendiente'
    assert updated['items'][0]['cantidad'] == 5
    assert updated['items'][0]['lineId'] not in {line['lineId'] for line in order['items']}
    assert updated['estado'] == 'pendiente'
    assert updated['updatedAt']


def test_update_order_changes_client(container, make_product, make_client, make_order):
    product = make_product()
    ana = make_client()
    luis = make_client('Luis Soto', 'San Antonio')
    order = make_order(ana, (product, 1))

    updated = container.order_service.update_order(order['id'], cliente_id=luis['id'])

    assert updated['clienteId'] == luis['id']
    assert container.document_repo.read_document()['activities'][0]['detail'] == 'Luis Soto · 1 ítems'


def test_update_order_validation(container, make_product, make_client, make_order):
    product = make_product()
    client = make_client()
    order = make_order(client, (product, 1))

    with pytest.raises(ValidationError):
        container.order_service.update_order(order['id'])
    with pytest.raises(ValidationError) as exc:
        container.order_service.update_order(order['id'], cliente_id='ghost')
    assert exc.value.message == 'Cliente no válido'
    with pytest.raises(ValidationError):
        container.order_service.update_order(order['id'], items=[{'productId': 'ghost', 'cantidad': 1}])
    with pytest.raises(NotFoundError):
        container.order_service.update_order('nope', items=[{'productId': product['id'], 'cantidad': 1}])


def test_completed_order_cannot_be_edited(container, make_product, make_client, make_order):
    product = make_product()
    client = make_client()
    order = make_order(client, (product, 1))
    container.order_service.mark_delivered(order_ids=[order['id']])

    with pytest.raises(InvalidStateError) as exc:
        container.order_service.update_order(order['id'], items=[{'productId': product['id'], 'cantidad': 4}])

    assert exc.value.status_code == 400
    assert exc.value.message == 'No se pueden editar pedidos completados'


# ---------------------------------------------------------------------------
# Cancelar
# ---------------------------------------------------------------------------

def test_cancel_only_removes_pending_orders(container, make_product, make_client, make_order):
    product = make_product()
    client = make_client()
    pending = make_order(client, (product, 1))
    in_debt = make_order(client, (product, 2))
    delivered = make_order(client, (product, 3))
    container.debt_service.create_debt(client['id'], order_ids=[in_debt['id']])
    container.order_service.mark_delivered(order_ids=[delivered['id']])

    removed, total = container.order_service.cancel_orders(
        [pending['id'], in_debt['id'], delivered['id'], 'ghost']
    )

    assert removed == [pending['id']]
    assert total == 2
    doc = container.document_repo.read_document()
    assert {o['id'] for o in doc['orders']} == {in_debt['id'], delivered['id']}
    assert doc['activities'][0]['title'] == f"Pedido cancelado: {pending['id']}"


def test_cancel_fails_when_nothing_is_cancellable(container, make_product, make_client, make_order):
    product = make_product()
    client = make_client()
    order = make_order(client, (product, 1))
    container.order_service.mark_delivered(order_ids=[order['id']])
    before = container.document_repo.read_document()

    with pytest.raises(ValidationError):
        container.order_service.cancel_orders([order['id']])
    with pytest.raises(ValidationError):
        container.order_service.cancel_orders([])

    assert container.document_repo.read_document() == before


# ---------------------------------------------------------------------------
# Pedidos legacy y estado
# ---------------------------------------------------------------------------

def test_legacy_orders_get_stable_line_ids(container, make_product, make_client):
    product = make_product()
    client = make_client()
    doc = container.document_repo.read_document()
    doc['orders'] = [
        {'id': 'legacy1', 'clienteId': client['id'], 'estado': 'completado',
         'items': [{'productId': product['id'], 'cantidad': 2}]},
        {'id': 'legacy2', 'clienteId': client['id'], 'estado': 'pendiente',
         'items': [{'productId': product['id'], 'quantity': 4}]},
    ]
    container.document_repo.write_document(doc)

    orders = {o['id']: o for o in container.order_service.list_orders()}

    assert orders['legacy1']['items'][0] == {
        'productId': product['id'], 'cantidad': 2, 'lineId': 'legacy1-1', 'status': 'entregado',
    }
    assert orders['legacy1']['estado'] == 'completado'
    assert orders['legacy2']['items'][0]['lineId'] == 'legacy2-1'
    assert orders['legacy2']['items'][0]['cantidad'] == 4

    # el id mostrado sirve para seleccionar la línea
    result = container.order_service.mark_delivered(
        deliveries=[{'orderId': 'legacy2', 'lineIds': ['legacy2-1']}]
    )
    assert result['updatedOrders'] == ['legacy2']


def test_recompute_sets_and_clears_delivered_at():
    order = {'estado': 'pendiente', 'items': [{'status': 'entregado'}], 'deliveredAt': None}
    assert recompute_order_status(order, NOW).value == 'completado'
    assert order['deliveredAt'] == NOW

    order['items'].append({'status': 'pendiente'})
    recompute_order_status(order, NOW)
    assert order['estado'] == 'pendiente'
    assert order['deliveredAt'] is None

    in_debt = {'estado': 'pendiente', 'items': [{'status': 'deuda'}], 'deliveredAt': 'antes'}
    recompute_order_status(in_debt, NOW)
    assert in_debt['estado'] == 'deuda'
    assert in_debt['deliveredAt'] == 'antes'


def test_parse_selections_merges_entries():
    selection = parse_selections([
        {'orderId': 'a', 'lineIds': ['1']},
        {'orderId': 'a', 'lineIds': ['2']},
        {'orderId': 'b', 'lineIds': ['1']},
        {'orderId': 'b'},
        {'orderId': 'b', 'lineIds': ['3']},
        {'orderId': ''},
        'x',
    ])

    assert selection == {'a': {'1', '2'}, 'b': None}
    assert list(selection) == ['a', 'b']
