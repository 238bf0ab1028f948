# -*- coding: utf-8 -*-
"""
Fixtures comunes: carpeta de datos temporal, reloj e ids deterministas,
contenedor de servicios y cliente Flask.
"""
import os

# Sin profiling ni backups durante las pruebas (se leen al importar la app)
os.environ.setdefault('INVENTARIO_PROFILING', '0')
os.environ.setdefault('INVENTARIO_BACKUPS', '0')
os.environ.setdefault('INVENTARIO_LOG_LEVEL', 'WARNING')

from datetime import datetime, timedelta, timezone

import pytest

from inventario.app_container import AppContainer
from inventario.services.clock import format_iso


class SteppingClock:
    """Cada llamada avanza un segundo desde 2024-01-01T10:00:00Z."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.current = start or datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        self.step = step

    def now_iso(self):
        value = format_iso(self.current)
        self.current += self.step
        return value


class SequentialIds:
    def __init__(self, prefix='id'):
        self.prefix = prefix
        self.counter = 0

    def new_id(self):
        self.counter += 1
        return f"{self.prefix}-{self.counter}"


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def ids():
    return SequentialIds()


@pytest.fixture
def container(tmp_path, clock, ids):
    AppContainer.reset_instance()
    c = AppContainer(str(tmp_path), clock, ids)
    yield c
    AppContainer.reset_instance()


@pytest.fixture
def app(tmp_path, clock, ids):
    from inventario.main import app as flask_app, configure_app

    configure_app(str(tmp_path), clock, ids, profiling=False)
    flask_app.config['TESTING'] = True
    yield flask_app
    AppContainer.reset_instance()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


# ---------------------------------------------------------------------------
# Datos de prueba (creados a través de los servicios)
# ---------------------------------------------------------------------------

@pytest.fixture
def make_product(container):
    def _make(name='Caja tomates', unit_price=100, **extra):
        return container.catalog_service.create_product({'name': name, 'unitPrice': unit_price, **extra})
    return _make


@pytest.fixture
def make_client(container):
    def _make(nombre='Ana Pérez', comuna='Cartagena', **extra):
        payload = {
            'nombreCompleto': nombre,
            'telefono': '+56 9 1234 5678',
            'direccion': 'Av. Principal 123',
            'comuna': comuna,
            **extra,
        }
        client, _ = container.client_service.create_client(payload)
        return client
    return _make


@pytest.fixture
def make_order(container):
    def _make(client, *lines):
        """lines: tuplas (producto, cantidad)"""
        items = [{'productId': product['id'], 'cantidad': qty} for product, qty in lines]
        order, _ = container.order_service.create_order(client['id'], items)
        return order
    return _make


@pytest.fixture
def get_order(container):
    def _get(order_id):
        doc = container.document_repo.read_document()
        return next(o for o in doc['orders'] if o['id'] == order_id)
    return _get
