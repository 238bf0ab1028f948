import os

import pytest

from inventario import performance_logger
from inventario.performance_logger import get_function_stats, profile_function, reset_stats


@pytest.fixture
def profiling(tmp_path):
    logs_dir = str(tmp_path / 'logs')
    performance_logger.configure(enabled=True, logs_dir=logs_dir)
    reset_stats()
    yield logs_dir
    performance_logger.configure(enabled=False)
    reset_stats()


def test_profile_function_collects_stats(profiling):
    @profile_function(name='suma')
    def suma(a, b):
        return a + b

    assert suma(1, 2) == 3
    suma(2, 2)

    stats = get_function_stats()['suma']
    assert stats['calls'] == 2
    assert stats['max_time'] >= stats['avg_time'] >= 0


def test_disabled_profiling_records_nothing():
    performance_logger.configure(enabled=False)
    reset_stats()

    @profile_function
    def noop():
        return 'ok'

    assert noop() == 'ok'
    assert get_function_stats() == {}


def test_requests_are_logged_when_enabled(client, profiling):
    client.get('/health')

    with open(os.path.join(profiling, 'performance.log'), encoding='utf-8') as f:
        content = f.read()
    assert '/health' in content


def test_service_calls_are_profiled(container, profiling):
    container.catalog_service.create_product({'name': 'Tomates', 'unitPrice': 100})

    assert get_function_stats()['CatalogService.create_product']['calls'] == 1
