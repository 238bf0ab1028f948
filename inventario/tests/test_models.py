import itertools

import pytest

from inventario.models import (
    GeneralOverride,
    PaymentMethod,
    PerProductOverride,
    PricingConfig,
    derive_order_status,
    parse_override,
    to_number,
)


@pytest.mark.parametrize('statuses, expected', [
    ([], 'pendiente'),
    (['entregado'], 'completado'),
    (['deuda'], 'deuda'),
    (['entregado', 'entregado'], 'completado'),
    (['pendiente', 'deuda'], 'pendiente'),
    (['entregado', 'deuda'], 'deuda'),
    (['entregado', 'pendiente'], 'pendiente'),
    (['entregado', 'deuda', 'pendiente'], 'pendiente'),
])
def test_order_status_precedence_ignores_line_order(statuses, expected):
    for ordering in itertools.permutations(statuses):
        assert derive_order_status(ordering).value == expected


def test_to_number_rejects_non_numeric_values():
    assert to_number('12.5') == 12.5
    assert to_number(3) == 3.0
    assert to_number(' 7 ') == 7.0
    assert to_number('') is None
    assert to_number('abc') is None
    assert to_number(True) is None
    assert to_number(None) is None
    assert to_number(float('inf')) is None
    assert to_number(float('nan')) is None
    assert to_number([1]) is None


def test_parse_override_variants():
    assert parse_override(80) == GeneralOverride(80)
    assert parse_override('80') == GeneralOverride(80)
    assert parse_override({'p1': 50, 'p2': -1, 'p3': 'x'}) == PerProductOverride({'p1': 50})
    # formas inválidas se ignoran
    assert parse_override([1]) is None
    assert parse_override({'p1': -5}) is None
    assert parse_override(-3) is None
    assert parse_override(None) is None


def test_pricing_config_discards_malformed_shapes():
    config = PricingConfig.from_dict({
        'precioCaja': 'abc',
        'preciosPorComuna': {
            'A': 80,
            'B': [1, 2],
            'C': {'__general__': 70, 'p1': 60},
        },
    })
    assert config.to_dict() == {
        'precioCaja': 0,
        'preciosPorComuna': {
            'A': {'__general__': 80},
            'C': {'__general__': 70, 'p1': 60},
        },
    }
    assert PricingConfig.from_dict('garbage').to_dict() == {'precioCaja': 0, 'preciosPorComuna': {}}


def test_payment_method_normalization():
    assert PaymentMethod.normalize('EFECTIVO ') == PaymentMethod.EFECTIVO
    assert PaymentMethod.normalize('transferencia') == PaymentMethod.TRANSFERENCIA
    assert PaymentMethod.normalize('tarjeta') == PaymentMethod.OTRO
    assert PaymentMethod.normalize(None) == PaymentMethod.OTRO
