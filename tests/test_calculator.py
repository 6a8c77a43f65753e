"""
Calculator tests: worked example, ceiling boundaries, determinism and
input/parameter validation.
"""
from decimal import Decimal, localcontext

import pytest

from hvac_pricing.engine import Device, ParameterSet, calculate, sell_price
from hvac_pricing.engine.errors import DivisionByZero, InvalidInput, InvalidParameterSet
from hvac_pricing.engine.models import DIVISOR_FIELDS, STEP_NAMES
from hvac_pricing.services.parameter_store import DEFAULT_PARAMETERS


def make_device(price='15000', length='2.5', weight='400'):
    return Device(
        id="dev-1",
        category_id="cat-1",
        model_name="VRF-Outdoor-20HP",
        factory_price=Decimal(price),
        length=Decimal(length),
        weight=Decimal(weight),
    )


def make_params(**overrides):
    values = dict(DEFAULT_PARAMETERS)
    values.update({k: Decimal(str(v)) for k, v in overrides.items()})
    return ParameterSet(id="ps-1", **values)


def unit_params(**overrides):
    """Coefficients that make sell price equal to the factory price."""
    values = {
        'discount_multiplier': 1, 'freight_rate_per_length': 0,
        'customs_numerator': 0, 'customs_denominator': 1,
        'warranty_rate': 0, 'internal_commission_factor': 1,
        'company_cost_factor': 1, 'profit_factor': 1,
    }
    values.update(overrides)
    return ParameterSet(id="unit", **{k: Decimal(str(v)) for k, v in values.items()})


def test_worked_example():
    """15000 / 2.5 / 400 under the default parameters sells for 16056."""
    breakdown = calculate(make_device(), make_params())
    steps = breakdown.steps

    assert steps['company_price'] == Decimal('5700')
    assert steps['shipment'] == Decimal('2500')
    assert round(steps['custom'], 2) == Decimal('933.33')
    assert steps['warranty'] == Decimal('285')
    assert round(steps['subtotal'], 2) == Decimal('9418.33')
    assert round(steps['commission'], 2) == Decimal('9914.04')
    assert round(steps['office'], 2) == Decimal('10435.83')
    assert round(steps['office'] / Decimal('0.65'), 2) == Decimal('16055.12')
    assert steps['sell_price'] == Decimal('16056')
    assert breakdown.sell_price == Decimal('16056')


def test_breakdown_carries_inputs_params_and_ordered_steps():
    breakdown = calculate(make_device(), make_params())

    assert breakdown.inputs == {'P': Decimal('15000'), 'L': Decimal('2.5'), 'W': Decimal('400')}
    assert breakdown.params['profit_factor'] == Decimal('0.65')
    assert tuple(breakdown.steps) == STEP_NAMES
    assert breakdown.parameter_set_id == "ps-1"
    assert len(breakdown.trace) == len(STEP_NAMES)
    assert "Sell Price" in breakdown.get_trace_text()


def test_sell_price_helper_matches_breakdown():
    assert sell_price(make_device(), make_params()) == Decimal('16056')


@pytest.mark.parametrize("price, expected", [
    ('100', Decimal('100')),
    ('100.0', Decimal('100')),
    ('100.0001', Decimal('101')),
    ('99.9999', Decimal('100')),
    ('0.01', Decimal('1')),
])
def test_sell_price_rounds_up_to_whole_units(price, expected):
    assert sell_price(make_device(price=price, length='1', weight='1'), unit_params()) == expected


def test_sell_price_is_ceiling_of_office_over_profit():
    breakdown = calculate(make_device(price='1234.56'), make_params())
    raw = breakdown.steps['office'] / breakdown.params['profit_factor']
    assert breakdown.sell_price >= raw
    assert breakdown.sell_price - raw < 1
    assert breakdown.sell_price == breakdown.sell_price.to_integral_value()


def test_deterministic_for_same_inputs():
    first = calculate(make_device(), make_params())
    second = calculate(make_device(), make_params())
    assert first.to_dict() == second.to_dict()


def test_result_independent_of_ambient_decimal_context():
    expected = calculate(make_device(), make_params()).to_dict()
    with localcontext() as ctx:
        ctx.prec = 5
        assert calculate(make_device(), make_params()).to_dict() == expected


def test_float_inputs_use_their_printed_value():
    device = Device(id="f", category_id="c", model_name="m", factory_price=15000.0, length=2.5, weight=400)
    params = ParameterSet(id="f", **{k: float(v) for k, v in DEFAULT_PARAMETERS.items()})
    assert sell_price(device, params) == Decimal('16056')


@pytest.mark.parametrize("field", ['price', 'length', 'weight'])
@pytest.mark.parametrize("value", ['0', '-1'])
def test_non_positive_device_attributes_rejected(field, value):
    with pytest.raises(InvalidInput):
        calculate(make_device(**{field: value}), make_params())


def test_non_numeric_device_attribute_rejected():
    device = Device(id="x", category_id="c", model_name="m", factory_price="abc", length=1, weight=1)
    with pytest.raises(InvalidInput):
        calculate(device, make_params())


@pytest.mark.parametrize("divisor", DIVISOR_FIELDS)
def test_zero_divisor_rejected(divisor):
    with pytest.raises(InvalidParameterSet) as excinfo:
        calculate(make_device(), make_params(**{divisor: 0}))
    assert isinstance(excinfo.value, DivisionByZero)
    assert divisor in excinfo.value.message


def test_zero_non_divisor_is_allowed():
    breakdown = calculate(make_device(), make_params(warranty_rate=0))
    assert breakdown.steps['warranty'] == 0


@pytest.mark.parametrize("divisor", DIVISOR_FIELDS)
def test_negative_divisor_rejected(divisor):
    with pytest.raises(InvalidParameterSet) as excinfo:
        calculate(make_device(), make_params(**{divisor: '-0.5'}))
    assert not isinstance(excinfo.value, DivisionByZero)
    assert "negative divisor" in excinfo.value.message
    assert divisor in excinfo.value.message
