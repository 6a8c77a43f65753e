"""
Price Calculator - the single sell-price pipeline.

Both the admin breakdown view and the employee request path route
through calculate(); nothing else in the package does pricing arithmetic.

Pipeline (fixed order, each step depends only on prior steps):
1. companyPrice = factoryPrice * discountMultiplier
2. shipment     = length * freightRatePerLength
3. custom       = weight * (customsNumerator / customsDenominator)
4. warranty     = companyPrice * warrantyRate
5. subtotal     = companyPrice + shipment + custom + warranty
6. commission   = subtotal / internalCommissionFactor
7. office       = commission / companyCostFactor
8. sellPrice    = ceiling(office / profitFactor)
"""
from decimal import Decimal, Context, InvalidOperation, ROUND_CEILING, ROUND_HALF_EVEN, localcontext

from .errors import InvalidInput, InvalidParameterSet, DivisionByZero
from .models import Device, ParameterSet, PriceBreakdown, PARAMETER_FIELDS, DIVISOR_FIELDS


# Fixed arithmetic context so results never depend on the caller's decimal context
PRICING_CONTEXT = Context(prec=34, rounding=ROUND_HALF_EVEN)


def to_decimal(value, name: str, error=InvalidInput) -> Decimal:
    """Convert a number to Decimal; floats go through str so 0.38 stays 0.38."""
    if isinstance(value, bool) or value is None:
        raise error(f"{name} must be a number, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise error(f"{name} must be a number, got {value!r}")
    if not result.is_finite():
        raise error(f"{name} must be finite, got {value!r}")
    return result


def validate_device(device: Device) -> dict[str, Decimal]:
    """Return the P/L/W inputs, failing with InvalidInput on non-positive values."""
    inputs = {
        'P': to_decimal(device.factory_price, 'factory_price'),
        'L': to_decimal(device.length, 'length'),
        'W': to_decimal(device.weight, 'weight'),
    }
    labels = {'P': 'factory_price', 'L': 'length', 'W': 'weight'}
    for key, value in inputs.items():
        if value <= 0:
            raise InvalidInput(f"{labels[key]} must be greater than zero for device {device.id}, got {value}")
    return inputs


def validate_parameters(params: ParameterSet) -> dict[str, Decimal]:
    """Return the coefficients as Decimals, rejecting zero or negative divisors."""
    coefficients = {
        name: to_decimal(getattr(params, name), name, error=InvalidParameterSet)
        for name in PARAMETER_FIELDS
    }
    label = params.id or '(unsaved)'
    zero = [name for name in DIVISOR_FIELDS if coefficients[name] == 0]
    if zero:
        raise DivisionByZero(f"Parameter set {label} has zero divisor(s): {', '.join(zero)}")
    negative = [name for name in DIVISOR_FIELDS if coefficients[name] < 0]
    if negative:
        raise InvalidParameterSet(f"Parameter set {label} has negative divisor(s): {', '.join(negative)}")
    return coefficients


def _fmt(value: Decimal) -> str:
    return f"{value:,.2f}"


def calculate(device: Device, params: ParameterSet) -> PriceBreakdown:
    """
    Calculate the sell price for a device under one parameter version.

    Pure function: no I/O, no side effects. The same device attributes and
    coefficients always produce an identical breakdown.

    Args:
        device: Device with factory price, length and weight
        params: The parameter set to price with (usually the active one)

    Returns:
        PriceBreakdown with inputs, params, ordered steps and a trace

    Raises:
        InvalidInput: factory price, length or weight is not positive
        InvalidParameterSet: a coefficient is not numeric or a divisor is not positive
    """
    inputs = validate_device(device)
    S = validate_parameters(params)
    P, L, W = inputs['P'], inputs['L'], inputs['W']

    with localcontext(PRICING_CONTEXT):
        company_price = P * S['discount_multiplier']
        shipment = L * S['freight_rate_per_length']
        custom = W * (S['customs_numerator'] / S['customs_denominator'])
        warranty = company_price * S['warranty_rate']
        subtotal = company_price + shipment + custom + warranty
        commission = subtotal / S['internal_commission_factor']
        office = commission / S['company_cost_factor']
        sell_price = (office / S['profit_factor']).to_integral_value(rounding=ROUND_CEILING)

    breakdown = PriceBreakdown(
        inputs=inputs,
        params=S,
        steps={
            'company_price': company_price,
            'shipment': shipment,
            'custom': custom,
            'warranty': warranty,
            'subtotal': subtotal,
            'commission': commission,
            'office': office,
            'sell_price': sell_price,
        },
        parameter_set_id=params.id,
    )

    breakdown.add_trace("Company Price", f"{P} × discount {S['discount_multiplier']}", _fmt(company_price))
    breakdown.add_trace("Shipment", f"length {L} × freight rate {S['freight_rate_per_length']}", _fmt(shipment))
    breakdown.add_trace(
        "Customs",
        f"weight {W} × ({S['customs_numerator']} / {S['customs_denominator']})",
        _fmt(custom)
    )
    breakdown.add_trace("Warranty", f"company price × {S['warranty_rate']}", _fmt(warranty))
    breakdown.add_trace("Subtotal", "company price + shipment + customs + warranty", _fmt(subtotal))
    breakdown.add_trace("Commission", f"subtotal / {S['internal_commission_factor']}", _fmt(commission))
    breakdown.add_trace("Office", f"commission / {S['company_cost_factor']}", _fmt(office))
    breakdown.add_trace("Sell Price", f"ceiling(office / {S['profit_factor']})", str(sell_price))

    return breakdown


def sell_price(device: Device, params: ParameterSet) -> Decimal:
    """Final sell price only."""
    return calculate(device, params).sell_price
