"""Engine subpackage - core pricing arithmetic, models and capabilities."""
from .calculator import calculate, sell_price
from .models import Device, ParameterSet, PriceBreakdown

__all__ = ['calculate', 'sell_price', 'Device', 'ParameterSet', 'PriceBreakdown']
