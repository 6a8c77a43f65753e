"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation.
All money and measurement values are held as Decimal.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional


# Order of coefficients as they appear in a breakdown
PARAMETER_FIELDS = (
    'discount_multiplier',
    'freight_rate_per_length',
    'customs_numerator',
    'customs_denominator',
    'warranty_rate',
    'internal_commission_factor',
    'company_cost_factor',
    'profit_factor',
)

# Coefficients used as divisors; must never be zero
DIVISOR_FIELDS = (
    'customs_denominator',
    'internal_commission_factor',
    'company_cost_factor',
    'profit_factor',
)

STEP_NAMES = (
    'company_price',
    'shipment',
    'custom',
    'warranty',
    'subtotal',
    'commission',
    'office',
    'sell_price',
)


@dataclass(frozen=True)
class Device:
    """Factory attributes of a catalog device."""
    id: str
    category_id: str
    model_name: str
    factory_price: Decimal
    length: Decimal
    weight: Decimal
    is_active: bool = True
    category_name: Optional[str] = None


@dataclass(frozen=True)
class ParameterSet:
    """A version of the global pricing coefficients."""
    discount_multiplier: Decimal
    freight_rate_per_length: Decimal
    customs_numerator: Decimal
    customs_denominator: Decimal
    warranty_rate: Decimal
    internal_commission_factor: Decimal
    company_cost_factor: Decimal
    profit_factor: Decimal
    id: Optional[str] = None
    is_active: bool = True

    def coefficients(self) -> dict[str, Decimal]:
        """The eight coefficients keyed by field name."""
        return {name: getattr(self, name) for name in PARAMETER_FIELDS}


@dataclass
class TraceStep:
    """A single step in the price calculation trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class PriceBreakdown:
    """Full, ordered computation trail for one device price."""
    inputs: dict[str, Decimal]
    params: dict[str, Decimal]
    steps: dict[str, Decimal]
    parameter_set_id: Optional[str] = None
    trace: list[TraceStep] = field(default_factory=list)

    @property
    def sell_price(self) -> Decimal:
        return self.steps['sell_price']

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Plain representation with decimals rendered as strings."""
        return {
            "inputs": {k: str(v) for k, v in self.inputs.items()},
            "params": {k: str(v) for k, v in self.params.items()},
            "steps": {k: str(v) for k, v in self.steps.items()},
            "parameter_set_id": self.parameter_set_id,
            "sell_price": str(self.sell_price),
        }
