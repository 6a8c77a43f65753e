"""
Error taxonomy for the pricing core.

Every error carries a stable ``code`` so the API layer can map it to a
response without inspecting messages.
"""


class PricingError(Exception):
    """Base class for all pricing tool errors."""
    code = "pricing_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class InvalidInput(PricingError):
    """Bad device attributes or request arguments."""
    code = "invalid_input"


class InvalidParameterSet(PricingError):
    """Malformed pricing coefficients."""
    code = "invalid_parameter_set"


class DivisionByZero(InvalidParameterSet):
    """A divisor coefficient is zero."""
    code = "division_by_zero"


class NoActiveParameterSet(PricingError):
    """Zero or more than one parameter set is marked active."""
    code = "no_active_parameter_set"


class NotFound(PricingError):
    code = "not_found"


class InvalidStateTransition(PricingError):
    """Inquiry already left the pending state."""
    code = "invalid_state_transition"


class StoreUnavailable(PricingError):
    """Transient failure talking to the relational store."""
    code = "store_unavailable"


class Forbidden(PricingError):
    code = "forbidden"
