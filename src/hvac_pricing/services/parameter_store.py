"""
Parameter Store - the versioned global pricing coefficients.

Parameter sets form an append-only version log: an update publishes a new
active row and retires the previous one, so every inquiry can point at the
exact version that priced it.
"""
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config.logging import get_logger, audit_logger
from ..engine.calculator import to_decimal
from ..engine.capabilities import Capability, CapabilityToken
from ..engine.errors import InvalidParameterSet, NoActiveParameterSet, NotFound
from ..engine.models import ParameterSet, PARAMETER_FIELDS, DIVISOR_FIELDS
from ..store.db import store_call
from ..store.tables import ParameterSetRecord, money_overflow, utcnow

logger = get_logger(__name__)

DEFAULT_PARAMETERS = {
    'discount_multiplier': Decimal('0.38'),
    'freight_rate_per_length': Decimal('1000'),
    'customs_numerator': Decimal('350000'),
    'customs_denominator': Decimal('150000'),
    'warranty_rate': Decimal('0.05'),
    'internal_commission_factor': Decimal('0.95'),
    'company_cost_factor': Decimal('0.95'),
    'profit_factor': Decimal('0.65'),
}

# Factors that normally sit in (0, 1]; values above 1 are allowed but suspicious
FACTOR_FIELDS = ('discount_multiplier', 'warranty_rate', 'internal_commission_factor',
                 'company_cost_factor', 'profit_factor')

# Admin updates are single-writer within a process
_write_lock = threading.Lock()


@dataclass
class ValidationResult:
    """Result of parameter validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def to_parameter_set(record: ParameterSetRecord) -> ParameterSet:
    """Convert a stored row to the engine's ParameterSet."""
    return ParameterSet(
        id=record.id,
        is_active=bool(record.is_active),
        **{name: Decimal(getattr(record, name)) for name in PARAMETER_FIELDS}
    )


class ParameterStore:
    """Read and publish parameter versions."""

    def __init__(self, session: Session):
        self.session = session

    @store_call
    def get_active(self) -> ParameterSet:
        """
        Return the single active parameter set.

        Raises NoActiveParameterSet when zero or several rows are active;
        the invariant violation is surfaced, never resolved by picking one.
        """
        rows = self.session.scalars(
            select(ParameterSetRecord).where(ParameterSetRecord.is_active.is_(True))
        ).all()
        if len(rows) != 1:
            logger.error("Parameter store invariant violated: %d active parameter sets", len(rows))
            raise NoActiveParameterSet(
                f"Expected exactly one active parameter set, found {len(rows)}"
            )
        return to_parameter_set(rows[0])

    @store_call
    def get(self, parameter_set_id: str) -> ParameterSet:
        record = self.session.get(ParameterSetRecord, parameter_set_id)
        if record is None:
            raise NotFound(f"Parameter set '{parameter_set_id}' not found")
        return to_parameter_set(record)

    @store_call
    def history(self) -> list[ParameterSetRecord]:
        """All versions, newest first."""
        return list(self.session.scalars(
            select(ParameterSetRecord).order_by(ParameterSetRecord.created_at.desc())
        ).all())

    def validate(self, values: dict) -> ValidationResult:
        """Validate a complete set of coefficients before publishing."""
        result = ValidationResult(valid=True)

        unknown = sorted(set(values) - set(PARAMETER_FIELDS))
        if unknown:
            result.errors.append(f"Unknown parameter(s): {', '.join(unknown)}")
            result.valid = False

        for name in PARAMETER_FIELDS:
            if name not in values or values[name] is None:
                result.errors.append(f"{name} is required")
                result.valid = False
                continue
            try:
                value = to_decimal(values[name], name, error=InvalidParameterSet)
            except InvalidParameterSet as e:
                result.errors.append(e.message)
                result.valid = False
                continue

            overflow = money_overflow(value)
            if name in DIVISOR_FIELDS and value == 0:
                result.errors.append(f"{name} is used as a divisor and must not be zero")
                result.valid = False
            elif value <= 0:
                result.errors.append(f"{name} must be greater than zero, got {value}")
                result.valid = False
            elif overflow:
                result.errors.append(f"{name} {overflow} ({value})")
                result.valid = False
            elif name in FACTOR_FIELDS and value > 1:
                result.warnings.append(f"{name} is above 1.0 ({value})")

        return result

    @store_call
    def update(self, new_values: dict, token: CapabilityToken) -> ParameterSet:
        """
        Publish a new active parameter version.

        Keys missing from new_values are carried over from the current
        version. The previous version stays in the table, inactive.
        """
        token.require(Capability.MANAGE_PARAMETERS)

        with _write_lock:
            try:
                current_rows = self.session.scalars(
                    select(ParameterSetRecord)
                    .where(ParameterSetRecord.is_active.is_(True))
                    .with_for_update()
                ).all()
                if len(current_rows) != 1:
                    raise NoActiveParameterSet(
                        f"Expected exactly one active parameter set, found {len(current_rows)}"
                    )
                current = current_rows[0]

                merged = {name: getattr(current, name) for name in PARAMETER_FIELDS}
                merged.update({k: v for k, v in new_values.items() if v is not None})

                validation = self.validate(merged)
                if not validation.valid:
                    raise InvalidParameterSet("; ".join(validation.errors))

                record = ParameterSetRecord(
                    is_active=True,
                    created_by=token.user_id,
                    created_at=utcnow(),
                    **{name: to_decimal(merged[name], name, error=InvalidParameterSet)
                       for name in PARAMETER_FIELDS}
                )
                current.is_active = False
                self.session.flush()
                self.session.add(record)
                self.session.commit()
                # Stored values, as later pricing reads them
                self.session.refresh(record)
            except Exception:
                self.session.rollback()
                raise

        audit_logger.log(
            "parameters.update",
            user_id=token.user_id,
            entity_type="parameter_set",
            entity_id=record.id,
            details={"previous": current.id, **{k: str(getattr(record, k)) for k in PARAMETER_FIELDS}},
        )
        return to_parameter_set(record)

    @store_call
    def ensure_default(self, created_by: Optional[str] = "seed") -> ParameterSet:
        """Create the default parameter set when the store holds none at all."""
        existing = self.session.scalars(select(ParameterSetRecord).limit(1)).first()
        if existing is None:
            record = ParameterSetRecord(is_active=True, created_by=created_by, **DEFAULT_PARAMETERS)
            self.session.add(record)
            self.session.commit()
            logger.info("Seeded default parameter set %s", record.id)
        return self.get_active()
