"""
Settings API - FastAPI router for the pricing parameter versions.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..engine.capabilities import CapabilityToken
from ..engine.models import PARAMETER_FIELDS
from ..services.parameter_store import ParameterStore
from ..store.db import get_db
from .security import require_parameter_admin

router = APIRouter(prefix="/api/settings", tags=["settings"])


# Pydantic models for API
class ParameterValues(BaseModel):
    """Request model for publishing parameters; omitted fields carry over."""
    discount_multiplier: Optional[Decimal] = None
    freight_rate_per_length: Optional[Decimal] = None
    customs_numerator: Optional[Decimal] = None
    customs_denominator: Optional[Decimal] = None
    warranty_rate: Optional[Decimal] = None
    internal_commission_factor: Optional[Decimal] = None
    company_cost_factor: Optional[Decimal] = None
    profit_factor: Optional[Decimal] = None


class ParameterSetResponse(BaseModel):
    """Response model for one parameter version."""
    id: str
    is_active: bool
    discount_multiplier: Decimal
    freight_rate_per_length: Decimal
    customs_numerator: Decimal
    customs_denominator: Decimal
    warranty_rate: Decimal
    internal_commission_factor: Decimal
    company_cost_factor: Decimal
    profit_factor: Decimal
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class ValidationResponse(BaseModel):
    """Response model for validation."""
    valid: bool
    errors: list[str]
    warnings: list[str]


def _response(params) -> ParameterSetResponse:
    return ParameterSetResponse(id=params.id, is_active=params.is_active, **params.coefficients())


# Endpoints

@router.get("", response_model=ParameterSetResponse)
async def get_active_parameters(
    token: CapabilityToken = Depends(require_parameter_admin),
    db: Session = Depends(get_db),
):
    """Get the active parameter version."""
    return _response(ParameterStore(db).get_active())


@router.put("", response_model=ParameterSetResponse)
async def update_parameters(
    values: ParameterValues,
    token: CapabilityToken = Depends(require_parameter_admin),
    db: Session = Depends(get_db),
):
    """Publish a new parameter version."""
    # Use exclude_unset=True so only fields provided in the request body change
    updates = values.model_dump(exclude_unset=True)
    return _response(ParameterStore(db).update(updates, token))


@router.get("/history", response_model=list[ParameterSetResponse])
async def parameter_history(
    token: CapabilityToken = Depends(require_parameter_admin),
    db: Session = Depends(get_db),
):
    """All parameter versions, newest first."""
    store = ParameterStore(db)
    return [
        ParameterSetResponse(
            id=r.id,
            is_active=r.is_active,
            created_by=r.created_by,
            created_at=r.created_at,
            **{name: getattr(r, name) for name in PARAMETER_FIELDS}
        )
        for r in store.history()
    ]


@router.post("/validate", response_model=ValidationResponse)
async def validate_parameters(
    values: ParameterValues,
    token: CapabilityToken = Depends(require_parameter_admin),
    db: Session = Depends(get_db),
):
    """Validate parameters merged over the active version without saving."""
    store = ParameterStore(db)
    merged = store.get_active().coefficients()
    merged.update(values.model_dump(exclude_unset=True, exclude_none=True))
    result = store.validate(merged)
    return ValidationResponse(valid=result.valid, errors=result.errors, warnings=result.warnings)
