"""
Pricing API - price requests, approvals and admin breakdowns.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..engine.capabilities import CapabilityToken
from ..services.approval import ApprovalStateMachine
from ..services.inquiry_ledger import InquiryLedger, to_view
from ..store.db import get_db
from .security import require_approver, require_breakdown, require_requester

router = APIRouter(prefix="/api/pricing", tags=["pricing"])


# Pydantic models for API
class PriceRequestCreate(BaseModel):
    """Request model for asking a price."""
    device_id: str
    project_id: str


class RequestStatusResponse(BaseModel):
    """What a requester sees; sell_price stays null until approved."""
    request_id: str
    device_id: str
    project_id: str
    status: str
    sell_price: Optional[Decimal] = None
    timestamp: datetime
    category_name: str
    model_name: str


class InquiryResponse(BaseModel):
    """Full inquiry snapshot for approvers."""
    request_id: str
    user_id: str
    device_id: str
    project_id: str
    parameter_set_id: str
    category_name: str
    model_name: str
    sell_price: Decimal
    status: str
    timestamp: datetime
    admin_response_time: Optional[datetime] = None
    responded_by: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str


class BreakdownResponse(BaseModel):
    """Step-by-step calculation trail."""
    device_id: str
    parameter_set_id: Optional[str]
    inputs: dict[str, Decimal]
    params: dict[str, Decimal]
    steps: dict[str, Decimal]
    sell_price: Decimal
    trace: list[dict]


def _inquiry_response(record) -> InquiryResponse:
    return InquiryResponse(
        request_id=record.id,
        user_id=record.user_id,
        device_id=record.device_id,
        project_id=record.project_id,
        parameter_set_id=record.parameter_set_id,
        category_name=record.category_name_snapshot,
        model_name=record.model_name_snapshot,
        sell_price=record.sell_price_snapshot,
        status=record.status,
        timestamp=record.created_at,
        admin_response_time=record.admin_response_time,
        responded_by=record.responded_by,
    )


def _breakdown_response(device_id: str, breakdown) -> BreakdownResponse:
    return BreakdownResponse(
        device_id=device_id,
        parameter_set_id=breakdown.parameter_set_id,
        inputs=breakdown.inputs,
        params=breakdown.params,
        steps=breakdown.steps,
        sell_price=breakdown.sell_price,
        trace=[t.__dict__ for t in breakdown.trace],
    )


# Endpoints

@router.get("/devices/{device_id}/breakdown", response_model=BreakdownResponse)
async def calculate_price(
    device_id: str,
    token: CapabilityToken = Depends(require_breakdown),
    db: Session = Depends(get_db),
):
    """Current sell price with full breakdown (admin only)."""
    breakdown = InquiryLedger(db).calculate_price(token, device_id)
    return _breakdown_response(device_id, breakdown)


@router.post("/requests", response_model=RequestStatusResponse)
async def request_price(
    body: PriceRequestCreate,
    token: CapabilityToken = Depends(require_requester),
    db: Session = Depends(get_db),
):
    """Ask for a device price within one of the caller's projects."""
    record = InquiryLedger(db).request_price(token.user_id, body.device_id, body.project_id)
    view = to_view(record)
    return RequestStatusResponse(**view.__dict__)


@router.get("/requests", response_model=list[RequestStatusResponse])
async def get_user_requests(
    token: CapabilityToken = Depends(require_requester),
    db: Session = Depends(get_db),
):
    """The caller's requests, newest first."""
    return [RequestStatusResponse(**v.__dict__) for v in InquiryLedger(db).get_user_requests(token.user_id)]


@router.get("/requests/all", response_model=list[InquiryResponse])
async def list_all_requests(
    status: Optional[str] = None,
    project_id: Optional[str] = None,
    token: CapabilityToken = Depends(require_approver),
    db: Session = Depends(get_db),
):
    """Every request with its snapshot price (approvers only)."""
    records = InquiryLedger(db).list_all(token, status=status, project_id=project_id)
    return [_inquiry_response(r) for r in records]


@router.get("/requests/{log_id}/breakdown", response_model=BreakdownResponse)
async def replay_breakdown(
    log_id: str,
    token: CapabilityToken = Depends(require_breakdown),
    db: Session = Depends(get_db),
):
    """Breakdown a request was quoted with, from its pinned parameter version."""
    ledger = InquiryLedger(db)
    breakdown = ledger.replay_breakdown(token, log_id)
    return _breakdown_response(ledger.get(log_id).device_id, breakdown)


@router.post("/requests/{log_id}/status", response_model=InquiryResponse)
async def set_request_status(
    log_id: str,
    body: StatusUpdate,
    token: CapabilityToken = Depends(require_approver),
    db: Session = Depends(get_db),
):
    """Approve or reject a pending request."""
    record = ApprovalStateMachine(db).set_status(token, log_id, body.status)
    return _inquiry_response(record)
