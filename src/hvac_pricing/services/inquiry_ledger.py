"""
Inquiry Ledger - immutable price-request snapshots.

Every price request is priced once, against the parameter version active at
that moment, and stored with the version id and the device inputs so later
catalog or parameter edits never change a quoted price.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config.logging import get_logger, audit_logger
from ..engine.calculator import calculate
from ..engine.capabilities import Capability, CapabilityToken
from ..engine.errors import InvalidInput, NotFound
from ..engine.models import Device, PriceBreakdown
from ..store.db import store_call
from ..store.tables import (
    DeviceRecord, InquiryLogRecord, InquiryStatus, Project, utcnow
)
from .catalog_service import to_device
from .parameter_store import ParameterStore

logger = get_logger(__name__)


@dataclass
class InquiryView:
    """What a requester may see about one of their inquiries."""
    request_id: str
    device_id: str
    project_id: str
    status: str
    sell_price: Optional[Decimal]
    timestamp: datetime
    category_name: str
    model_name: str


def to_view(record: InquiryLogRecord) -> InquiryView:
    """Requester view; the price is disclosed only once approved."""
    approved = record.status == InquiryStatus.APPROVED.value
    return InquiryView(
        request_id=record.id,
        device_id=record.device_id,
        project_id=record.project_id,
        status=record.status,
        sell_price=record.sell_price_snapshot if approved else None,
        timestamp=record.created_at,
        category_name=record.category_name_snapshot,
        model_name=record.model_name_snapshot,
    )


class InquiryLedger:
    """Creates and lists price-request snapshots."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock
        self.parameters = ParameterStore(session)

    def _find_pending(self, user_id: str, device_id: str, project_id: str) -> Optional[InquiryLogRecord]:
        return self.session.scalars(
            select(InquiryLogRecord).where(
                InquiryLogRecord.user_id == user_id,
                InquiryLogRecord.device_id == device_id,
                InquiryLogRecord.project_id == project_id,
                InquiryLogRecord.status == InquiryStatus.PENDING.value,
            )
        ).first()

    @store_call
    def request_price(self, user_id: str, device_id: str, project_id: str) -> InquiryLogRecord:
        """
        Record a price request for a device within a project.

        If a pending request already exists for the same (user, device,
        project) it is returned instead of creating a duplicate. The price is
        fully calculated before anything is written.

        Raises:
            NotFound: unknown or inactive device, unknown project, or a
                project owned by someone else
            NoActiveParameterSet: the parameter store invariant is broken
            InvalidInput / InvalidParameterSet: the calculator rejected the inputs
        """
        if not user_id:
            raise InvalidInput("user_id is required")

        device_record = self.session.get(DeviceRecord, device_id)
        if device_record is None or not device_record.is_active:
            raise NotFound(f"Device '{device_id}' not found")

        project = self.session.get(Project, project_id)
        if project is None or project.user_id != user_id:
            raise NotFound(f"Project '{project_id}' not found")

        existing = self._find_pending(user_id, device_id, project_id)
        if existing is not None:
            logger.info("Returning existing pending inquiry %s for user %s", existing.id, user_id)
            return existing

        params = self.parameters.get_active()
        device = to_device(device_record)
        breakdown = calculate(device, params)

        record = InquiryLogRecord(
            user_id=user_id,
            device_id=device_id,
            project_id=project_id,
            parameter_set_id=params.id,
            category_name_snapshot=device.category_name or 'Unknown',
            model_name_snapshot=device.model_name,
            sell_price_snapshot=breakdown.sell_price,
            factory_price_snapshot=breakdown.inputs['P'],
            length_snapshot=breakdown.inputs['L'],
            weight_snapshot=breakdown.inputs['W'],
            status=InquiryStatus.PENDING.value,
            created_at=self.clock(),
        )
        try:
            self.session.add(record)
            self.session.commit()
        except IntegrityError:
            # A concurrent request for the same triple got there first
            self.session.rollback()
            winner = self._find_pending(user_id, device_id, project_id)
            if winner is None:
                raise
            logger.info("Lost pending-insert race; returning inquiry %s", winner.id)
            return winner

        audit_logger.log(
            "inquiry.create",
            user_id=user_id,
            entity_type="inquiry_log",
            entity_id=record.id,
            details={"device_id": device_id, "project_id": project_id, "parameter_set_id": params.id},
        )
        return record

    @store_call
    def get(self, log_id: str) -> InquiryLogRecord:
        record = self.session.get(InquiryLogRecord, log_id)
        if record is None:
            raise NotFound(f"Inquiry '{log_id}' not found")
        return record

    @store_call
    def get_user_requests(self, user_id: str) -> list[InquiryView]:
        """The user's inquiries, newest first, with unapproved prices redacted."""
        records = self.session.scalars(
            select(InquiryLogRecord)
            .where(InquiryLogRecord.user_id == user_id)
            .order_by(InquiryLogRecord.created_at.desc())
        ).all()
        return [to_view(r) for r in records]

    @store_call
    def list_all(self, token: CapabilityToken, status: Optional[str] = None,
                 project_id: Optional[str] = None) -> list[InquiryLogRecord]:
        """Every inquiry with its snapshot price, for approvers."""
        token.require(Capability.APPROVE_REQUESTS)
        stmt = select(InquiryLogRecord).order_by(InquiryLogRecord.created_at.desc())
        if status:
            try:
                status = InquiryStatus(status).value
            except ValueError:
                raise InvalidInput(f"Unknown status '{status}'")
            stmt = stmt.where(InquiryLogRecord.status == status)
        if project_id:
            stmt = stmt.where(InquiryLogRecord.project_id == project_id)
        return list(self.session.scalars(stmt).all())

    @store_call
    def calculate_price(self, token: CapabilityToken, device_id: str) -> PriceBreakdown:
        """Current price and full breakdown for a device (admin only)."""
        token.require(Capability.CALCULATE_WITH_BREAKDOWN)
        device_record = self.session.get(DeviceRecord, device_id)
        if device_record is None:
            raise NotFound(f"Device '{device_id}' not found")
        return calculate(to_device(device_record), self.parameters.get_active())

    @store_call
    def replay_breakdown(self, token: CapabilityToken, log_id: str) -> PriceBreakdown:
        """
        Recompute the breakdown an inquiry was quoted with.

        Uses the snapshotted device inputs and the pinned parameter version,
        so the result matches the stored price regardless of later edits.
        """
        token.require(Capability.CALCULATE_WITH_BREAKDOWN)
        record = self.get(log_id)
        device = Device(
            id=record.device_id,
            category_id="",
            model_name=record.model_name_snapshot,
            factory_price=record.factory_price_snapshot,
            length=record.length_snapshot,
            weight=record.weight_snapshot,
            category_name=record.category_name_snapshot,
        )
        breakdown = calculate(device, self.parameters.get(record.parameter_set_id))
        if breakdown.sell_price != record.sell_price_snapshot:
            logger.warning(
                "Replayed price %s differs from snapshot %s for inquiry %s",
                breakdown.sell_price, record.sell_price_snapshot, log_id
            )
        return breakdown
