"""
Approval State Machine for inquiries.

    pending ──► approved   (terminal)
        └─────► rejected   (terminal)

The transition is a single conditional UPDATE guarded on status='pending',
so two approvers racing on the same inquiry cannot both succeed.
"""
from datetime import datetime
from typing import Callable

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..config.logging import get_logger, audit_logger
from ..engine.capabilities import Capability, CapabilityToken
from ..engine.errors import InvalidInput, InvalidStateTransition, NotFound
from ..store.db import store_call
from ..store.tables import InquiryLogRecord, InquiryStatus, TERMINAL_STATUSES, utcnow

logger = get_logger(__name__)


def parse_target_status(status) -> InquiryStatus:
    """Accept only the terminal states as transition targets."""
    try:
        target = InquiryStatus(status)
    except ValueError:
        raise InvalidInput(f"Unknown status '{status}'")
    if target not in TERMINAL_STATUSES:
        raise InvalidInput(f"Cannot transition an inquiry to '{target.value}'")
    return target


class ApprovalStateMachine:
    """Moves inquiries out of pending, exactly once."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock

    @store_call
    def set_status(self, token: CapabilityToken, log_id: str, status) -> InquiryLogRecord:
        """
        Approve or reject a pending inquiry.

        Raises:
            Forbidden: token lacks APPROVE_REQUESTS
            InvalidInput: status is not approved/rejected
            NotFound: unknown inquiry id
            InvalidStateTransition: inquiry is already approved or rejected
        """
        token.require(Capability.APPROVE_REQUESTS)
        target = parse_target_status(status)
        responded_at = self.clock()

        result = self.session.execute(
            update(InquiryLogRecord)
            .where(
                InquiryLogRecord.id == log_id,
                InquiryLogRecord.status == InquiryStatus.PENDING.value,
            )
            .values(
                status=target.value,
                admin_response_time=responded_at,
                responded_by=token.user_id,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            self.session.rollback()
            record = self.session.get(InquiryLogRecord, log_id)
            if record is None:
                raise NotFound(f"Inquiry '{log_id}' not found")
            raise InvalidStateTransition(
                f"Inquiry {log_id} is already {record.status}; cannot move to {target.value}"
            )

        self.session.commit()
        record = self.session.get(InquiryLogRecord, log_id, populate_existing=True)

        audit_logger.log(
            f"inquiry.{target.value}",
            user_id=token.user_id,
            entity_type="inquiry_log",
            entity_id=log_id,
        )
        return record

    def approve(self, token: CapabilityToken, log_id: str) -> InquiryLogRecord:
        return self.set_status(token, log_id, InquiryStatus.APPROVED)

    def reject(self, token: CapabilityToken, log_id: str) -> InquiryLogRecord:
        return self.set_status(token, log_id, InquiryStatus.REJECTED)
