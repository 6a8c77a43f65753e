"""
Principal extraction and capability checks for the HTTP boundary.

The upstream identity provider authenticates the caller and forwards the
principal id, display name and role claim as headers.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from ..engine.capabilities import Capability, CapabilityToken, grant
from ..engine.errors import InvalidInput, Forbidden


async def get_current_token(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
) -> CapabilityToken:
    """Build a capability token from the identity headers."""
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing principal headers (X-User-Id, X-User-Role)",
        )
    try:
        return grant(x_user_id, x_user_role, full_name=x_user_name or "")
    except InvalidInput as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)


class CapabilityChecker:
    """Dependency that requires one capability."""

    def __init__(self, capability: Capability):
        self.capability = capability

    async def __call__(self, token: CapabilityToken = Depends(get_current_token)) -> CapabilityToken:
        if not token.has(self.capability):
            raise Forbidden(f"Insufficient permissions. Required: {self.capability.value}")
        return token


# Convenience dependencies for common checks
require_requester = CapabilityChecker(Capability.REQUEST_PRICE)
require_approver = CapabilityChecker(Capability.APPROVE_REQUESTS)
require_breakdown = CapabilityChecker(Capability.CALCULATE_WITH_BREAKDOWN)
require_parameter_admin = CapabilityChecker(Capability.MANAGE_PARAMETERS)
require_catalog_admin = CapabilityChecker(Capability.MANAGE_CATALOG)
