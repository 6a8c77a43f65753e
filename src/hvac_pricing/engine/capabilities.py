"""
Capabilities - role claims translated into explicit permissions.

The boundary layer turns the identity provider's role claim into a
CapabilityToken once per request; core operations only check tokens.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import Forbidden, InvalidInput


class Role(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"


class Capability(str, Enum):
    REQUEST_PRICE = "request_price"
    CALCULATE_WITH_BREAKDOWN = "calculate_with_breakdown"
    APPROVE_REQUESTS = "approve_requests"
    MANAGE_PARAMETERS = "manage_parameters"
    MANAGE_CATALOG = "manage_catalog"
    READ_ALL_PROJECTS = "read_all_projects"


ROLE_CAPABILITIES = {
    Role.EMPLOYEE: frozenset({Capability.REQUEST_PRICE}),
    Role.ADMIN: frozenset(Capability),
}


@dataclass(frozen=True)
class CapabilityToken:
    """Validated principal plus the capabilities granted to it."""
    user_id: str
    role: Role
    full_name: str = ""
    capabilities: frozenset = field(default_factory=frozenset)

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability) -> None:
        """Raise Forbidden unless the token grants the capability."""
        if capability not in self.capabilities:
            raise Forbidden(f"User {self.user_id} ({self.role.value}) lacks capability '{capability.value}'")


def parse_role(value: Optional[str]) -> Role:
    """Parse a role claim, rejecting anything outside admin/employee."""
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        raise InvalidInput(f"Unknown role '{value}'")


def grant(user_id: str, role, full_name: str = "") -> CapabilityToken:
    """Issue a capability token for an authenticated principal."""
    if not user_id or not str(user_id).strip():
        raise InvalidInput("Principal id is required")
    role = role if isinstance(role, Role) else parse_role(role)
    return CapabilityToken(
        user_id=str(user_id).strip(),
        role=role,
        full_name=full_name or "",
        capabilities=ROLE_CAPABILITIES[role],
    )
