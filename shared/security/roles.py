"""
Capability checks.

Authentication happens in the calling layer; the core only ever asks
"does this caller hold role X". Roles form a closed set.
"""
from dataclasses import dataclass, field
from enum import Enum

from shared.exceptions import AuthorizationError


class Role(str, Enum):
    ADMIN = "Admin"
    EMPLOYEE = "Employee"
    COMPANY = "Company"
    INDIVIDUAL = "Individual"


STAFF_ROLES = frozenset({Role.ADMIN, Role.EMPLOYEE})


@dataclass(frozen=True)
class Caller:
    user_id: str
    roles: frozenset = field(default_factory=frozenset)

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    def has_any_role(self, roles) -> bool:
        return any(self.has_role(role) for role in roles)

    @property
    def is_staff(self) -> bool:
        return self.has_any_role(STAFF_ROLES)


def require_role(caller: Caller, *roles: Role) -> None:
    """Raise AuthorizationError unless the caller holds one of `roles`."""
    if not caller.has_any_role(roles):
        allowed = ", ".join(role.value for role in roles)
        raise AuthorizationError(
            f"Caller {caller.user_id} requires one of roles: {allowed}",
            {"user_id": caller.user_id, "required": [role.value for role in roles]},
        )
