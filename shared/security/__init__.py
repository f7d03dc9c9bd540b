from .roles import Caller, Role, STAFF_ROLES, require_role

__all__ = [
    "Caller",
    "Role",
    "STAFF_ROLES",
    "require_role",
]
