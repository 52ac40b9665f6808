"""Role policy table.

Every role/operation decision lives in ``POLICY``. Handlers call ``require``
for the role check, ``require_owner`` once the target row is known to exist,
and the store calls ``owner_filter`` so list reads are scoped before they run.
"""
from enum import Enum
from typing import Dict, Optional

from crm.exceptions import Forbidden
from crm.users.models import Role, User

class Action(str, Enum):
    READ_LEADS = "read_leads"
    READ_LEAD = "read_lead"
    CREATE_LEAD = "create_lead"
    UPDATE_LEAD = "update_lead"
    DELETE_LEAD = "delete_lead"
    CREATE_ACTIVITY = "create_activity"
    READ_USERS = "read_users"
    READ_STATS = "read_stats"
    READ_ANALYTICS = "read_analytics"

class Scope(str, Enum):
    ALL = "all"
    OWN = "own"
    NONE = "none"

_FULL_ACCESS = {action: Scope.ALL for action in Action}

POLICY: Dict[Role, Dict[Action, Scope]] = {
    Role.ADMIN: dict(_FULL_ACCESS),
    Role.MANAGER: {**_FULL_ACCESS, Action.READ_USERS: Scope.NONE},
    Role.SALES_EXECUTIVE: {
        Action.READ_LEADS: Scope.OWN,
        Action.READ_LEAD: Scope.OWN,
        Action.CREATE_LEAD: Scope.OWN,
        Action.UPDATE_LEAD: Scope.OWN,
        Action.DELETE_LEAD: Scope.NONE,
        Action.CREATE_ACTIVITY: Scope.OWN,
        Action.READ_USERS: Scope.NONE,
        Action.READ_STATS: Scope.OWN,
        Action.READ_ANALYTICS: Scope.NONE,
    },
}

def scope_for(role: Role, action: Action) -> Scope:
    # Unknown roles get nothing
    return POLICY.get(role, {}).get(action, Scope.NONE)

def require(user: User, action: Action) -> Scope:
    scope = scope_for(user.role, action)
    if scope == Scope.NONE:
        raise Forbidden()
    return scope

def require_owner(user: User, action: Action, owner_id: int, message: str = "Forbidden") -> None:
    """Role check plus ownership check against an existing row's owner."""
    scope = require(user, action)
    if scope == Scope.OWN and owner_id != user.id:
        raise Forbidden(message)

def owner_filter(user_id: int, role: Role, action: Action) -> Optional[int]:
    """The owner id reads must be restricted to, or None for unrestricted."""
    scope = scope_for(role, action)
    if scope == Scope.NONE:
        raise Forbidden()
    return user_id if scope == Scope.OWN else None

def resolve_owner(user: User, requested_owner_id: Optional[int]) -> int:
    """Owner for a new lead: always the caller under OWN scope."""
    scope = require(user, Action.CREATE_LEAD)
    if scope == Scope.OWN or requested_owner_id is None:
        return user.id
    return requested_owner_id
