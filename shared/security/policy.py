"""
Role-based permission table.

Every gated route goes through ``can_perform``; nothing caches the outcome, the
caller's role is re-read from the database on each request.
"""
from enum import Enum


class Role(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"
    WRITER = "writer"
    DELIVERY = "delivery"


class Action(str, Enum):
    CREATE_ORDER = "create_order"
    TRANSITION_STATUS = "transition_status"
    COMMENT = "comment"
    VIEW_EARNINGS = "view_earnings"
    VIEW_STATS = "view_stats"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_USERS = "manage_users"
    EDIT_ORDER = "edit_order"
    DELETE_ORDER = "delete_order"
    ASSIGN_ORDER = "assign_order"


ADMIN_ONLY = frozenset({
    Action.VIEW_STATS,
    Action.VIEW_ANALYTICS,
    Action.MANAGE_USERS,
    Action.EDIT_ORDER,
    Action.DELETE_ORDER,
    Action.ASSIGN_ORDER,
})

_PERMISSIONS: dict[Action, frozenset[Role]] = {
    Action.CREATE_ORDER: frozenset(Role),
    Action.COMMENT: frozenset(Role),
    # Which transition a role may make is decided by the order state machine.
    Action.TRANSITION_STATUS: frozenset(Role),
    Action.VIEW_EARNINGS: frozenset({Role.WRITER, Role.DELIVERY}),
    **{action: frozenset({Role.ADMIN}) for action in ADMIN_ONLY},
}


def can_perform(role: Role | str, action: Action) -> bool:
    try:
        role = Role(role)
    except ValueError:
        return False
    return role in _PERMISSIONS.get(action, frozenset())
