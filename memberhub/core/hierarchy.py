"""Role hierarchy and position-ordered authorization predicates.

Every function in this module is pure: it reads the actor/role objects it is
given and never queries the database, logs, or raises for well-formed input.
Actors are anything exposing ``id``, ``base_role`` and ``custom_role``; roles
are anything exposing ``position`` and ``permissions``. ORM rows and the
snapshot dataclasses below both qualify.
"""

import enum
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence


class BaseRole(str, enum.Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    PENDING = "PENDING"
    SUSPENDED = "SUSPENDED"


class Permission(str, enum.Enum):
    VIEW_DASHBOARD = "VIEW_DASHBOARD"
    MANAGE_MEMBERS = "MANAGE_MEMBERS"
    MANAGE_PROJECTS = "MANAGE_PROJECTS"
    MANAGE_EVENTS = "MANAGE_EVENTS"
    MANAGE_SKILLS = "MANAGE_SKILLS"
    MANAGE_TAGS = "MANAGE_TAGS"
    MANAGE_ROLES = "MANAGE_ROLES"


ADMIN_POSITION = 999
INACTIVE_POSITION = -1
MEMBER_POSITION = 0

# lowest value a role position column can hold (signed 32-bit INT)
MIN_ROLE_POSITION = -(2 ** 31)

INACTIVE_ROLES = (BaseRole.SUSPENDED, BaseRole.PENDING)


@dataclass(frozen=True)
class RoleSnapshot:
    """Detached view of a custom role, safe to pass outside a DB session."""
    id: int
    position: int
    permissions: frozenset = field(default_factory=frozenset)


@dataclass(frozen=True)
class ActorSnapshot:
    """Detached view of a user as seen by the hierarchy."""
    id: int
    base_role: BaseRole
    custom_role: Optional[RoleSnapshot] = None


def snapshot_actor(user) -> ActorSnapshot:
    """Copy the hierarchy-relevant fields of a user row."""
    role = user.custom_role
    return ActorSnapshot(
        id=user.id,
        base_role=BaseRole(user.base_role),
        custom_role=RoleSnapshot(
            id=role.id,
            position=role.position,
            permissions=frozenset(role.permissions),
        ) if role is not None else None,
    )


def get_position(actor) -> int:
    """Map an actor to its single integer authority rank."""
    if actor.base_role == BaseRole.ADMIN:
        return ADMIN_POSITION
    if actor.base_role in INACTIVE_ROLES:
        return INACTIVE_POSITION
    if actor.custom_role is not None:
        return actor.custom_role.position
    return MEMBER_POSITION


def has_permission(actor, permission: Permission) -> bool:
    if actor.base_role == BaseRole.ADMIN:
        return True
    if actor.base_role in INACTIVE_ROLES:
        return False
    if actor.custom_role is None:
        return False
    return permission in actor.custom_role.permissions


def has_any_permission(actor, permissions: Iterable[Permission]) -> bool:
    return any(has_permission(actor, p) for p in permissions)


def effective_permissions(actor) -> List[Permission]:
    """Permissions the actor holds, in enum declaration order."""
    return [p for p in Permission if has_permission(actor, p)]


def can_manage_user(actor, target) -> bool:
    """Whether ``actor`` may act on ``target``; equal rank is not enough."""
    if actor.id == target.id:
        return False
    if actor.base_role == BaseRole.ADMIN:
        return True
    if target.base_role == BaseRole.ADMIN:
        return False
    return get_position(target) < get_position(actor)


def can_manage_role(actor, role) -> bool:
    if actor.base_role == BaseRole.ADMIN:
        return True
    return role.position < get_position(actor)


def can_assign_role(actor, target, proposed_base_role: Optional[BaseRole] = None) -> bool:
    """Whether ``actor`` may set ``target``'s base role to ``proposed_base_role``.

    Only admins grant admin. An admin passes this check even for themselves;
    callers narrow self-assignment further (see ``UserService.assign_role``).
    """
    if proposed_base_role == BaseRole.ADMIN and actor.base_role != BaseRole.ADMIN:
        return False
    if actor.base_role == BaseRole.ADMIN:
        return True
    return (
        has_permission(actor, Permission.MANAGE_MEMBERS)
        and can_manage_user(actor, target)
    )


def can_assign_custom_role(actor, target) -> bool:
    if actor.base_role == BaseRole.ADMIN:
        return True
    return (
        has_permission(actor, Permission.MANAGE_MEMBERS)
        and can_manage_user(actor, target)
    )


def can_reorder_roles(actor) -> bool:
    """Suspended and pending actors never reorder.

    Passing this does not authorize moving any particular role; each one must
    still pass ``can_manage_role``.
    """
    return get_position(actor) > INACTIVE_POSITION


def get_manageable_roles(actor, roles: Sequence) -> list:
    return [role for role in roles if can_manage_role(actor, role)]
