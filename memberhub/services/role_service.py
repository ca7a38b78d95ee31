"""Custom role service — CRUD, position reordering, and deletion guard."""

import logging
import re
from typing import Optional, Dict, Any, Iterable, List

from sqlalchemy.orm import Session

from memberhub.core.config import settings
from memberhub.core.exceptions import (
    AuthorizationError,
    ResourceConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from memberhub.core.hierarchy import (
    ADMIN_POSITION,
    INACTIVE_POSITION,
    MIN_ROLE_POSITION,
    BaseRole,
    Permission,
    can_manage_role,
    can_reorder_roles,
    get_manageable_roles,
    get_position,
    has_permission,
    snapshot_actor,
)
from memberhub.db.transaction import atomic_transaction
from memberhub.models.custom_role import CustomRole
from memberhub.models.user import User
from memberhub.services.audit_service import audit_service

logger = logging.getLogger("memberhub.roles")

COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
PATCHABLE_FIELDS = ("name", "description", "color", "permissions")


def _forbid(who, action: str, message: str) -> AuthorizationError:
    logger.warning("Denied %s for user %s: %s", action, who.id, message)
    return AuthorizationError(message)


def _role_state(role: CustomRole) -> Dict[str, Any]:
    return {
        "name": role.name,
        "description": role.description,
        "color": role.color,
        "permissions": role.permissions,
        "position": role.position,
    }


def _clean_permissions(values: Optional[Iterable]) -> List[Permission]:
    if values is None:
        raise ValidationError("permissions are required")
    cleaned = set()
    for value in values:
        try:
            cleaned.add(Permission(getattr(value, "value", value)))
        except ValueError:
            raise ValidationError(f"Unknown permission '{value}'") from None
    if not cleaned:
        raise ValidationError("At least one permission is required")
    return sorted(cleaned, key=lambda p: p.value)


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Role name is required")
    if len(name) > 50:
        raise ValidationError("Role name must be at most 50 characters")
    return name


def _clean_color(color: Optional[str]) -> str:
    if color is None:
        return settings.DEFAULT_ROLE_COLOR
    if not COLOR_RE.match(color):
        raise ValidationError("color must be a hex value like #1A2B3C")
    return color


def _clean_position(position) -> int:
    if isinstance(position, bool) or not isinstance(position, int):
        raise ValidationError("position must be an integer")
    if position >= ADMIN_POSITION:
        raise ValidationError(f"position must be below {ADMIN_POSITION}")
    if position < MIN_ROLE_POSITION:
        raise ValidationError(f"position must be at least {MIN_ROLE_POSITION}")
    return position


class RoleService:
    """Role operations, each gated by the hierarchy before touching the store."""

    @staticmethod
    def _get(db: Session, role_id: int, lock: bool = False) -> CustomRole:
        query = db.query(CustomRole).filter(CustomRole.id == role_id)
        if lock:
            query = query.with_for_update()
        role = query.first()
        if role is None:
            raise ResourceNotFoundError(f"Role {role_id} not found")
        return role

    @staticmethod
    def _ensure_name_free(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(CustomRole.id).filter(CustomRole.name == name)
        if exclude_id is not None:
            query = query.filter(CustomRole.id != exclude_id)
        if query.first() is not None:
            raise ResourceConflictError(f"Role '{name}' already exists")

    @staticmethod
    def next_position(db: Session) -> int:
        """Position for a new role: one below the current lowest, else -1."""
        lowest = (
            db.query(CustomRole)
            .order_by(CustomRole.position.asc())
            .with_for_update()
            .first()
        )
        if lowest is None:
            return INACTIVE_POSITION
        if lowest.position <= MIN_ROLE_POSITION:
            raise ResourceConflictError("No position left below the lowest role")
        return lowest.position - 1

    @staticmethod
    def list_roles(db: Session, actor) -> Dict[str, Any]:
        """All roles, highest authority first, with the actor's capability flags."""
        who = snapshot_actor(actor)
        roles = db.query(CustomRole).order_by(CustomRole.position.desc()).all()
        return {
            "roles": roles,
            "manageable_role_ids": [r.id for r in get_manageable_roles(who, roles)],
            "can_reorder": can_reorder_roles(who),
        }

    @staticmethod
    def get_role(db: Session, actor, role_id: int) -> CustomRole:
        who = snapshot_actor(actor)
        role = RoleService._get(db, role_id)
        if not can_manage_role(who, role):
            raise _forbid(who, "role.view", "Cannot manage role with equal or higher position")
        return role

    @staticmethod
    def create_role(
        db: Session,
        actor,
        name: str,
        permissions: Iterable,
        description: Optional[str] = None,
        color: Optional[str] = None,
        meta: Optional[dict] = None,
    ) -> CustomRole:
        """Create a role strictly below every existing role.

        Raises:
            AuthorizationError: actor lacks MANAGE_ROLES.
            ValidationError: blank name, empty/unknown permissions, bad color.
            ResourceConflictError: name taken, or a concurrent create took the slot.
        """
        who = snapshot_actor(actor)
        if not has_permission(who, Permission.MANAGE_ROLES):
            raise _forbid(who, "role.create", "MANAGE_ROLES permission required")

        name = _clean_name(name)
        perms = _clean_permissions(permissions)
        color = _clean_color(color)

        with atomic_transaction(db, "Role could not be created, try again"):
            RoleService._ensure_name_free(db, name)
            role = CustomRole(
                name=name,
                description=description,
                color=color,
                position=RoleService.next_position(db),
                created_by=who.id,
            )
            role.permissions = perms
            db.add(role)
            db.flush()
            audit_service.log(
                db, actor, "role.created", "role", role.id,
                new_value=_role_state(role), **(meta or {}),
            )

        db.refresh(role)
        logger.info("Role %r created at position %s by user %s", role.name, role.position, who.id)
        return role

    @staticmethod
    def update_role(
        db: Session,
        actor,
        role_id: int,
        patch: Dict[str, Any],
        meta: Optional[dict] = None,
    ) -> CustomRole:
        """Apply a partial update of descriptive fields and permissions.

        ``position`` is not patchable here; use ``update_position``.
        """
        who = snapshot_actor(actor)
        role = RoleService._get(db, role_id)
        if not can_manage_role(who, role):
            raise _forbid(who, "role.update", "Cannot manage role with equal or higher position")

        unknown = set(patch) - set(PATCHABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        old_state = _role_state(role)
        conflict = (
            f"Role '{patch['name']}' already exists"
            if patch.get("name") is not None
            else "Role changed concurrently, reload and retry"
        )
        with atomic_transaction(db, conflict):
            if patch.get("name") is not None:
                name = _clean_name(patch["name"])
                RoleService._ensure_name_free(db, name, exclude_id=role.id)
                role.name = name
            if "description" in patch:
                role.description = patch["description"]
            if patch.get("color") is not None:
                role.color = _clean_color(patch["color"])
            if patch.get("permissions") is not None:
                role.permissions = _clean_permissions(patch["permissions"])
            db.flush()
            audit_service.log(
                db, actor, "role.updated", "role", role.id,
                old_value=old_state, new_value=_role_state(role), **(meta or {}),
            )

        db.refresh(role)
        logger.info("Role %s updated by user %s", role.id, who.id)
        return role

    @staticmethod
    def update_position(
        db: Session,
        actor,
        role_id: int,
        new_position: int,
        meta: Optional[dict] = None,
    ) -> CustomRole:
        """Move a role to ``new_position`` and close the gap it leaves.

        Every other role between the old and new slot shifts one step the
        opposite way, so positions stay unique. All custom role rows are
        locked for the duration, which serializes concurrent reorders. The
        whole move is one transaction: any failure leaves every position as
        it was.

        Raises:
            AuthorizationError: actor cannot reorder, cannot manage the role,
                or (non-admin) the target slot is not below their own position.
            ResourceNotFoundError: no such role.
            ResourceConflictError: a concurrent write aborted the transaction.
        """
        new_position = _clean_position(new_position)
        who = snapshot_actor(actor)
        if not can_reorder_roles(who):
            raise _forbid(who, "role.reorder", "Suspended or pending users cannot reorder roles")

        with atomic_transaction(db, "Role order changed concurrently, reload and retry"):
            roles = (
                db.query(CustomRole)
                .order_by(CustomRole.position.asc())
                .with_for_update()
                .all()
            )
            role = next((r for r in roles if r.id == role_id), None)
            if role is None:
                raise ResourceNotFoundError(f"Role {role_id} not found")
            if not can_manage_role(who, role):
                raise _forbid(who, "role.reorder", "Cannot manage role with equal or higher position")
            if who.base_role != BaseRole.ADMIN and new_position >= get_position(who):
                raise _forbid(who, "role.reorder", "Cannot move a role to or above your own position")

            old_position = role.position
            if new_position == old_position:
                return role

            if new_position > old_position:
                shifted = [r for r in roles if r.id != role.id and old_position < r.position <= new_position]
                step = -1
            else:
                shifted = [r for r in roles if r.id != role.id and new_position <= r.position < old_position]
                shifted.reverse()
                step = 1

            # Park the role above everything so each single-row write lands on a free slot.
            # The top role is at most ADMIN_POSITION - 1, so the park slot stays in range.
            role.position = roles[-1].position + 1
            db.flush()
            for other in shifted:
                other.position = other.position + step
                db.flush()
            role.position = new_position
            db.flush()

            audit_service.log(
                db, actor, "role.reordered", "role", role.id,
                old_value={"position": old_position},
                new_value={"position": new_position, "shifted": [r.id for r in shifted]},
                **(meta or {}),
            )

        db.refresh(role)
        logger.info(
            "Role %s moved %s -> %s by user %s (%d shifted)",
            role.id, old_position, new_position, who.id, len(shifted),
        )
        return role

    @staticmethod
    def delete_role(db: Session, actor, role_id: int, meta: Optional[dict] = None) -> None:
        """Delete a role no user references.

        Raises:
            ResourceConflictError: the role is still assigned to at least one user.
        """
        who = snapshot_actor(actor)
        with atomic_transaction(db, "Cannot delete role that is assigned to users"):
            role = RoleService._get(db, role_id, lock=True)
            if not can_manage_role(who, role):
                raise _forbid(who, "role.delete", "Cannot manage role with equal or higher position")

            holders = (
                db.query(User.id)
                .filter(User.custom_role_id == role.id)
                .with_for_update()
                .all()
            )
            if holders:
                raise ResourceConflictError(
                    f"Cannot delete role that is assigned to {len(holders)} user(s)"
                )

            state = _role_state(role)
            db.delete(role)
            db.flush()
            audit_service.log(
                db, actor, "role.deleted", "role", role_id, old_value=state, **(meta or {}),
            )

        logger.info("Role %s deleted by user %s", role_id, who.id)

    @staticmethod
    def get_users_for_role(db: Session, actor, role_id: int) -> List[User]:
        who = snapshot_actor(actor)
        role = RoleService._get(db, role_id)
        if not can_manage_role(who, role):
            raise _forbid(who, "role.users", "Cannot manage role with equal or higher position")
        return (
            db.query(User)
            .filter(User.custom_role_id == role.id)
            .order_by(User.username.asc())
            .all()
        )


role_service = RoleService()
