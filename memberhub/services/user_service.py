"""User service — member listing, base/custom role assignment, lead status."""

import logging
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy.orm import Session

from memberhub.core.exceptions import (
    AuthorizationError,
    ResourceNotFoundError,
    ValidationError,
)
from memberhub.core.hierarchy import (
    BaseRole,
    Permission,
    can_assign_custom_role,
    can_assign_role,
    can_manage_role,
    can_manage_user,
    has_permission,
    snapshot_actor,
)
from memberhub.db.transaction import atomic_transaction
from memberhub.models.custom_role import CustomRole
from memberhub.models.user import User
from memberhub.services.audit_service import audit_service

logger = logging.getLogger("memberhub.users")

ACTIVE_ROLES = (BaseRole.ADMIN, BaseRole.MEMBER)
CUSTOM_ROLE_HOLDERS = (BaseRole.ADMIN, BaseRole.MEMBER)


def _forbid(who, action: str, message: str) -> AuthorizationError:
    logger.warning("Denied %s for user %s: %s", action, who.id, message)
    return AuthorizationError(message)


def _membership_state(user: User) -> Dict[str, Any]:
    return {
        "base_role": user.base_role.value,
        "custom_role_id": user.custom_role_id,
        "is_active": user.is_active,
    }


def capabilities_for(who, target) -> Dict[str, bool]:
    """What ``who`` may do to ``target``, as flags for the presentation layer."""
    return {
        "can_manage": can_manage_user(who, target),
        "can_assign_role": can_assign_role(who, target),
        "can_assign_custom_role": can_assign_custom_role(who, target),
    }


class UserService:
    """Handles member lookups and role assignment."""

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        """Get a user by id."""
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def _require_dashboard(who, action: str) -> None:
        if not has_permission(who, Permission.VIEW_DASHBOARD):
            raise _forbid(who, action, "VIEW_DASHBOARD permission required")

    @staticmethod
    def list_users(
        db: Session, actor, skip: int = 0, limit: int = 100
    ) -> List[Tuple[User, Dict[str, bool]]]:
        """Users with the actor's capability flags for each of them."""
        who = snapshot_actor(actor)
        UserService._require_dashboard(who, "user.list")
        users = (
            db.query(User)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return [(u, capabilities_for(who, snapshot_actor(u))) for u in users]

    @staticmethod
    def pending_members(db: Session, actor) -> List[User]:
        who = snapshot_actor(actor)
        UserService._require_dashboard(who, "user.pending")
        return (
            db.query(User)
            .filter(User.base_role == BaseRole.PENDING)
            .order_by(User.created_at.desc(), User.id.desc())
            .all()
        )

    @staticmethod
    def leads(db: Session, actor) -> List[User]:
        who = snapshot_actor(actor)
        UserService._require_dashboard(who, "user.leads")
        return db.query(User).filter(User.is_lead.is_(True)).order_by(User.username.asc()).all()

    @staticmethod
    def assign_role(
        db: Session,
        actor,
        target_id: int,
        base_role,
        custom_role_id: Optional[int] = None,
        reason: Optional[str] = None,
        meta: Optional[dict] = None,
    ) -> User:
        """Set a user's base role and custom role.

        Admins may give themselves a supplemental custom role but never change
        their own base role away from ADMIN. Non-admins can only hand out custom
        roles they could manage themselves. A custom role is kept only for
        MEMBER and ADMIN; suspending requires a reason.

        Raises:
            ResourceNotFoundError: no such target user.
            AuthorizationError: ``can_assign_role`` failed or a self-demotion was attempted.
            ValidationError: unknown base role, missing suspension reason, bad custom role.
        """
        who = snapshot_actor(actor)
        try:
            proposed = BaseRole(getattr(base_role, "value", base_role))
        except ValueError:
            raise ValidationError(f"Invalid role '{base_role}'") from None

        target = UserService.get_user(db, target_id)
        if not can_assign_role(who, snapshot_actor(target), proposed):
            raise _forbid(who, "user.assign_role", "Cannot change the role of this user")
        if who.id == target.id and proposed != BaseRole.ADMIN:
            raise _forbid(who, "user.assign_role", "Admins cannot change their own base role")
        if proposed == BaseRole.SUSPENDED and not (reason or "").strip():
            raise ValidationError("Suspension reason is required")
        if custom_role_id is not None and proposed not in CUSTOM_ROLE_HOLDERS:
            raise ValidationError("Only members and admins can hold a custom role")

        old_state = _membership_state(target)
        with atomic_transaction(db, "Custom role was removed concurrently"):
            custom_role = None
            if custom_role_id is not None:
                custom_role = (
                    db.query(CustomRole)
                    .filter(CustomRole.id == custom_role_id)
                    .with_for_update()
                    .first()
                )
                if custom_role is None:
                    raise ValidationError("Invalid custom role")
                if not can_manage_role(who, custom_role):
                    raise _forbid(
                        who, "user.assign_role",
                        "Cannot assign a role with equal or higher position",
                    )

            target.base_role = proposed
            target.custom_role = custom_role
            target.is_active = proposed in ACTIVE_ROLES
            target.status_reason = reason
            db.flush()
            audit_service.log(
                db, actor, "user.role_assigned", "user", target.id,
                old_value=old_state, new_value=_membership_state(target), **(meta or {}),
            )

        db.refresh(target)
        if old_state["base_role"] == BaseRole.PENDING.value and target.is_active:
            logger.info("User %s approved as %s by user %s", target.id, proposed.value, who.id)
        else:
            logger.info("User %s set to %s by user %s", target.id, proposed.value, who.id)
        return target

    @staticmethod
    def set_lead_status(
        db: Session, actor, target_id: int, is_lead: bool, meta: Optional[dict] = None
    ) -> User:
        who = snapshot_actor(actor)
        target = UserService.get_user(db, target_id)
        if not (
            has_permission(who, Permission.MANAGE_MEMBERS)
            and can_manage_user(who, snapshot_actor(target))
        ):
            raise _forbid(who, "user.lead_status", "Cannot modify user with equal or higher role hierarchy")

        old = target.is_lead
        with atomic_transaction(db, "User changed concurrently, reload and retry"):
            target.is_lead = is_lead
            db.flush()
            audit_service.log(
                db, actor, "user.lead_status_changed", "user", target.id,
                old_value={"is_lead": old}, new_value={"is_lead": is_lead}, **(meta or {}),
            )

        db.refresh(target)
        logger.info("User %s lead status set to %s by user %s", target.id, is_lead, who.id)
        return target


user_service = UserService()
