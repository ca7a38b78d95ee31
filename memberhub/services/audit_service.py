"""Audit service — append-only audit trail for role and membership mutations."""

import json
import logging
from typing import Optional, Any
from sqlalchemy.orm import Session
from fastapi import Request

from memberhub.core.exceptions import AuthorizationError
from memberhub.core.hierarchy import Permission, has_permission, snapshot_actor
from memberhub.models.audit_log import AuditLog

logger = logging.getLogger("memberhub.audit")


class AuditService:
    """Records immutable audit log entries."""

    @staticmethod
    def log(
        db: Session,
        actor,
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> AuditLog:
        """Stage a single audit log record in the caller's transaction.

        Args:
            actor: the acting ``User`` (or ``None`` for system actions such as seeds).
            action: e.g. "role.created", "role.reordered", "user.role_assigned"
            resource_type: role or user
            request_id: id assigned by the tracing middleware, matching the HTTP log line

        The entry is committed together with the mutation it describes, so a
        rolled back mutation leaves no audit row behind.
        """
        entry = AuditLog(
            actor_id=actor.id if actor is not None else None,
            actor_username=getattr(actor, "username", None),
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            old_value_json=json.dumps(old_value, default=str) if old_value is not None else None,
            new_value_json=json.dumps(new_value, default=str) if new_value is not None else None,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
            request_id=request_id,
        )
        db.add(entry)
        return entry

    @staticmethod
    def request_meta(request: Optional[Request]) -> dict:
        """Extract IP, user-agent and request id from the request for ``log``."""
        if request is None:
            return {}
        return {
            "ip_address": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent", ""),
            "request_id": getattr(request.state, "request_id", None),
        }

    @staticmethod
    def query_logs(
        db: Session,
        actor,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        request_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ):
        """Query audit logs with filters and pagination (requires VIEW_DASHBOARD)."""
        who = snapshot_actor(actor)
        if not has_permission(who, Permission.VIEW_DASHBOARD):
            logger.warning("Denied audit.query for user %s", who.id)
            raise AuthorizationError("VIEW_DASHBOARD permission required")

        query = db.query(AuditLog)

        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        if action:
            query = query.filter(AuditLog.action.ilike(f"%{action}%"))
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)
        if request_id:
            query = query.filter(AuditLog.request_id == request_id)

        total = query.count()
        logs = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        return {
            "logs": logs,
            "total": total,
            "page": page,
            "page_size": page_size,
        }


audit_service = AuditService()
