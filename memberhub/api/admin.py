"""Admin console API router for members, role assignment and audit."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from memberhub.db.session import get_db
from memberhub.schemas.schemas import (
    AuditLogPage, LeadStatusRequest, ManagedUserOut, RoleAssignRequest,
    UserCapabilities, UserOut,
)
from memberhub.services.audit_service import audit_service
from memberhub.services.user_service import user_service
from memberhub.core.security import get_current_actor
from memberhub.models.user import User

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=List[ManagedUserOut])
async def admin_list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    """List users with what the caller may do to each (requires VIEW_DASHBOARD)."""
    rows = user_service.list_users(db, actor, skip, limit)
    return [
        ManagedUserOut(
            **UserOut.model_validate(user).model_dump(),
            capabilities=UserCapabilities(**caps),
        )
        for user, caps in rows
    ]


@router.get("/members/pending", response_model=List[UserOut])
async def pending_members(
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    return user_service.pending_members(db, actor)


@router.get("/leads", response_model=List[UserOut])
async def leads(
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    return user_service.leads(db, actor)


@router.put("/users/{user_id}/role", response_model=UserOut)
async def assign_user_role(
    user_id: int,
    body: RoleAssignRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    """Change a user's base role and custom role."""
    return user_service.assign_role(
        db, actor, user_id,
        base_role=body.base_role,
        custom_role_id=body.custom_role_id,
        reason=body.reason,
        meta=audit_service.request_meta(request),
    )


@router.put("/users/{user_id}/lead-status", response_model=UserOut)
async def set_lead_status(
    user_id: int,
    body: LeadStatusRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    return user_service.set_lead_status(
        db, actor, user_id, body.is_lead, meta=audit_service.request_meta(request),
    )


@router.get("/audit", response_model=AuditLogPage)
async def get_audit_logs(
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    actor_id: Optional[int] = Query(None),
    request_id: Optional[str] = Query(None, max_length=64),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    """Query audit logs (requires VIEW_DASHBOARD)."""
    return audit_service.query_logs(
        db, actor,
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        request_id=request_id,
        page=page,
        page_size=page_size,
    )
