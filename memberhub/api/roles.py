"""Custom roles API router."""

from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from memberhub.db.session import get_db
from memberhub.schemas.schemas import (
    MessageResponse, PositionUpdate, RoleCreate, RoleListResponse,
    RoleOut, RoleUpdate, UserOut,
)
from memberhub.services.audit_service import audit_service
from memberhub.services.role_service import role_service
from memberhub.core.security import get_current_actor
from memberhub.models.user import User

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("/", response_model=RoleListResponse)
async def list_roles(
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    """List roles, highest position first, with what the caller may manage."""
    return role_service.list_roles(db, actor)


@router.post("/", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
async def create_role(
    body: RoleCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    """Create a role below every existing role (requires MANAGE_ROLES)."""
    return role_service.create_role(
        db, actor,
        name=body.name,
        permissions=body.permissions,
        description=body.description,
        color=body.color,
        meta=audit_service.request_meta(request),
    )


@router.get("/{role_id}", response_model=RoleOut)
async def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    return role_service.get_role(db, actor, role_id)


@router.put("/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: int,
    body: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    """Update name, description, color or permissions of a manageable role."""
    return role_service.update_role(
        db, actor, role_id,
        body.model_dump(exclude_unset=True),
        meta=audit_service.request_meta(request),
    )


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    """Delete a role that no user holds."""
    role_service.delete_role(db, actor, role_id, meta=audit_service.request_meta(request))
    return MessageResponse(message="Role deleted successfully")


@router.put("/{role_id}/position", response_model=RoleOut)
async def update_position(
    role_id: int,
    body: PositionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    """Move a role to a new position, shifting the roles in between."""
    return role_service.update_position(
        db, actor, role_id, body.position, meta=audit_service.request_meta(request),
    )


@router.get("/{role_id}/users", response_model=List[UserOut])
async def get_role_users(
    role_id: int,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_actor),
):
    return role_service.get_users_for_role(db, actor, role_id)
