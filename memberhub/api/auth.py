"""Auth API router: the resolved identity of the caller."""

from fastapi import APIRouter, Depends

from memberhub.schemas.schemas import MeResponse, UserOut
from memberhub.core.hierarchy import (
    can_reorder_roles, effective_permissions, get_position, snapshot_actor,
)
from memberhub.core.security import get_current_actor
from memberhub.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeResponse)
async def get_me(actor: User = Depends(get_current_actor)):
    """Current user with its position and effective permissions."""
    who = snapshot_actor(actor)
    return MeResponse(
        user=UserOut.model_validate(actor),
        position=get_position(who),
        permissions=effective_permissions(who),
        can_reorder=can_reorder_roles(who),
    )
