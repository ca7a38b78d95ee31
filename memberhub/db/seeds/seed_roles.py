"""Seed default custom roles into the database."""

import logging

from sqlalchemy.orm import Session

from memberhub.core.config import settings
from memberhub.core.hierarchy import Permission
from memberhub.models.custom_role import CustomRole
from memberhub.services.role_service import RoleService

logger = logging.getLogger("memberhub.seeds")

# Seeded most senior first: each new role lands below the previous one.
DEFAULT_ROLES = [
    {
        "name": "Lead",
        "description": "Runs the community day to day",
        "color": "#F59E0B",
        "permissions": [
            Permission.VIEW_DASHBOARD, Permission.MANAGE_MEMBERS,
            Permission.MANAGE_PROJECTS, Permission.MANAGE_EVENTS,
        ],
    },
    {
        "name": "Helper",
        "description": "Keeps skills and tags tidy",
        "color": settings.DEFAULT_ROLE_COLOR,
        "permissions": [
            Permission.VIEW_DASHBOARD, Permission.MANAGE_SKILLS, Permission.MANAGE_TAGS,
        ],
    },
]


def seed_roles(db: Session) -> None:
    """Insert default roles if they don't already exist."""
    created = 0
    for role_data in DEFAULT_ROLES:
        if db.query(CustomRole).filter(CustomRole.name == role_data["name"]).first():
            continue
        role = CustomRole(
            name=role_data["name"],
            description=role_data["description"],
            color=role_data["color"],
            position=RoleService.next_position(db),
        )
        role.permissions = role_data["permissions"]
        db.add(role)
        db.flush()
        created += 1

    db.commit()
    logger.info("Seeded %d role(s)", created)
