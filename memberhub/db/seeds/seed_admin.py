"""Seed the initial admin user."""

import logging

from sqlalchemy.orm import Session

from memberhub.core.config import settings
from memberhub.core.hierarchy import BaseRole
from memberhub.models.user import User

logger = logging.getLogger("memberhub.seeds")


def seed_admin(db: Session) -> User:
    """Create the admin user from settings if it doesn't already exist."""
    existing = db.query(User).filter(User.username == settings.ADMIN_USERNAME).first()
    if existing:
        return existing

    admin = User(
        username=settings.ADMIN_USERNAME,
        email=settings.ADMIN_EMAIL,
        base_role=BaseRole.ADMIN,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Seeded admin %r (id %s)", admin.username, admin.id)
    return admin
