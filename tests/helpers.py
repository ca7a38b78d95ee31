"""Helpers shared by the test modules."""
from memberhub.core.security import create_access_token
from memberhub.models import CustomRole


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def positions(db) -> dict:
    """Current position of every role, keyed by name."""
    db.expire_all()
    return {r.name: r.position for r in db.query(CustomRole).all()}
