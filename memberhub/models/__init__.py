"""Import all models so metadata.create_all can discover them."""

from memberhub.models.custom_role import CustomRole
from memberhub.models.user import User
from memberhub.models.audit_log import AuditLog

__all__ = ["CustomRole", "User", "AuditLog"]
