"""User model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import relationship

from memberhub.core.hierarchy import BaseRole
from memberhub.db.base import Base


class User(Base):
    """Community member with a base role and an optional custom role."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    base_role = Column(Enum(BaseRole), nullable=False, default=BaseRole.PENDING, index=True)
    custom_role_id = Column(
        Integer,
        ForeignKey("custom_roles.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    status_reason = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=False, nullable=False)
    is_lead = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    custom_role = relationship("CustomRole", back_populates="users", lazy="joined")

    def __repr__(self) -> str:
        return f"<User {self.username!r} {self.base_role.value}>"
