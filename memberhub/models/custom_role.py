"""Custom role model for the position-ordered hierarchy."""

import json

from sqlalchemy import Column, Integer, String, Text, DateTime, func
from sqlalchemy.orm import relationship
from memberhub.db.base import Base


class CustomRole(Base):
    """Named permission bundle ranked by a unique integer position.

    Larger positions carry more authority. ``position`` is only ever changed by
    ``RoleService.update_position``.
    """
    __tablename__ = "custom_roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    color = Column(String(7), nullable=False)
    permissions_json = Column(Text, nullable=False, default="[]")  # JSON list of Permission names
    position = Column(Integer, unique=True, nullable=False, index=True)
    created_by = Column(Integer, nullable=True)  # informational, not a FK
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    # the database refuses deletes while users still reference the role
    users = relationship("User", back_populates="custom_role", lazy="select", passive_deletes="all")

    @property
    def permissions(self) -> list[str]:
        return json.loads(self.permissions_json or "[]")

    @permissions.setter
    def permissions(self, values) -> None:
        self.permissions_json = json.dumps(sorted({str(getattr(v, "value", v)) for v in values}))

    def __repr__(self) -> str:
        return f"<CustomRole {self.name!r} position={self.position}>"
