from datetime import datetime, timezone
from typing import List

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship, validates

from boutique.db.base import Base

DEFAULT_ROLE = "ROLE_USER"
ADMIN_ROLE = "ROLE_ADMIN"
# never granted through self-registration
PRIVILEGED_ROLES = frozenset({ADMIN_ROLE})


class User(Base):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(180), unique=True, nullable=False, index=True)
    roles = Column(JSON, nullable=False, default=list)
    password = Column(String(255), nullable=False)
    nom = Column(String(100), nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    refresh_tokens = relationship(
        "RefreshToken", back_populates="user", cascade="all, delete-orphan"
    )

    @validates("email")
    def _normalize_email(self, key, value):
        return value.strip().lower() if value is not None else None

    @validates("nom")
    def _normalize_nom(self, key, value):
        return value.strip() if value is not None else None

    def get_roles(self) -> List[str]:
        roles = list(self.roles or [])
        roles.append(DEFAULT_ROLE)
        return list(dict.fromkeys(roles))

    @property
    def all_roles(self) -> List[str]:
        return self.get_roles()

    def has_role(self, role: str) -> bool:
        return role in self.get_roles()

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


__all__ = ["User", "DEFAULT_ROLE", "ADMIN_ROLE", "PRIVILEGED_ROLES"]
