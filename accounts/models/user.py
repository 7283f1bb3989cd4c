"""User model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, Integer, String, UniqueConstraint, false, inspect
from sqlalchemy.orm import validates

from accounts.database import Base, TZDateTime


class User(Base):
    """Application user."""

    __tablename__ = "user"
    __table_args__ = (UniqueConstraint("username", name="uq_user_username"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(256), nullable=False)
    password_hash = Column(String(256), nullable=False, default="", server_default="")
    verified = Column(Boolean, nullable=False, default=False, server_default=false())
    verification_code = Column(String(256), nullable=False)
    created_at = Column(TZDateTime, nullable=False)
    updated_at = Column(TZDateTime, nullable=False)

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        if not value:
            raise ValueError("username must not be empty")
        return value.lower()

    def copy(self, **changes) -> "User":
        """Return a transient copy of this user with the given columns replaced."""
        values = {attr.key: getattr(self, attr.key) for attr in inspect(User).column_attrs}
        values.update(changes)
        return User(**values)

    def touch(self, now: datetime) -> None:
        """Stamp the user as persisted at ``now``. Call before every write."""
        self.updated_at = now

    def __repr__(self) -> str:
        return f"<User {self.id} {self.username}>"
