"""Password reset request model."""

from datetime import datetime

from sqlalchemy import Column, ForeignKey, Integer, String

from accounts.database import Base, TZDateTime


class PasswordResetRequest(Base):
    """Outstanding password reset challenge. At most one per user."""

    __tablename__ = "password_reset_requests"

    user_id = Column(
        Integer,
        ForeignKey("user.id", ondelete="CASCADE"),
        primary_key=True,
    )
    ip_address = Column(String(64), nullable=False)
    user_agent = Column(String(512), nullable=False)
    token = Column(String(256), nullable=False)
    expires_at = Column(TZDateTime, nullable=False)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
