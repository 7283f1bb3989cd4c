"""User account management: registration, login, verification, password reset."""

import hmac
import logging
from datetime import timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accounts.config import get_settings
from accounts.database import Database, get_database
from accounts.errors import UsernameTaken
from accounts.models.password_reset import PasswordResetRequest
from accounts.models.user import User
from accounts.security import (
    BcryptHasher,
    Clock,
    PasswordHasher,
    TokenSource,
    generate_token,
    password_valid,
    set_password,
    utcnow,
)

logger = logging.getLogger("accounts.users")

DEFAULT_RESET_TTL = timedelta(hours=24)
USERNAME_CONSTRAINT = "uq_user_username"


def _is_username_violation(exc: IntegrityError) -> bool:
    diag = getattr(exc.orig, "diag", None)
    if diag is not None:
        # PostgreSQL names the violated constraint
        return getattr(diag, "constraint_name", None) == USERNAME_CONSTRAINT
    return str(exc.orig) == "UNIQUE constraint failed: user.username"


class UserManager:
    """Creates users and mediates every read and write of accounts.

    Holds only the database handle and its collaborators, so a single
    instance can be shared by concurrent requests. Each operation uses its
    own connection or transaction.
    """

    def __init__(
        self,
        db: Database,
        hasher: PasswordHasher | None = None,
        clock: Clock = utcnow,
        token_source: TokenSource = generate_token,
        reset_ttl: timedelta = DEFAULT_RESET_TTL,
    ) -> None:
        self.db = db
        self.hasher = hasher or BcryptHasher()
        self.clock = clock
        self.token_source = token_source
        self.reset_ttl = reset_ttl

    def _save(self, session: Session, user: User) -> User:
        user.touch(self.clock())
        return session.merge(user)

    def create(self, username: str, password: str) -> User:
        """Register a new user. Raises UsernameTaken if the username exists."""
        with self.db.timed("user_manager.create"):
            now = self.clock()
            user = User(
                username=username,
                password_hash="",
                verified=False,
                verification_code=self.token_source(),
                created_at=now,
                updated_at=now,
            )
            user = set_password(user, password, self.hasher)
            try:
                with self.db.transaction() as session:
                    session.add(user)
                    session.flush()
            except IntegrityError as exc:
                if _is_username_violation(exc):
                    logger.debug("Registration rejected, username taken: %s", user.username)
                    raise UsernameTaken(user.username) from None
                raise

            logger.info("Created user %d (%s)", user.id, user.username)
            return user

    def create_reset_token(self, username: str, ip_address: str, user_agent: str) -> tuple[User | None, str | None]:
        """Issue a fresh reset token, replacing any outstanding one.

        Returns (None, None) for unknown usernames. Callers must not reveal
        whether the account was found.
        """
        with self.db.timed("user_manager.create_reset_token"):
            with self.db.transaction() as session:
                user = session.scalars(
                    select(User).where(User.username == username.lower()).with_for_update()
                ).first()
                if user is None:
                    logger.debug("Reset requested for unknown username")
                    return None, None

                session.execute(delete(PasswordResetRequest).where(PasswordResetRequest.user_id == user.id))
                token = self.token_source()
                session.add(
                    PasswordResetRequest(
                        user_id=user.id,
                        ip_address=ip_address,
                        user_agent=user_agent,
                        token=token,
                        expires_at=self.clock() + self.reset_ttl,
                    )
                )

            logger.info("Issued password reset for user %d from %s", user.id, ip_address)
            return user, token

    def lookup_by_id(self, user_id: int) -> User | None:
        if user_id < 1:
            raise ValueError(f"user id must be positive, got {user_id}")
        with self.db.timed("user_manager.lookup_by_id"):
            with self.db.connection() as session:
                return session.get(User, user_id)

    def lookup_by_username(self, username: str) -> User | None:
        """Find a user by username exactly as stored (lowercase)."""
        with self.db.timed("user_manager.lookup_by_username"):
            with self.db.connection() as session:
                return session.scalars(select(User).where(User.username == username)).first()

    def login(self, username: str, password: str) -> User | None:
        """Return the user if the credentials match, None otherwise.

        Unknown username and wrong password are indistinguishable.
        """
        with self.db.timed("user_manager.login"):
            with self.db.connection() as session:
                user = session.scalars(select(User).where(User.username == username.lower())).first()
            if user is None or not password_valid(user, password, self.hasher):
                logger.debug("Login failed")
                return None
            return user

    def verify(self, user_id: int, verification_code: str) -> None:
        """Mark the user verified if the code matches. Silently does nothing otherwise."""
        with self.db.timed("user_manager.verify"):
            with self.db.transaction() as session:
                updated = session.execute(
                    update(User)
                    .where(
                        User.id == user_id,
                        User.verification_code == verification_code,
                        User.verified.is_(False),
                    )
                    .values(verified=True, updated_at=self.clock())
                    .execution_options(synchronize_session=False)
                ).rowcount
            if updated:
                logger.info("Verified user %d", user_id)

    def reset_password(self, user_id: int, token: str, new_password: str) -> bool:
        """Redeem a reset token and set a new password.

        Returns False for a missing, wrong, or expired token without saying
        which. The token is consumed and the password changed in the same
        transaction.
        """
        with self.db.timed("user_manager.reset_password"):
            now = self.clock()
            with self.db.transaction() as session:
                request = session.scalars(
                    select(PasswordResetRequest).where(PasswordResetRequest.user_id == user_id).with_for_update()
                ).first()
                if (
                    request is None
                    or request.is_expired(now)
                    or not hmac.compare_digest(request.token.encode(), token.encode())
                ):
                    logger.debug("Password reset rejected for user %s", user_id)
                    return False

                user = session.get(User, user_id)
                if user is None:
                    return False
                session.delete(request)
                self._save(session, set_password(user, new_password, self.hasher))

            logger.info("Password reset completed for user %d", user_id)
            return True

    def purge_expired_resets(self) -> int:
        """Delete reset requests that can no longer be redeemed. Returns the count."""
        with self.db.timed("user_manager.purge_expired_resets"):
            now = self.clock()
            purged = self.db.run_in_transaction(
                lambda session: session.execute(
                    delete(PasswordResetRequest)
                    .where(PasswordResetRequest.expires_at <= now)
                    .execution_options(synchronize_session=False)
                ).rowcount
            )
            if purged:
                logger.info("Purged %d expired password reset requests", purged)
            return purged


_user_manager: UserManager | None = None


def get_user_manager() -> UserManager:
    """Get singleton user manager instance."""
    global _user_manager
    if _user_manager is None:
        settings = get_settings()
        _user_manager = UserManager(
            get_database(),
            hasher=BcryptHasher(rounds=settings.BCRYPT_ROUNDS),
            reset_ttl=timedelta(hours=settings.RESET_TOKEN_TTL_HOURS),
        )
    return _user_manager
