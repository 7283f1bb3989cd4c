"""Domain errors raised by the accounts core.

Negative outcomes (unknown user, wrong password, bad or expired token) are
return values, not exceptions. Storage failures other than a username
collision propagate as the original SQLAlchemy error.
"""


class AccountError(Exception):
    """Base class for account domain errors."""


class UsernameTaken(AccountError):
    """Raised when registering a username that already exists."""

    def __init__(self, username: str) -> None:
        super().__init__(f"Username already taken: {username}")
        self.username = username
