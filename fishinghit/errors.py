"""
Exceptions raised by the FishingHit services.

Authentication failures are surfaced to the user as inline form errors, so each
class carries a short human-readable message that the UI can show as is.

Example:
    from fishinghit.errors import InvalidCredentials

    try:
        session.login(email, password)
    except InvalidCredentials as exc:
        st.error(exc.message)
"""
# fishinghit/errors.py

from typing import Optional


class FishingHitError(Exception):
    """Base class for all application errors."""

    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthError(FishingHitError):
    """Base class for login and registration failures."""


class InvalidCredentials(AuthError):
    """The remote endpoint rejected the email/password pair."""

    default_message = "Invalid email or password"


class UserExists(AuthError):
    """The remote endpoint reports an account with this email already exists."""

    default_message = "A user with this email already exists"


class UnknownAuthError(AuthError):
    """Any other non-200 response or a network failure."""

    default_message = "Unable to reach the server. Please try again."


class ParseError(UnknownAuthError):
    """A response body did not match the schema expected for its endpoint."""

    default_message = "Unexpected response from the server"


class PersistenceError(FishingHitError):
    """Writing a local data file failed; nothing was changed."""

    default_message = "Could not save your data"
