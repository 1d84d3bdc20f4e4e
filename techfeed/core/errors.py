"""Exception taxonomy shared by the identity, session and feed layers."""

from __future__ import annotations


class TechfeedError(Exception):
    """Base class for all application errors."""

    message = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class InvalidCredentials(TechfeedError):
    """Unknown email, OAuth-only account or wrong password."""

    message = "Invalid credentials"


class DuplicateEmail(TechfeedError):
    message = "Email already in use"


class StoreUnavailable(TechfeedError):
    """The credential or session store could not be reached."""

    message = "Store unavailable"


class OAuthProviderError(TechfeedError):
    """The OAuth provider denied or failed the exchange."""

    message = "OAuth provider error"


class UpstreamFeedUnavailable(TechfeedError):
    message = "News feed unavailable"


class LoginRequired(TechfeedError):
    """Raised by the auth guard when a protected route is hit anonymously."""

    message = "Login required"


class InvalidRegistration(TechfeedError):
    """Registration data rejected before anything is stored."""

    message = "Invalid registration data"
