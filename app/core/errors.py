"""Exception hierarchy shared by services, providers and the HTTP layer.

Services raise these; only the API layer translates them into HTTP
responses (see app.api.errors).
"""

from typing import Optional


class UnifierError(Exception):
    """Base class for all application errors."""


class NotFoundError(UnifierError):
    """
    Missing object, or an object owned by another user.

    Cross-user access is reported as not-found so callers cannot probe for
    the existence of other users' objects.
    """


class ValidationError(UnifierError):
    """Input rejected before any state was changed."""


class ConfigurationError(UnifierError):
    """Process configuration is missing or invalid."""


class DecryptionError(UnifierError):
    """Ciphertext could not be authenticated (wrong key or tampered data)."""


class OAuthStateError(UnifierError):
    """OAuth state token is unknown, already consumed, or expired."""


class ProviderError(UnifierError):
    """A provider answered with a non-2xx status or an unusable payload."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.provider}: {self.args[0]} (HTTP {self.status_code})"
        return f"{self.provider}: {self.args[0]}"


class ProviderTransportError(ProviderError):
    """Network failure or timeout while talking to a provider."""
