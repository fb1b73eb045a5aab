"""IdentityProvider protocol -- exchange of an external credential.

All identity providers (Google Sign-In, fake) must satisfy this protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ExternalIdentity:
    """Verified claims returned by an identity provider."""

    subject: str
    email: str
    name: str = ""
    picture: str | None = None


@runtime_checkable
class IdentityProvider(Protocol):
    """Async interface for verifying a client-supplied identity credential."""

    async def verify(self, credential: str) -> ExternalIdentity:
        """Exchange ``credential`` for verified claims.

        Raises:
            InvalidCredentialsError: The provider rejected the credential.
            UpstreamUnavailableError: Transport failure or timeout.
        """
        ...
