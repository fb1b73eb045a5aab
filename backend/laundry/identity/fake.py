"""FakeIdentityProvider -- in-memory credential table for testing."""

from __future__ import annotations

from laundry.errors import InvalidCredentialsError, UpstreamUnavailableError
from laundry.identity.provider import ExternalIdentity


class FakeIdentityProvider:
    """Maps known credential strings to identities.

    Set ``unavailable`` to simulate an upstream outage.
    """

    def __init__(self, identities: dict[str, ExternalIdentity] | None = None) -> None:
        self._identities = dict(identities or {})
        self.unavailable = False
        self.calls: list[str] = []

    def register(self, credential: str, identity: ExternalIdentity) -> None:
        self._identities[credential] = identity

    async def verify(self, credential: str) -> ExternalIdentity:
        self.calls.append(credential)
        if self.unavailable:
            raise UpstreamUnavailableError()
        identity = self._identities.get(credential)
        if identity is None:
            raise InvalidCredentialsError("Invalid identity credential")
        return identity
