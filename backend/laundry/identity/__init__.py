"""External identity providers.

Re-exports the protocol and implementations:
    from laundry.identity import IdentityProvider, GoogleIdentityProvider
"""

from laundry.identity.fake import FakeIdentityProvider
from laundry.identity.google import GoogleIdentityProvider
from laundry.identity.provider import ExternalIdentity, IdentityProvider

__all__ = [
    "ExternalIdentity",
    "FakeIdentityProvider",
    "GoogleIdentityProvider",
    "IdentityProvider",
]
