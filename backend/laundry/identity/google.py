"""Google Sign-In verification over the tokeninfo endpoint."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from laundry.config import IdentityConfig
from laundry.errors import InvalidCredentialsError, UpstreamUnavailableError
from laundry.identity.provider import ExternalIdentity

log = structlog.get_logger()

VALID_ISSUERS = frozenset({"accounts.google.com", "https://accounts.google.com"})


class GoogleIdentityProvider:
    """Verifies Google ID tokens and checks they were minted for this app.

    ``transport`` lets tests substitute ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: IdentityConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    async def verify(self, credential: str) -> ExternalIdentity:
        if not credential:
            raise InvalidCredentialsError("Google credential is required")
        claims = await self._fetch_claims(credential)

        audience = self._config.google_client_id
        if audience and claims.get("aud") != audience:
            log.warning("identity_audience_mismatch", aud=claims.get("aud"))
            raise InvalidCredentialsError("Google credential was not issued for this app")
        if claims.get("iss") and claims["iss"] not in VALID_ISSUERS:
            raise InvalidCredentialsError("Google credential has an unknown issuer")
        if str(claims.get("email_verified", "true")).lower() != "true":
            raise InvalidCredentialsError("Google e-mail address is not verified")

        email = claims.get("email")
        subject = claims.get("sub")
        if not email or not subject:
            raise InvalidCredentialsError("Email not provided by Google")
        return ExternalIdentity(
            subject=str(subject),
            email=str(email).lower(),
            name=str(claims.get("name") or ""),
            picture=claims.get("picture"),
        )

    async def _fetch_claims(self, credential: str) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                transport=self._transport,
            ) as client:
                resp = await client.get(
                    self._config.tokeninfo_url,
                    params={"id_token": credential},
                )
        except httpx.TimeoutException as e:
            log.error("identity_upstream_timeout", provider="google")
            raise UpstreamUnavailableError("Google sign-in timed out") from e
        except httpx.TransportError as e:
            log.error("identity_upstream_error", provider="google", error=str(e))
            raise UpstreamUnavailableError("Google sign-in is unavailable") from e

        if resp.status_code >= 500:
            log.error("identity_upstream_error", provider="google", status=resp.status_code)
            raise UpstreamUnavailableError("Google sign-in is unavailable")
        if resp.status_code != 200:
            log.info("identity_rejected", provider="google", status=resp.status_code)
            raise InvalidCredentialsError("Invalid Google credential")
        try:
            claims: dict[str, Any] = resp.json()
        except ValueError as e:
            raise UpstreamUnavailableError("Google sign-in returned malformed data") from e
        return claims
