"""Account service -- registration, login and profile changes.

Password hashing runs in a worker thread so bcrypt never blocks the
event loop. Login failures use one uniform message whether the e-mail
is unknown, the password is wrong or the account cannot log in with a
password at all.
"""

from __future__ import annotations

import asyncio
import weakref
from datetime import timedelta
from typing import Any, cast

import structlog
from pydantic import validate_email

from laundry.config import SecurityConfig
from laundry.errors import (
    AccountLockedError,
    EmailTakenError,
    InvalidCredentialsError,
    UniqueConstraintError,
    UpstreamUnavailableError,
    ValidationFailedError,
)
from laundry.identity.provider import IdentityProvider
from laundry.models.entities import Collection, Role, User, new_id
from laundry.security.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password
from laundry.store.entity_store import EntityStore
from laundry.utils.time import Clock, format_timestamp, parse_timestamp, utc_now

log = structlog.get_logger()

PROFILE_FIELDS = frozenset({"name", "phone", "hostel", "room", "photo_url"})


def normalize_email(email: str) -> str:
    """Lower-cased, syntax-checked e-mail address."""
    try:
        _, normalized = validate_email(email.strip())
    except ValueError as e:
        raise ValidationFailedError("Please provide a valid email address") from e
    return normalized.lower()


class AccountService:
    """User-facing account operations over the users collection."""

    def __init__(
        self,
        store: EntityStore,
        config: SecurityConfig | None = None,
        identity: IdentityProvider | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._config = config or SecurityConfig()
        self._identity = identity
        self._clock = clock
        # One lock per e-mail while a login is in flight; dropped when unused.
        self._login_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # --- Registration ---

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        phone: str = "",
        hostel: str = "",
        room: str = "",
    ) -> User:
        """Create a student account.

        Raises:
            ValidationFailedError: Bad e-mail, short or oversized password.
            EmailTakenError: The e-mail is already registered.
        """
        if not name.strip():
            raise ValidationFailedError("Name is required")
        address = normalize_email(email)
        self._check_password(password)
        password_hash = await self._hash(password)
        user = await self._create_user(
            email=address,
            name=name.strip(),
            password_hash=password_hash,
            phone=phone,
            hostel=hostel,
            room=room,
        )
        log.info("user_registered", user_id=user.id)
        return user

    async def create_staff(
        self,
        email: str,
        name: str,
        password: str,
        role: Role = Role.LAUNDRY,
    ) -> User:
        """Create a laundry or admin account (operator tooling)."""
        address = normalize_email(email)
        self._check_password(password)
        user = await self._create_user(
            email=address,
            name=name,
            password_hash=await self._hash(password),
            role=role,
        )
        log.info("staff_created", user_id=user.id, role=role.value)
        return user

    # --- Login ---

    async def authenticate(self, email: str, password: str) -> User:
        """Verify a password login, applying the lockout policy.

        Raises:
            InvalidCredentialsError: Unknown e-mail, wrong password, disabled
                or password-less account.
            AccountLockedError: Too many recent failures.
        """
        key = email.strip().lower()
        lock = self._login_locks.setdefault(key, asyncio.Lock())
        async with lock:
            return await self._authenticate(key, password)

    async def _authenticate(self, email: str, password: str) -> User:
        # Lookup through the counter write must not interleave for one e-mail.
        user = await self.find_by_email(email)
        if user is None:
            log.info("login_failed", reason="unknown_email")
            raise InvalidCredentialsError()

        now = self._clock()
        attempts = user.failed_login_attempts
        if user.locked_until:
            if parse_timestamp(user.locked_until) > now:
                log.info("login_locked", user_id=user.id)
                raise AccountLockedError()
            # Lock has lapsed; start counting afresh.
            attempts = 0

        if user.disabled or not user.password_hash:
            log.info("login_failed", user_id=user.id, reason="no_password_login")
            raise InvalidCredentialsError()

        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            await self._record_failure(user, attempts + 1)
            raise InvalidCredentialsError()

        user = cast(
            User,
            await self._store.update(
                Collection.USERS,
                user.id,
                {
                    "failed_login_attempts": 0,
                    "locked_until": None,
                    "last_login_at": format_timestamp(now),
                },
            ),
        )
        log.info("login_succeeded", user_id=user.id)
        return user

    async def login_with_identity(self, credential: str) -> tuple[User, bool]:
        """Sign in through the external identity provider.

        Returns the user and whether it was newly created.

        Raises:
            InvalidCredentialsError: Provider rejected the credential.
            UpstreamUnavailableError: Provider unreachable or timed out.
        """
        if self._identity is None:
            raise UpstreamUnavailableError("External sign-in is not configured")
        identity = await self._identity.verify(credential)

        existing = await self.find_by_email(identity.email)
        now = format_timestamp(self._clock())
        if existing is not None:
            if existing.disabled:
                raise InvalidCredentialsError()
            fields: dict[str, Any] = {"last_login_at": now}
            if not existing.google_id:
                fields["google_id"] = identity.subject
            if identity.picture:
                fields["photo_url"] = identity.picture
            user = cast(User, await self._store.update(Collection.USERS, existing.id, fields))
            log.info("identity_login", user_id=user.id, created=False)
            return user, False

        user = await self._create_user(
            email=identity.email,
            name=identity.name or identity.email.split("@")[0],
            password_hash=None,
            google_id=identity.subject,
            photo_url=identity.picture,
            last_login_at=now,
        )
        log.info("identity_login", user_id=user.id, created=True)
        return user, True

    # --- Profile ---

    async def get_user(self, user_id: str) -> User:
        return cast(User, await self._store.get(Collection.USERS, user_id))

    async def find_by_email(self, email: str) -> User | None:
        matches = await self._store.find(Collection.USERS, email=email)
        return cast(User, matches[0]) if matches else None

    async def update_profile(self, user_id: str, **changes: Any) -> User:
        """Apply profile edits. Only whitelisted fields may change."""
        unknown = set(changes) - PROFILE_FIELDS
        if unknown:
            raise ValidationFailedError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        fields = {k: v for k, v in changes.items() if v is not None}
        if "name" in fields and not str(fields["name"]).strip():
            raise ValidationFailedError("Name is required")
        fields["updated_at"] = format_timestamp(self._clock())
        user = cast(User, await self._store.update(Collection.USERS, user_id, fields))
        log.info("profile_updated", user_id=user_id, fields=sorted(set(fields) - {"updated_at"}))
        return user

    async def change_password(self, user_id: str, current: str, new: str) -> User:
        """Replace a password after verifying the current one.

        Raises:
            InvalidCredentialsError: ``current`` does not match.
        """
        user = await self.get_user(user_id)
        if not await asyncio.to_thread(verify_password, current, user.password_hash):
            log.info("password_change_rejected", user_id=user_id)
            raise InvalidCredentialsError("Current password is incorrect")
        self._check_password(new)
        user = cast(
            User,
            await self._store.update(
                Collection.USERS,
                user_id,
                {
                    "password_hash": await self._hash(new),
                    "updated_at": format_timestamp(self._clock()),
                },
            ),
        )
        log.info("password_changed", user_id=user_id)
        return user

    async def list_users(self) -> list[User]:
        return cast(list[User], await self._store.list(Collection.USERS))

    # --- Internal helpers ---

    def _check_password(self, password: str) -> None:
        if len(password) < self._config.min_password_length:
            raise ValidationFailedError(
                f"Password must be at least {self._config.min_password_length} characters"
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationFailedError(
                f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
            )

    async def _hash(self, password: str) -> str:
        return await asyncio.to_thread(hash_password, password, self._config.bcrypt_rounds)

    async def _create_user(self, **fields: Any) -> User:
        now = format_timestamp(self._clock())
        user = User(id=new_id(), created_at=now, updated_at=now, **fields)
        try:
            await self._store.create(Collection.USERS, user)
        except UniqueConstraintError as e:
            log.info("registration_rejected", reason="email_taken")
            raise EmailTakenError() from e
        return user

    async def _record_failure(self, user: User, attempts: int) -> None:
        fields: dict[str, Any] = {"failed_login_attempts": attempts}
        if attempts >= self._config.max_login_attempts:
            locked_until = self._clock() + timedelta(minutes=self._config.lockout_minutes)
            fields["locked_until"] = format_timestamp(locked_until)
            log.warning("account_locked", user_id=user.id, attempts=attempts)
        else:
            fields["locked_until"] = None
            log.info("login_failed", user_id=user.id, reason="bad_password", attempts=attempts)
        await self._store.update(Collection.USERS, user.id, fields)
