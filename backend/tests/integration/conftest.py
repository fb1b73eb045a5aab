"""Fixtures for HTTP-level tests: an app on a temp JSON store."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from laundry.identity.fake import FakeIdentityProvider
from laundry.identity.provider import ExternalIdentity
from laundry.models.entities import Role
from laundry.security.passwords import hash_password
from laundry.web.app import create_app
from tests.api import STAFF_PASSWORD, AppFactory, seed_users
from tests.factories import ManualClock, make_config, make_user


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    staff_hash = hash_password(STAFF_PASSWORD, rounds=4)
    seed_users(
        path,
        make_user(
            id="staff-1",
            email="desk@campus.edu",
            name="Front Desk",
            role=Role.LAUNDRY,
            password_hash=staff_hash,
        ),
        make_user(
            id="admin-1",
            email="warden@campus.edu",
            name="Warden",
            role=Role.ADMIN,
            password_hash=staff_hash,
        ),
    )
    return path


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider(
        {
            "google-priya": ExternalIdentity(
                subject="g-1",
                email="priya@campus.edu",
                name="Priya",
            ),
        }
    )


@pytest.fixture
def app_factory(
    data_dir: Path,
    clock: ManualClock,
    identity: FakeIdentityProvider,
) -> AppFactory:
    def build(**security: Any) -> FastAPI:
        return create_app(make_config(data_dir, **security), identity=identity, clock=clock)

    return build


@pytest.fixture
def client(app_factory: AppFactory) -> Iterator[TestClient]:
    with TestClient(app_factory()) as test_client:
        yield test_client
