"""Shared fixtures: a remote store on disk and the transports over it."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from fakes import FlakyTransport

from plansync.client.store import LocalPlanStore
from plansync.client.sync.remote import RemotePlans
from plansync.client.transport import DirectTransport
from plansync.server.database import Database

USER = "user-1"


@pytest.fixture
def server_db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a remote store database."""
    database = Database(tmp_path / "remote.db")
    yield database
    database.close()


@pytest.fixture
def transport(server_db: Database) -> FlakyTransport:
    """Recording transport over the remote store, acting for USER."""
    return FlakyTransport(DirectTransport(server_db, USER))


@pytest.fixture
def remote(transport: FlakyTransport) -> RemotePlans:
    return RemotePlans(transport)


@pytest.fixture
def store(tmp_path: Path) -> Generator[LocalPlanStore, None, None]:
    """Create a local plan store (not hydrated)."""
    local = LocalPlanStore(tmp_path / "local" / "plans.db")
    yield local
    local.close()
