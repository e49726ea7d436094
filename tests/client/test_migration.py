"""Tests for the local data migration policy."""

from __future__ import annotations

from datetime import timedelta

from fakes import T0

from plansync.client.sync.migration import MigrationStatus, should_propose_migration


class TestShouldProposeMigration:
    """Tests for should_propose_migration()."""

    def test_proposes_for_fresh_status(self) -> None:
        assert should_propose_migration(MigrationStatus(), 2, T0)

    def test_not_without_local_plans(self) -> None:
        assert not should_propose_migration(MigrationStatus(), 0, T0)

    def test_not_once_completed(self) -> None:
        assert not should_propose_migration(MigrationStatus(completed=True), 2, T0)

    def test_not_twice_per_session(self) -> None:
        assert not should_propose_migration(MigrationStatus(), 2, T0, proposed_this_session=True)

    def test_cooldown_after_decline(self) -> None:
        status = MigrationStatus(declined=True, last_proposed_at=T0)
        assert not should_propose_migration(status, 2, T0 + timedelta(days=6))
        assert should_propose_migration(status, 2, T0 + timedelta(days=7))

    def test_custom_cooldown(self) -> None:
        status = MigrationStatus(declined=True, last_proposed_at=T0)
        assert should_propose_migration(status, 1, T0 + timedelta(days=2), cooldown=timedelta(days=1))


class TestMigrationStatus:
    """Tests for MigrationStatus persistence format."""

    def test_json_round_trip(self) -> None:
        status = MigrationStatus(completed=False, declined=True, last_proposed_at=T0)
        assert MigrationStatus.from_json(status.to_json()) == status

    def test_empty_is_default(self) -> None:
        assert MigrationStatus.from_json(None) == MigrationStatus()
        assert MigrationStatus.from_json("") == MigrationStatus()
