"""Shared configuration classes for plansync.

This module defines configuration classes used by both client and server components.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta


@dataclass
class ServerConfig:
    """Configuration for connecting to a plansync query proxy.

    Attributes:
        server_url: Base URL of the server (e.g., "https://plans.example.com").
        token: Bearer token identifying the signed-in user.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    token: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def query_url(self) -> str:
        """URL of the authenticated query endpoint."""
        return f"{self.server_url}/api/query"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")


@dataclass
class SyncSettings:
    """Tunables for the synchronization engine.

    Attributes:
        batch_size: Records synchronized concurrently per batch.
        debounce_delay: Seconds to wait after the last edit before syncing.
        max_retries: Attempts made by the retrying uploader.
        base_delay: First backoff delay in seconds, doubled after each failure.
        max_delay: Upper bound for a single backoff delay.
        migration_cooldown: How long a declined migration stays quiet.
    """

    batch_size: int = 5
    debounce_delay: float = 0.5
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    migration_cooldown: timedelta = field(default_factory=lambda: timedelta(days=7))

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")

    @classmethod
    def from_env(cls) -> SyncSettings:
        """Build settings from PLANSYNC_* environment variables."""
        defaults = cls()
        return cls(
            batch_size=int(os.environ.get("PLANSYNC_BATCH_SIZE", defaults.batch_size)),
            debounce_delay=float(
                os.environ.get("PLANSYNC_DEBOUNCE_DELAY", defaults.debounce_delay)
            ),
            max_retries=int(os.environ.get("PLANSYNC_MAX_RETRIES", defaults.max_retries)),
            base_delay=float(os.environ.get("PLANSYNC_BASE_DELAY", defaults.base_delay)),
            max_delay=float(os.environ.get("PLANSYNC_MAX_DELAY", defaults.max_delay)),
            migration_cooldown=timedelta(
                days=float(
                    os.environ.get(
                        "PLANSYNC_MIGRATION_COOLDOWN_DAYS",
                        defaults.migration_cooldown.days,
                    )
                )
            ),
        )
