"""Core module - Shared plan model, error taxonomy and configuration."""

from plansync.core.config import ServerConfig, SyncSettings
from plansync.core.types import USER_ID_SENTINEL, ErrorCode, Plan, SyncError, utc_now

__all__ = [
    # Config
    "ServerConfig",
    "SyncSettings",
    # Types
    "ErrorCode",
    "Plan",
    "SyncError",
    "USER_ID_SENTINEL",
    "utc_now",
]
