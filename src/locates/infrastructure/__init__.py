"""
Locate Infrastructure Layer
============================

Infrastructure implementations for locate tracking:
- LocatesApiClient: httpx client for the work-order / locates API
- LocateSLAConfigManager: YAML rules with watchdog hot reload
- LocateScheduler: APScheduler jobs for clock tick and refresh
"""

from locates.infrastructure.external import (
    LocatesApiClient,
    LocateSLAConfigManager,
    LocateScheduler,
    ConfigFileHandler,
)

__all__ = [
    "LocatesApiClient",
    "LocateSLAConfigManager",
    "LocateScheduler",
    "ConfigFileHandler",
]
