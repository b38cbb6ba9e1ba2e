"""
Locate External Service Integrations
=====================================

External services for locate tracking:
- Locates API client (work-order service over HTTP)
- YAML config file watcher
- APScheduler for the clock tick and periodic refresh
"""

import asyncio
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx
import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from config import settings
from core import ConfigurationException, LocatesApiException
from locates.application.services import ILocateConfigProvider, ILocatesApi
from locates.domain import LocateSLAConfig
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Locates API ==========

def _isoformat(value: datetime) -> str:
    """Serialize as UTC with a trailing Z."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.isoformat().replace("+00:00", "Z")


class LocatesApiClient(ILocatesApi):
    """
    HTTP client for the work-order / locates API.

    GET requests are retried with exponential backoff on transport
    errors and 5xx responses. Mutations are sent once; their failures
    surface immediately as LocatesApiException.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay_seconds: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._base_url = (base_url or settings.locates_api_base_url).rstrip("/")
        self._token = token if token is not None else settings.locates_api_token
        self._timeout = timeout_seconds or settings.locates_api_timeout_seconds
        self._max_retries = max_retries or settings.locates_api_max_retries
        self._retry_delay = retry_delay_seconds
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            headers = {"Accept": "application/json"}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._http_client

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        attempts: int = 1
    ) -> Any:
        client = await self._get_client()
        last_error: Optional[LocatesApiException] = None

        for attempt in range(attempts):
            try:
                response = await client.request(method, path, json=json)
            except httpx.HTTPError as e:
                last_error = LocatesApiException(
                    f"{method} {path} failed: {str(e) or type(e).__name__}",
                    details={"attempt": attempt + 1}
                )
                logger.warning(
                    "Locates API request failed",
                    extra={"method": method, "path": path, "error": str(e), "attempt": attempt + 1}
                )
            else:
                if response.is_success:
                    return self._decode(response)

                last_error = LocatesApiException(
                    self._error_message(response, method, path),
                    status_code=response.status_code,
                    details={"attempt": attempt + 1}
                )
                logger.warning(
                    "Locates API returned error status",
                    extra={
                        "method": method,
                        "path": path,
                        "status_code": response.status_code,
                        "attempt": attempt + 1
                    }
                )
                if not last_error.retryable:
                    raise last_error

            if attempt < attempts - 1:
                await asyncio.sleep(self._retry_delay * 2 ** attempt)

        raise last_error

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _error_message(response: httpx.Response, method: str, path: str) -> str:
        """Prefer the server's ``message`` field over a generic status line."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if message:
                return str(message)
        return f"{method} {path} returned {response.status_code}"

    async def fetch_all_locates(self) -> Any:
        return await self._request("GET", "/locates/all-locates", attempts=self._max_retries)

    async def sync_dashboard(self) -> Any:
        return await self._request("GET", "/locates/sync-dashboard", attempts=self._max_retries)

    async def update_call_status(self, work_order_id: str, call_type: str, called_at: datetime) -> Any:
        return await self._request(
            "PATCH",
            f"/locates/work-order/{work_order_id}/update-call-status",
            json={
                "locatesCalled": True,
                "callType": call_type,
                "calledAt": _isoformat(called_at),
            }
        )

    async def delete_work_orders(self, ids: Sequence[str]) -> Any:
        return await self._request(
            "DELETE", "/locates/work-order/bulk-delete", json={"ids": list(ids)}
        )

    async def tag_locates_needed(
        self, work_order_number: str, name: str, email: str, tags: List[str]
    ) -> Any:
        return await self._request(
            "POST",
            "/locates/tag-locates-needed",
            json={"workOrderNumber": work_order_number, "name": name, "email": email, "tags": tags}
        )

    async def bulk_tag_locates_needed(
        self, work_order_numbers: List[str], name: str, email: str, tags: List[str]
    ) -> Any:
        return await self._request(
            "POST",
            "/locates/bulk-tag-locates-needed",
            json={"workOrderNumbers": work_order_numbers, "name": name, "email": email, "tags": tags}
        )

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


# ========== SLA Config (hot reload) ==========

class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for locate SLA config file changes."""

    def __init__(self, config_manager: "LocateSLAConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("Locate SLA config file changed", extra={"path": str(event.src_path)})
            self.config_manager.reload()


class LocateSLAConfigManager(ILocateConfigProvider):
    """
    Thread-safe locate SLA configuration with hot-reload support.

    The watchdog observer calls ``reload`` from its own thread; a reload
    that fails to parse or validate keeps the previous rules.
    """

    def __init__(self):
        self._config: Optional[LocateSLAConfig] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> LocateSLAConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: If the file exists but is invalid
        """
        self._path = Path(path)
        try:
            config = self._load_from_file(self._path)
        except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationException(
                f"Invalid locate SLA config: {self._path}",
                {"error": str(e)}
            ) from e
        with self._lock:
            self._config = config
        return config

    def _load_from_file(self, path: Path) -> LocateSLAConfig:
        if not path.exists():
            logger.warning("Locate SLA config file not found, using defaults", extra={"path": str(path)})
            return LocateSLAConfig()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return LocateSLAConfig(**data)

    def reload(self) -> bool:
        """Reload configuration from file."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
            logger.error(
                "Failed to reload locate SLA config, keeping previous rules",
                extra={"path": str(self._path), "error": str(e)}
            )
            return False

        with self._lock:
            self._config = new_config
        logger.info("Locate SLA configuration reloaded")
        return True

    def start_watching(self) -> None:
        """Start watching the configuration file for changes."""
        if self._path is None:
            raise ConfigurationException("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "Config file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            self._observer.schedule(
                ConfigFileHandler(self, self._path),
                str(self._path.resolve().parent),
                recursive=False
            )
            self._observer.start()
            logger.info("Started watching locate SLA config", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static config", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def get_config(self) -> LocateSLAConfig:
        with self._lock:
            if self._config is None:
                raise ConfigurationException("Locate SLA configuration not loaded")
            return self._config


# ========== Scheduler ==========

class LocateScheduler:
    """
    Wrapper for APScheduler driving the clock tick and periodic refresh.

    Jobs are coroutine functions so they run on the event loop rather
    than the executor thread pool.
    """

    def __init__(self, tick_seconds: float = 1.0, refresh_seconds: int = 300):
        self.tick_seconds = tick_seconds
        self.refresh_seconds = refresh_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(
        self,
        tick_job: Callable[[], Awaitable[None]],
        refresh_job: Optional[Callable[[], Awaitable[None]]] = None
    ) -> None:
        """Start the scheduler with the given jobs."""
        if self._running:
            logger.warning("Locate scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()

        self._scheduler.add_job(
            tick_job,
            "interval",
            seconds=self.tick_seconds,
            id="clock_tick",
            name="Locate Clock Tick",
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )

        if refresh_job is not None and self.refresh_seconds > 0:
            self._scheduler.add_job(
                refresh_job,
                "interval",
                seconds=self.refresh_seconds,
                id="locate_refresh",
                name="Locate Refresh Job",
                misfire_grace_time=60,
                max_instances=1,
                coalesce=True,
                replace_existing=True
            )

        self._scheduler.start()
        self._running = True

        logger.info(
            "Locate scheduler started",
            extra={"tick_seconds": self.tick_seconds, "refresh_seconds": self.refresh_seconds}
        )

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("Locate scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def job_ids(self) -> List[str]:
        if self._scheduler is None:
            return []
        return [job.id for job in self._scheduler.get_jobs()]
