"""
SLA External Service Integrations
=================================

Process-level collaborators of the SLA context:
- YAML config file with watchdog hot-reload
- APScheduler driving the two periodic scans
"""

import threading
from pathlib import Path
from typing import Awaitable, Callable, Optional

import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from helpdesk.core import ConfigurationException
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.domain import ISLAConfigProvider, SLAConfig

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA config file changes."""

    def __init__(self, config_manager: "SLAConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("SLA config file changed", extra={"path": str(event.src_path)})
            self.config_manager.reload()

    on_created = on_modified


class SLAConfigManager(ISLAConfigProvider):
    """
    Thread-safe SLA configuration provider with hot-reload support.

    A missing file means defaults. A file that fails to parse on reload
    leaves the previous configuration in place.
    """

    def __init__(self, path: Optional[Path] = None):
        self._config: Optional[SLAConfig] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None
        if path is not None:
            self.load(path)

    def load(self, path: Path) -> SLAConfig:
        """Initial configuration load; raises ConfigurationException on a bad file."""
        self._path = Path(path)
        config = self._load_from_file(self._path)
        with self._lock:
            self._config = config
        return config

    def _load_from_file(self, path: Path) -> SLAConfig:
        if not path.exists():
            logger.warning("SLA config file not found, using defaults", extra={"path": str(path)})
            return SLAConfig()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            return SLAConfig(**data)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationException(
                f"Invalid SLA config file {path}",
                {"path": str(path), "error": str(e)}
            ) from e

    def reload(self) -> bool:
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except ConfigurationException as e:
            logger.error(
                "Failed to reload SLA config, keeping previous",
                extra={"path": str(self._path), "error": e.details.get("error")}
            )
            return False

        with self._lock:
            self._config = new_config
        logger.info("SLA configuration reloaded", extra={"path": str(self._path)})
        return True

    def start_watching(self) -> None:
        """
        Start watching the configuration file for changes.

        Skipped when the file does not exist or inotify is unavailable.
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "SLA config file does not exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent), recursive=False)
            self._observer.start()
            logger.info("Started watching SLA config file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static config", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    def get_config(self) -> SLAConfig:
        with self._lock:
            if self._config is None:
                self._config = SLAConfig()
            return self._config

    @property
    def config(self) -> SLAConfig:
        return self.get_config()


Job = Callable[[], Awaitable[object]]


class SLAScheduler:
    """
    Wrapper around APScheduler for the periodic SLA scans.

    Each job is wrapped so a failing cycle is logged and the scheduler
    keeps running; the next tick re-evaluates current state.
    """

    def __init__(
        self,
        sla_check_minutes: int = 15,
        escalation_check_minutes: int = 60
    ):
        self.sla_check_minutes = sla_check_minutes
        self.escalation_check_minutes = escalation_check_minutes
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    @staticmethod
    def _guarded(name: str, job: Job) -> Job:
        async def run():
            try:
                await job()
            except Exception as e:
                logger.error(
                    "Scheduled job failed",
                    extra={"job": name, "error_type": type(e).__name__, "error": str(e)}
                )
        return run

    async def start(self, sla_check: Job, escalation_check: Job) -> None:
        if self._running:
            logger.warning("SLA scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()

        self._scheduler.add_job(
            self._guarded("sla_check", sla_check),
            "interval",
            minutes=self.sla_check_minutes,
            id="sla_check",
            name="SLA Warning/Breach Check",
            misfire_grace_time=60,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self._scheduler.add_job(
            self._guarded("escalation_check", escalation_check),
            "interval",
            minutes=self.escalation_check_minutes,
            id="escalation_check",
            name="Escalation Check",
            misfire_grace_time=300,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )

        self._scheduler.start()
        self._running = True

        logger.info(
            "SLA scheduler started",
            extra={
                "sla_check_minutes": self.sla_check_minutes,
                "escalation_check_minutes": self.escalation_check_minutes
            }
        )

    async def stop(self) -> None:
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
