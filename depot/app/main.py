"""Depot - session layer entry point."""

from __future__ import annotations

import asyncio
import logging
import logging.handlers
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from depot.app.container import AppContainer
from depot.shared.core import events
from depot.shared.core.configuration import (
    ConfigManager,
    SystemConfig,
    ValidationLevel,
    validate_backend_config,
)
from depot.shared.core.lifecycle import register_cleanup_handler, unregister_cleanup_handler

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "data"

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(logs_dir: Optional[Path] = None) -> Path:
    """Install the file and console handlers on the root logger.

    File handler: everything at LOG_LEVEL (default DEBUG), rotated at 10MB.
    Console handler: WARNING and above only.

    Returns:
        Path of the log file
    """
    logs_dir = logs_dir or DATA_DIR / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file_path = logs_dir / "depot.log"

    file_log_level = LOG_LEVELS.get(os.getenv("LOG_LEVEL", "DEBUG").upper(), logging.DEBUG)

    root_logger = logging.getLogger()
    root_logger.setLevel(file_log_level)
    root_logger.handlers.clear()

    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(file_log_level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    ))
    root_logger.addHandler(console_handler)

    # Quiet third-party request logging
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.info(f"Logging configured: file={log_file_path}, console=WARNING+")
    return log_file_path


async def prepare(container: AppContainer) -> None:
    """Backend initialization and storage integrity sweep."""
    logger.info("Initializing backend...")
    await container.backend.initialize()

    if container.config.storage.verify_on_start:
        evicted = await container.store.verify_all()
        if evicted:
            logger.warning(f"Cleaned {len(evicted)} corrupted storage key(s): {evicted}")


async def bootstrap(container: AppContainer) -> None:
    """Bring the session layer up.

    Readiness waits at most ``bootstrap.ready_timeout`` for preparation.
    When it overruns, preparation keeps running in the background (the
    storage sweep still happens once the backend answers) and the session
    is restored from whatever the store holds. A failed preparation is
    logged by the container and the app proceeds anyway.
    """
    await container.start()

    timeout = container.config.bootstrap.ready_timeout
    preparing = container.spawn(prepare(container), name="prepare")
    try:
        await asyncio.wait_for(asyncio.shield(preparing), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Initialization timeout after {timeout}s, forcing app to load")
        await container.bus.publish(events.TOPIC_LOGS_EVENT, events.create_logs_event(
            "Initialization timed out, continuing", "warning"
        ))
    except Exception as e:
        await container.bus.publish(events.TOPIC_LOGS_EVENT, events.create_logs_event(
            f"Initialization failed: {e}", "error"
        ))

    await container.sessions.restore()


async def run(config: SystemConfig, settle: Optional[float] = None) -> str:
    """Boot, let the gate settle, tear down. Returns the route the gate settled on."""
    container = AppContainer.build(config)
    register_cleanup_handler(container.gate.cancel_pending)
    try:
        await bootstrap(container)
        # Give the scheduled navigation time to fire
        await asyncio.sleep(settle if settle is not None else config.gate.navigation_delay * 2)
        await container.bus.wait_until_idle()
        logger.info(f"Session settled on {container.router.path} ({container.gate.phase.value})")
        return container.router.path
    finally:
        unregister_cleanup_handler(container.gate.cancel_pending)
        await container.close()


def main() -> None:
    load_dotenv(dotenv_path=PROJECT_ROOT / ".env")
    configure_logging()

    config = ConfigManager().get_config(ValidationLevel.LENIENT)
    if not validate_backend_config(config.backend):
        logger.warning("Backend config is incomplete (api_key/project_id); remote features will be unavailable")

    path = asyncio.run(run(config))
    print(path)


if __name__ == "__main__":
    main()
