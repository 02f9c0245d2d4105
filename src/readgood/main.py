"""Application entry point — runs scheduler + web server in a single process."""

from __future__ import annotations

import json
import logging
import sys
import threading
from contextlib import asynccontextmanager

import uvicorn
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from readgood.config import Config, load_config
from readgood.jobs import build_coordinator, build_tagger, run_refresh
from readgood.refresh.coordinator import RefreshCoordinator
from readgood.storage import ItemStore, init_db
from readgood.web.app import create_app

logger = logging.getLogger("readgood")


def _setup_logging(log_level: str, log_format: str) -> None:
    """Configure root logger based on config."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps(
                {
                    "time": "%(asctime)s",
                    "level": "%(levelname)s",
                    "logger": "%(name)s",
                    "thread": "%(threadName)s",
                    "message": "%(message)s",
                }
            )
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s (%(threadName)s): %(message)s"
        )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def _build_scheduler(config: Config, coordinator: RefreshCoordinator) -> BackgroundScheduler:
    """Create a BackgroundScheduler that requests a refresh on an interval."""
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        run_refresh,
        trigger=IntervalTrigger(minutes=config.refresh_interval_minutes),
        args=[coordinator],
        id="refresh",
        name="Refresh all sources",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def main() -> None:
    """Load config, set up logging, and start scheduler + web server."""
    config = load_config()

    _setup_logging(config.log_level, config.log_format)

    logger.info(
        "ReadGood starting (env=%s, db=%s, tagging=%s)",
        config.app_env,
        config.database_path,
        "on" if config.tagging_enabled else "off",
    )

    init_db(config.database_path)

    coordinator = build_coordinator(config)
    scheduler = _build_scheduler(config, coordinator)

    @asynccontextmanager
    async def lifespan(app):
        logger.info("Scheduler starting")
        scheduler.start()
        # Initial refresh in background so the web server is available immediately
        threading.Thread(target=run_refresh, args=(coordinator,), daemon=True).start()
        yield
        logger.info("Scheduler shutting down")
        scheduler.shutdown(wait=False)

    app = create_app(
        config.database_path,
        coordinator,
        tagger=build_tagger(config, ItemStore(config.database_path)),
        lifespan=lifespan,
    )

    uvicorn.run(app, host=config.web_host, port=config.web_port)


if __name__ == "__main__":
    main()
