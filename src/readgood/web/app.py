"""FastAPI application factory for the ReadGood web API."""

from __future__ import annotations

import webbrowser
from typing import Callable

from fastapi import FastAPI

from readgood.ingestion.normalize import Item
from readgood.refresh.coordinator import RefreshCoordinator
from readgood.web.routes import health_router, router


def create_app(
    database_path: str,
    coordinator: RefreshCoordinator | None = None,
    *,
    opener: Callable[[str], object] = webbrowser.open,
    tagger: Callable[[Item], object] | None = None,
    lifespan=None,
) -> FastAPI:
    """Build and return a configured FastAPI application."""
    app = FastAPI(title="ReadGood", docs_url="/api/docs", lifespan=lifespan)
    app.state.database_path = database_path
    app.state.coordinator = coordinator
    app.state.opener = opener
    app.state.tagger = tagger
    app.include_router(health_router)
    app.include_router(router, prefix="/api/v1")
    return app
