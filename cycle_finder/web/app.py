"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from cycle_finder import __version__
from cycle_finder.web.api import router


def create_app() -> FastAPI:
    app = FastAPI(title="cycle-finder", version=__version__)
    app.include_router(router)
    return app
