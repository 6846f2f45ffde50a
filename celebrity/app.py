from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Config
from .registry import RoomRegistry
from .routers import rooms as rooms_router
from .routers import websockets as ws_router


def create_app(config_class=Config, registry: Optional[RoomRegistry] = None) -> FastAPI:
    logging.basicConfig(
        level=config_class.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Celebrity Backend")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config_class.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router.router)
    app.include_router(ws_router.router)

    # Owned by the app; every room lives here until its last member leaves.
    app.state.registry = registry or RoomRegistry()
    return app


app = create_app()

__all__ = ["app", "create_app"]
