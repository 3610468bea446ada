from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .routers import account, fraud, voice
from .state import SessionState, build_session

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("caps.backend")


def create_app(session: Optional[SessionState] = None) -> FastAPI:
    session = session or build_session()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting CAPS Voice session against %s", settings.caps_api_url)
        try:
            yield
        finally:
            await session.close()
            logger.info("CAPS Voice session closed")

    app = FastAPI(title=settings.title, version=settings.version, lifespan=lifespan)

    origins = list(settings.cors_origins)
    if settings.frontend_url not in origins:
        origins.append(settings.frontend_url)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(voice.router)
    app.include_router(fraud.router)
    app.include_router(account.router)

    app.state.session = session
    return app


app = create_app()


def run() -> None:
    """Serve the session API with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run("caps.backend.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
