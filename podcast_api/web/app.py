"""
FastAPI application for the podcast API.

Serves episode listings, official chapters, clips and users under
`{API_PREFIX}{API_VERSION}` (default `/api/v1`).
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from podcast_api.config import Config
from podcast_api.db.factory import create_repository_from_config
from podcast_api.db.repository import PodcastRepositoryInterface
from podcast_api.errors import EmailDeliveryError, NotFoundError
from podcast_api.services.email_service import EmailService
from podcast_api.web.auth_routes import router as auth_router
from podcast_api.web.clip_routes import router as clip_router
from podcast_api.web.episode_routes import router as episode_router
from podcast_api.web.user_routes import router as user_router

logger = logging.getLogger(__name__)


async def not_found_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def persistence_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Database error: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Database unavailable"})


async def email_delivery_error_handler(_request: Request, exc: EmailDeliveryError) -> JSONResponse:
    logger.error(f"Email delivery failed: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Failed to send email"})


def create_app(
    config: Optional[Config] = None,
    repository: Optional[PodcastRepositoryInterface] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters:
        config: Application configuration; loaded from the environment when omitted.
        repository: Repository to serve from; created from `config` when omitted.
    """
    config = config or Config()
    repository = repository or create_repository_from_config(config)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info(f"Application started, serving API under {config.api_base_path}")

        yield

        repository.close()
        logger.info("Application shutdown")

    app = FastAPI(
        title="Podcast API",
        description="Episode listings, official chapters and clips",
        version="1.0.0",
        lifespan=lifespan,
    )

    allowed_origins = config.WEB_ALLOWED_ORIGINS.split(",") if config.WEB_ALLOWED_ORIGINS != "*" else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(SQLAlchemyError, persistence_error_handler)
    app.add_exception_handler(EmailDeliveryError, email_delivery_error_handler)

    # Store config and repository in app state for access in routes
    app.state.config = config
    app.state.repository = repository
    app.state.email_service = EmailService(config)

    app.include_router(episode_router, prefix=config.api_base_path)
    app.include_router(clip_router, prefix=config.api_base_path)
    app.include_router(user_router, prefix=config.api_base_path)
    app.include_router(auth_router, prefix=config.api_base_path)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "service": "podcast-api"}

    return app


def main():
    import uvicorn

    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    config = Config()
    config.validate_super_user()
    uvicorn.run(create_app(config), host="0.0.0.0", port=config.WEB_PORT)


if __name__ == "__main__":
    main()
