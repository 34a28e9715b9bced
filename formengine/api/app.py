"""
FastAPI application factory for formengine.

Run with:
    uvicorn formengine.api.app:app --reload
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formengine.api.routes import configure_routes, router

# Load environment variables from .env
load_dotenv()

# Logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _is_truthy(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    application = FastAPI(
        title="formengine",
        description="Form element group filtering and validation",
        version="0.1.0",
    )

    allowed_origins = os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    include_debug = _is_truthy(os.getenv("FORMENGINE_DEBUG_RESULTS"), default=False)
    configure_routes(include_debug=include_debug)
    application.include_router(router, prefix="/api")

    logger.info("Debug results: %s", "enabled" if include_debug else "disabled")
    return application


# Create the app instance (used by uvicorn)
app = create_app()
