"""FastAPI application factory.

Main entry point for the EduGest Web API.
"""

import sqlite3
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from edugest.config.app_config import load_app_config
from edugest.db.database import get_db_path, init_db
from edugest.utils.translations import translate_error
from edugest.web.routes import (
    audit_router,
    auth_router,
    disciplines_router,
    final_grades_router,
    formulas_router,
    grades_router,
    health_router,
    notifications_router,
    students_router,
    tutorials_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    init_db()
    logger.info("api_startup", db_path=str(get_db_path().absolute()))
    yield
    # Shutdown (nothing to do for now)


async def integrity_error_handler(request: Request, exc: sqlite3.IntegrityError) -> JSONResponse:
    """Constraint violations become 409 with a Portuguese message."""
    logger.warning("api.integrity_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": translate_error(str(exc))},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="EduGest API",
        description="Mini-pautas: disciplines, evaluation components, grades and formulas",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware for web clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=load_app_config().api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(sqlite3.IntegrityError, integrity_error_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(disciplines_router)
    app.include_router(formulas_router)
    app.include_router(grades_router)
    app.include_router(final_grades_router)
    app.include_router(students_router)
    app.include_router(tutorials_router)
    app.include_router(audit_router)
    app.include_router(notifications_router)

    return app


# Default app instance for uvicorn
app = create_app()
