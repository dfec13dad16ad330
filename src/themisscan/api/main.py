from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..analyzer import ContractAnalyzer, DirectAnalysisBackend
from ..config import ThemisScanConfig, get_config
from ..errors import ThemisScanError
from .middleware.error_handler import (
    http_exception_handler,
    themisscan_error_handler,
    validation_exception_handler,
)
from .middleware.request_id import RequestIDMiddleware
from .routes import analyze, health


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.analyzer.aclose()


def create_app(config: Optional[ThemisScanConfig] = None) -> FastAPI:
    config = config or get_config()

    app = FastAPI(
        title="ThemisScan API",
        version=__version__,
        docs_url="/docs",
        lifespan=lifespan,
    )
    app.state.config = config
    # Shared by all requests, closed on shutdown. Always analyzes directly.
    app.state.analyzer = ContractAnalyzer(config, backend=DirectAnalysisBackend(config))

    # Exception handlers
    app.add_exception_handler(ThemisScanError, themisscan_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Middleware (order matters - first added = innermost)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.allowed_origin or "*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    # Routes
    app.include_router(health.router, tags=["Health"])
    app.include_router(analyze.router, prefix="/api", tags=["Analysis"])
    return app
