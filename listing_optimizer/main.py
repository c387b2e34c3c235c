# listing_optimizer/main.py
"""Application factory.

Run with `uvicorn listing_optimizer.main:create_app --factory`. Collaborators
(engine, scraper, optimizer) are built once here and kept on `app.state`;
tests pass their own.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from .api.routes import router as api_router
from .config import load_settings
from .db import Base, create_db_engine, make_session_factory
from .errors import ListingError, ValidationError
from .optimizer import build_optimizer
from .scrape import build_scraper
from .utils import logger
from . import models  # noqa: F401 ensure models are imported so tables are known


def _register_error_handlers(app: FastAPI, expose_details: bool):
    @app.exception_handler(ValidationError)
    def handle_validation(request: Request, exc: ValidationError):
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(ListingError)
    def handle_listing_error(request: Request, exc: ListingError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
        message = str(exc) if expose_details else f"Internal error ({exc.__class__.__name__})"
        return JSONResponse(status_code=exc.status_code, content={"error": message})

    @app.exception_handler(RequestValidationError)
    def handle_bad_body(request: Request, exc: RequestValidationError):
        logger.info("Malformed body for %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": "Invalid fields"})

    @app.exception_handler(StarletteHTTPException)
    def handle_http(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)

    @app.exception_handler(Exception)
    def handle_unexpected(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        message = str(exc) if expose_details else "Internal error"
        return JSONResponse(status_code=500, content={"error": message})


def create_app(settings=None, *, engine=None, scraper=None, optimizer=None) -> FastAPI:
    if settings is None:
        settings = load_settings()
    if engine is None:
        engine = create_db_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )

    app = FastAPI(title="Listing Optimizer")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.scraper = scraper or build_scraper(settings)
    app.state.optimizer = optimizer or build_optimizer(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    _register_error_handlers(app, settings.expose_error_details)
    app.include_router(api_router)

    @app.on_event("startup")
    def on_startup_create_tables():
        Base.metadata.create_all(bind=engine)
        logger.info("Listing tables ready")

    return app
