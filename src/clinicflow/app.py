"""
FastAPI application factory and main app configuration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routers import catalog, health, workflow
from .api.utils.responses import fail
from .core.config import Settings, get_settings
from .core.exceptions import ConfigurationError, DatabaseError
from .core.structured_logger import configure_logging
from .domain.errors import DomainError
from .middleware import PerformanceMiddleware, RequestIDMiddleware

logger = logging.getLogger("clinicflow")

# Domain error code -> HTTP status; anything unlisted is a 400
DOMAIN_ERROR_STATUS = {
    "VISIT_NOT_FOUND": 404,
    "PATIENT_NOT_FOUND": 404,
    "LAB_ORDER_NOT_FOUND": 404,
    "CATALOG_ITEM_NOT_FOUND": 404,
    "INVALID_TRANSITION": 409,
    "STAGE_MISMATCH": 409,
    "ALREADY_DISPENSED": 409,
    "INSUFFICIENT_STOCK": 409,
    "CONCURRENT_MODIFICATION": 409,
    "INVALID_VISIT_DATA": 422,
}


async def init_visit_store(settings: Settings) -> None:
    """Connect Beanie when visits are kept in MongoDB."""
    if settings.workflow.store != "mongo":
        logger.info("Using in-memory visit store")
        return

    if not settings.database.uri:
        raise ConfigurationError("MONGO_URI is required when WORKFLOW_STORE=mongo")

    import certifi
    from beanie import init_beanie
    from pymongo import AsyncMongoClient

    from .adapters.db.mongo.models.visit_m import VisitMongo

    mongo_uri = settings.database.uri
    try:
        # Enable TLS only for Atlas SRV URIs
        if mongo_uri.startswith("mongodb+srv://"):
            client = AsyncMongoClient(
                mongo_uri,
                serverSelectionTimeoutMS=15000,
                tls=True,
                tlsCAFile=certifi.where(),
                tlsAllowInvalidCertificates=False,
            )
        else:
            client = AsyncMongoClient(mongo_uri, serverSelectionTimeoutMS=15000)

        await init_beanie(database=client[settings.database.db_name], document_models=[VisitMongo])
    except Exception as e:
        logger.error(f"Database connection failed: {e}", exc_info=True)
        raise DatabaseError("Could not initialise the visit store", {"error": str(e)}) from e

    logger.info(f"Database connection established ({settings.database.db_name})")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.app_env}, debug: {settings.debug}")
    logger.info(
        f"Workflow: store={settings.workflow.store} stock_policy={settings.workflow.stock_policy.value} "
        f"auto_route_check_in={settings.workflow.auto_route_check_in}"
    )

    await init_visit_store(settings)
    logger.info("Application startup completed successfully")
    yield
    logger.info(f"Shutting down {settings.app_name}")


def _error_body(request: Request, error: str, message: str, details=None) -> dict:
    return fail(request, error, message, details).model_dump(mode="json")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()
    configure_logging(settings.logging)

    app = FastAPI(
        title=settings.app_name,
        description="Patient-visit workflow engine for outpatient clinics",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        max_age=600,
    )
    app.add_middleware(PerformanceMiddleware)
    # Added last so it runs first and request_id is set for everything below
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)
    app.include_router(workflow.router)
    app.include_router(catalog.router)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        status_code = DOMAIN_ERROR_STATUS.get(exc.error_code, 400)
        return JSONResponse(
            status_code=status_code,
            content=_error_body(request, exc.error_code or "DOMAIN_ERROR", exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def pydantic_error_handler(request: Request, exc: RequestValidationError):
        error_details = jsonable_encoder(exc.errors())
        logger.warning(f"ValidationError on {request.method} {request.url.path}: {error_details}")

        error_messages = []
        for error in error_details:
            loc = " -> ".join(str(x) for x in error.get("loc", []))
            msg = error.get("msg", "Validation error")
            error_messages.append(f"{loc}: {msg}")
        return JSONResponse(
            status_code=422,
            content=_error_body(
                request,
                "INVALID_INPUT",
                f"Input validation failed: {'; '.join(error_messages)}",
                {"errors": error_details, "path": request.url.path},
            ),
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                request,
                "INTERNAL_ERROR",
                "An unexpected error has occurred. Please try again later.",
            ),
        )

    @app.get("/", tags=["health"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.app_env,
            "status": "running",
            "docs": "/docs",
            "endpoints": {
                "health": "/health",
                "check_in": "POST /workflow/check-in",
                "visit": "GET /workflow/visits/{visit_id}",
                "advance": "POST /workflow/visits/{visit_id}/advance",
                "available_steps": "GET /workflow/visits/{visit_id}/available-steps",
                "department_queue": "GET /workflow/queues/{department}",
                "stage_queue": "GET /workflow/queues/stage/{stage}",
                "queue_stats": "GET /workflow/queues/stats",
            },
        }

    return app


# Create the app instance
app = create_app()
