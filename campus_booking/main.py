"""
FastAPI application for student-teacher appointment booking

Scheduling rules live in the services; routers only translate HTTP
"""
import logging
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from contextlib import asynccontextmanager

from campus_booking.config.settings import get_settings
from campus_booking.core.exceptions import BookingServiceError
from campus_booking.core.middleware import correlation_id_middleware, request_logging_middleware
from campus_booking.core.monitoring import health_router
from campus_booking.api.v1.router import api_v1_router
from campus_booking.api.middleware.rate_limit_middleware import RateLimitMiddleware
from campus_booking.utils.my_logging import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(verbose=settings.DEBUG or settings.LOG_LEVEL.upper() == "DEBUG")
    logger.info(f"{settings.APP_NAME} starting up")

    routes = sorted(
        (method, route.path)
        for route in app.routes if isinstance(route, APIRoute)
        for method in route.methods
    )
    for method, path in routes:
        logger.debug(f"  {method:8} {path}")
    logger.info(f"Total routes registered: {len(routes)}")

    yield

    logger.info(f"{settings.APP_NAME} shutting down")


async def booking_error_handler(request: Request, exc: BookingServiceError):
    """Render every service error as {"detail": reason}"""
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path}: {exc.reason}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.reason},
        headers=exc.headers() or None,
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Role-based appointment booking between students and teachers",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_exception_handler(BookingServiceError, booking_error_handler)

    app.add_middleware(RateLimitMiddleware, requests_per_second=settings.RATE_LIMIT_PER_SECOND)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "api": "/api/v1/",
                "health": "/health",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "campus_booking.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
