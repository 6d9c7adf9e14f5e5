"""
FastAPI application entry point.
Main application setup and configuration.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError as PydanticValidationError
import logging

from homesapp.config import settings
from homesapp.database import test_database_connection, close_db_connection
from homesapp.routers import ALL_ROUTERS
from homesapp.utils.exceptions import APIException
from homesapp.services.error_handler import ErrorHandlerService
from homesapp.middleware.validation import ValidationMiddleware

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    if not await test_database_connection():
        logger.error("Failed to connect to database on startup")

    yield

    logger.info("Shutting down application")
    await close_db_connection()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Backend of the HomesApp real-estate platform.

    ## Features

    * **Properties**: listings with an approval workflow, partial edits and staff assignment
    * **Appointments and offers**: visit booking, client presentation cards, rental offers
    * **External agencies**: leads with duplicate detection, layered commission rates, biweekly accounting
    * **Documents**: offer, tenant and owner forms rendered as PDF

    ## Authentication

    Use `/api/auth/login` to obtain a JWT. Send it as `Authorization: Bearer <token>`,
    or rely on the session cookie the login sets.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Authentication", "description": "Registration, login and token management"},
        {"name": "Administration", "description": "User approval, roles, permissions and agencies"},
        {"name": "Properties", "description": "Property listings and approval workflow"},
        {"name": "Appointments", "description": "Property visits"},
        {"name": "Catalog", "description": "Presentation cards, service providers and offers"},
        {"name": "Documents", "description": "PDF forms"},
        {"name": "External Commissions", "description": "Agency commission configuration"},
        {"name": "External Leads", "description": "Agency leads"},
        {"name": "External Accounting", "description": "Agency payments and reports"},
        {"name": "Health", "description": "System health"},
    ],
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Content-Disposition"],
)

app.add_middleware(
    ValidationMiddleware,
    max_request_size=settings.max_request_size,
    api_prefix=settings.api_prefix,
    enable_request_logging=settings.debug,
    enable_rate_limiting=settings.is_production,
)

for router in ALL_ROUTERS:
    app.include_router(router, prefix=settings.api_prefix)


# Global exception handlers using ErrorHandlerService
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    return ErrorHandlerService.handle_api_exception(exc, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    return ErrorHandlerService.handle_database_error(exc, request)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Framework errors such as unknown routes and disallowed methods."""
    return ErrorHandlerService.handle_http_exception(exc, request)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    return ErrorHandlerService.handle_unexpected_error(exc, request)


@app.get("/", tags=["Health"])
async def root():
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json"
        },
        "api_prefix": settings.api_prefix
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint with database connectivity test.
    Used by container health checks and load balancers.
    """
    if not await test_database_connection():
        raise HTTPException(status_code=503, detail="Database connection failed")

    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "homesapp.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
