import datetime
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reztek_service.config import settings
from reztek_service.errors import AuthError, StoreError
from reztek_service.logging_config import LoggingMiddleware, logger, setup_logging
from reztek_service.rate_limiting import setup_rate_limiting
from reztek_service.route_guard import AdminRouteGuardMiddleware
from reztek_service.routers import admin_routes, session_routes, tenant_routes
from reztek_service.supabase_client import (
    close_supabase_clients,
    get_supabase_admin_client,
    get_supabase_client,
    init_supabase_clients,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initializes the Supabase clients on startup and clears them on shutdown."""
    logger.info("Application startup sequence initiated.")
    try:
        await init_supabase_clients()
    except Exception as e:
        logger.error(
            f"Failed to initialize Supabase clients: {e.__class__.__name__}: {str(e)}"
        )
        # The health check reports the missing clients

    logger.info("Application startup complete.")
    yield

    logger.info("Application shutdown sequence initiated.")
    try:
        await close_supabase_clients()
    except Exception as e:
        logger.error(f"Error closing Supabase clients: {str(e)}")
    logger.info("Application shutdown complete.")


app = FastAPI(
    title="Reztek Residence Service API",
    description="Session negotiation, admin portal and tenant portal for residence maintenance.",
    version="1.0.0",
    root_path=settings.ROOT_PATH,
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Session",
            "description": "Sign-in, session cookies, verification and logout.",
        },
        {
            "name": "Admin Portal",
            "description": "Dashboard, maintenance requests, tenants, feedback and stock. Requires an admin session.",
        },
        {
            "name": "Tenant Portal",
            "description": "Tenant registration, profile, maintenance requests and feedback.",
        },
    ],
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.startup_time = time.time()

setup_logging(app)

setup_rate_limiting(app)

# Admin navigation is redirected before any handler runs
app.add_middleware(AdminRouteGuardMiddleware)

app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session_routes.router)
app.include_router(admin_routes.router)
app.include_router(tenant_routes.router)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.error(f"HTTPException: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    logger.error(f"AuthError {exc.kind.value}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.user_message})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"StoreError on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502, content={"detail": "The data store is unavailable. Please try again later."}
    )


def jsonable_errors(exc: RequestValidationError):
    # ctx may hold exception instances that JSON cannot encode
    return [
        {key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"ValidationError: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


@app.get("/health")
async def health():
    """Reports API status and whether the Supabase clients are initialized."""
    response = {
        "status": "ok",
        "version": app.version,
        "environment": settings.ENVIRONMENT.value,
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "uptime": time.time() - app.startup_time,
        "components": {"api": {"status": "ok"}},
    }

    for name, getter in (("supabase", get_supabase_client), ("supabase_admin", get_supabase_admin_client)):
        try:
            client = getter()
            response["components"][name] = (
                {"status": "ok"}
                if hasattr(client, "auth")
                else {"status": "error", "message": "Client missing expected attributes"}
            )
        except RuntimeError as e:
            logger.error(f"Health check - {name} client error: {str(e)}")
            response["components"][name] = {
                "status": "error",
                "message": "Client not initialized",
            }

        if response["components"][name]["status"] != "ok":
            response["status"] = "degraded"

    logger.debug(f"Health check completed with status: {response['status']}")
    return JSONResponse(content=response, status_code=200)
