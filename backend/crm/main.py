import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from crm.database import create_db_and_tables
from crm.config import settings
from crm.exceptions import CRMError, StorageError
from crm.logging import configure_logging
from crm.middleware import RequestLoggingMiddleware
from crm.realtime.manager import ConnectionRegistry
from crm.auth.router import router as auth_router
from crm.users.router import router as users_router
from crm.leads.router import router as leads_router
from crm.activities.router import router as activities_router
from crm.analytics.router import router as analytics_router
from crm.realtime.router import router as realtime_router

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    create_db_and_tables()
    logger.info("%s %s started", settings.APP_TITLE, settings.APP_VERSION)
    yield

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    lifespan=lifespan
)
# One registry per process, handed to handlers via crm.realtime.manager.get_connections
app.state.connections = ConnectionRegistry()
app.add_middleware(RequestLoggingMiddleware)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(leads_router)
app.include_router(activities_router)
app.include_router(analytics_router)
app.include_router(realtime_router)

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})

@app.exception_handler(CRMError)
async def crm_error_handler(request: Request, exc: CRMError):
    if isinstance(exc, StorageError):
        # Keep storage internals out of responses
        logger.error("%s %s: %s", request.method, request.url.path, exc.message, exc_info=exc)
        return _error(exc.status_code, "Internal server error")
    return _error(exc.status_code, exc.message)

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"] if part != "body")
        problems.append(f"{location}: {error['msg']}" if location else error["msg"])
    return _error(400, "; ".join(problems) or "Invalid request")

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error(500, "Internal server error")

@app.get("/")
def read_root():
    return {"message": "Welcome to the CRM API"}

@app.get("/api/health")
def health():
    return {"status": "ok"}
