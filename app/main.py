import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from app.core.config import settings
from app.core.errors import AppError, StorageUnavailableError, ValidationError
from app.core.logging import configure_logging
from app.api.v1.api import api_router
from app.db.session import billing_engine, engine

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

# CORS: use CORS_ORIGINS from env in production; default to localhost for dev
_default_origins = [
    "http://127.0.0.1:3000", "http://localhost:3000",
    "http://127.0.0.1:5173", "http://localhost:5173",
]
_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else _default_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    fields = [str(p) for p in first.get("loc", ()) if isinstance(p, str) and p not in ("body", "query", "path")]
    err = ValidationError(
        first.get("msg", "Invalid request"),
        field=fields[-1] if fields else None,
        details=[{"loc": [str(p) for p in e.get("loc", ())], "msg": e.get("msg")} for e in errors[1:]] or None,
    )
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


@app.exception_handler(OperationalError)
def storage_error_handler(request: Request, exc: OperationalError):
    logger.error("Storage unavailable during %s %s: %s", request.method, request.url.path, exc)
    err = StorageUnavailableError()
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


@app.exception_handler(Exception)
def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error during %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=AppError().to_dict())


app.include_router(api_router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/ready")
def ready():
    try:
        for eng in {id(engine): engine, id(billing_engine): billing_engine}.values():
            with eng.connect() as conn:
                conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Readiness check failed: %s", e)
        err = StorageUnavailableError()
        return JSONResponse(status_code=err.status_code, content=err.to_dict())
    return {"status": "ready"}
