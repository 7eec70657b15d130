"""FastAPI application entry point."""
import os
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from contextlib import asynccontextmanager

from survey_backend.config import Settings, get_settings
from survey_backend.database import build_sessionmaker, engine_from_settings
from survey_backend.middleware.rate_limit import rate_limit_middleware
from survey_backend.routers import auth, health, survey
from survey_backend.utils.cache import ResultsCache
from survey_backend.utils.rate_limiter import InMemoryRateLimiter
from survey_backend.version import APP_VERSION

logs_dir = Path(os.getenv("LOG_DIR", "logs"))

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

api_logger = logging.getLogger("survey.api")
logger = logging.getLogger(__name__)


class SQLTransactionFilter(logging.Filter):
    def filter(self, record):
        # Only filter INFO level messages
        if record.levelno == logging.INFO and hasattr(record, 'getMessage'):
            message = record.getMessage()

            # Filter out ROLLBACK, BEGIN, and "generated in" messages completely
            if any(keyword in message for keyword in ['ROLLBACK', 'BEGIN', 'COMMIT', 'generated in']):
                return False

            # Collapse multi-line statements onto one line
            if any([kw in message for kw in ['SELECT', 'DELETE', 'INSERT']]):
                record.msg = ' '.join(message.split())
                record.args = ()

        return True


def configure_logging(settings: Settings) -> None:
    """Console + rotating file logging; verbosity follows the environment."""
    logs_dir.mkdir(exist_ok=True)
    level = logging.DEBUG if settings.environment == "development" else logging.INFO

    # Rotating handler for general logs (1MB max size, keep 5 backup files)
    rotating_handler = RotatingFileHandler(
        logs_dir / "survey.log",
        maxBytes=1024 * 1024,
        backupCount=5,
        encoding='utf-8',
    )
    rotating_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # Rotating handler for SQL logs
    sql_rotating_handler = RotatingFileHandler(
        logs_dir / "survey_sql.log",
        maxBytes=1024 * 1024,
        backupCount=5,
        encoding='utf-8',
    )
    sql_rotating_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # Rotating handler for API request logs (2MB max size, keep 15 backup files)
    api_rotating_handler = RotatingFileHandler(
        logs_dir / "survey_api.log", maxBytes=2 * 1024 * 1024, backupCount=15, encoding='utf-8'
    )
    api_rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))

    # Force=True overrides any existing configuration (e.g., from uvicorn)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            rotating_handler,
        ],
        force=True,
    )

    api_logger.handlers.clear()
    api_logger.addHandler(api_rotating_handler)
    api_logger.setLevel(logging.INFO)
    api_logger.propagate = False

    uvicorn_access_logger = logging.getLogger("uvicorn.access")
    uvicorn_access_logger.setLevel(logging.INFO)
    if rotating_handler not in uvicorn_access_logger.handlers:
        uvicorn_access_logger.addHandler(rotating_handler)

    # SQL statements go to their own file only
    sqlalchemy_logger = logging.getLogger("sqlalchemy.engine.Engine")
    sqlalchemy_logger.handlers.clear()
    sqlalchemy_logger.addHandler(sql_rotating_handler)
    sqlalchemy_logger.setLevel(logging.INFO)
    sqlalchemy_logger.propagate = False
    sqlalchemy_logger.addFilter(SQLTransactionFilter())

    logger.info(f"Logging initialized (level={logging.getLevelName(level)}, dir={logs_dir.absolute()})")


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Bring the schema up to date before serving traffic.

    Any failure here propagates and aborts startup.
    """
    from survey_backend.migrations import run_migrations

    settings = app_instance.state.settings
    engine = app_instance.state.engine
    logger.info("=" * 60)
    logger.info("Survey API Starting")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Database: {settings.database_url.split('@')[-1]}")
    logger.info(f"Rate limiting: {'disabled' if settings.rate_limit_disabled else 'enabled'}")
    logger.info(f"Configured trusted proxies: {settings.trusted_proxy_list}")
    logger.info("=" * 60)

    await run_migrations(engine)

    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Survey API Shutting Down... Goodbye!")


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as 400 with per-field messages."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    errors = []
    for error in exc.errors():
        loc = error.get("loc", [])
        msg = error.get("msg", "Validation error")
        error_type = error.get("type", "unknown")

        field_path = " -> ".join(str(x) for x in loc[1:]) if len(loc) > 1 else "unknown field"
        errors.append({
            "field": field_path,
            "message": msg,
            "type": error_type
        })

    return JSONResponse(
        status_code=400,
        content={
            "detail": "Request validation failed",
            "errors": errors
        }
    )


async def log_requests(request: Request, call_next):
    """
    Log every API request and response with timing and client info to the
    dedicated API log file.
    """
    start_time = time.time()

    client_ip = request.client.host if request.client else "unknown"
    method = request.method
    path = request.url.path
    request_id = f"{method}:{path}:{int(start_time * 1000) % 100000}"

    api_logger.info(f">> {request_id} | START | {method} {path} | IP: {client_ip}")

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        api_logger.error(
            f"<< {request_id} | EXCEPTION | {method} {path} | "
            f"Error: {str(e)[:100]} | "
            f"Time: {process_time:.3f}s | "
            f"IP: {client_ip}"
        )
        raise

    process_time = time.time() - start_time
    api_logger.info(
        f"<< {request_id} | COMPLETE | {method} {path} | "
        f"Status: {response.status_code} | "
        f"Time: {process_time:.3f}s | "
        f"IP: {client_ip}"
    )
    return response


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application with its own engine, limiter and cache state."""
    settings = settings or get_settings()

    app_instance = FastAPI(
        title="CMS Survey API",
        description="Survey collection backend",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    app_instance.state.settings = settings
    app_instance.state.engine = engine_from_settings(settings)
    app_instance.state.sessionmaker = build_sessionmaker(app_instance.state.engine)
    app_instance.state.rate_limiter = InMemoryRateLimiter(idle_ttl=settings.rate_limit_idle_seconds)
    app_instance.state.results_cache = ResultsCache(ttl=settings.results_cache_ttl_seconds)

    app_instance.add_exception_handler(RequestValidationError, validation_exception_handler)
    # Registered before log_requests, so rejections are logged as well
    app_instance.middleware("http")(rate_limit_middleware)
    app_instance.middleware("http")(log_requests)

    if settings.allowed_origin_list:
        app_instance.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origin_list,
            allow_credentials=True,
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    app_instance.include_router(survey.router)
    app_instance.include_router(auth.router)
    app_instance.include_router(health.router)

    @app_instance.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "CMS Survey API",
            "version": APP_VERSION,
            "environment": settings.environment,
            "docs": "/docs",
        }

    return app_instance


configure_logging(get_settings())
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port, proxy_headers=False)
