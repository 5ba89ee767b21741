import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

# Load env from recurspace/.env before settings are read
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

from recurspace.core.config import settings, validate_config  # noqa: E402
from recurspace.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from recurspace.core.logging import LOGGER_NAME, configure_logging  # noqa: E402
from recurspace.core.middleware.metrics import MetricsMiddleware  # noqa: E402
from recurspace.core.middleware.request_id import RequestIdMiddleware  # noqa: E402
from recurspace.core.validation import validate_env  # noqa: E402
from recurspace.api import analytics, dashboard, health, metrics, optimizations, records, suggestions  # noqa: E402
from recurspace.features.optimizations.store import get_store  # noqa: E402

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger(LOGGER_NAME)
    logger.info("Starting RecurSpace insight service...")
    app.state.startup_time = time.time()
    store = get_store()
    logger.info("store.selected", extra={"event_type": type(store).__name__})
    try:
        yield
    finally:
        logging.getLogger(LOGGER_NAME).info("Stopping RecurSpace insight service...")


app = FastAPI(title="RecurSpace - Insight Engine", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(MetricsMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(optimizations.router)
app.include_router(records.router)
app.include_router(suggestions.router)
app.include_router(analytics.router)
app.include_router(dashboard.router)
app.include_router(health.root_router)
app.include_router(metrics.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("recurspace.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=False)
