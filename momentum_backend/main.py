import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Load env from momentum_backend/.env
backend_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(backend_dir, ".env"))

# Import after dotenv is loaded
from momentum_backend.core.config import settings, validate_config  # noqa: E402
from momentum_backend.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from momentum_backend.core.logging import configure_logging  # noqa: E402
from momentum_backend.core.middleware.request_id import RequestIdMiddleware  # noqa: E402
from momentum_backend.api import habits, health, missions, profile, review, squads  # noqa: E402
from momentum_backend.features.store.service import get_store  # noqa: E402

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("momentum")
    logger.info("Starting Momentum backend...")
    app.state.startup_time = time.time()
    # Rollover must commit before the first completion is accepted
    emitted = get_store().load()
    logger.info("Startup rollover applied", extra={"event_type": "rollover.startup", "events": len(emitted)})
    try:
        yield
    finally:
        logging.getLogger("momentum").info("Stopping Momentum backend...")


app = FastAPI(title="Momentum - Backend", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# CORS (adjust origins in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(habits.router, tags=["habits"])
app.include_router(profile.router, tags=["profile"])
app.include_router(missions.router, tags=["missions"])
app.include_router(squads.router, tags=["squads"])
app.include_router(review.router, tags=["review"])
app.include_router(health.router, tags=["health"])
app.include_router(health.root_router, tags=["health"])
