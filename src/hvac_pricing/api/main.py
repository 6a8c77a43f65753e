from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config.settings import get_settings
from ..config.logging import setup_logging, get_logger
from ..engine.errors import (
    PricingError, InvalidInput, InvalidParameterSet, NoActiveParameterSet,
    NotFound, InvalidStateTransition, StoreUnavailable, Forbidden
)
from ..store.db import get_engine, init_db
from .catalog_api import router as catalog_router
from .pricing_api import router as pricing_router
from .projects_api import router as projects_router
from .settings_api import router as settings_router

logger = get_logger(__name__)

# Checked in order; subclasses first
ERROR_STATUS = (
    (InvalidInput, 422),
    (InvalidParameterSet, 422),
    (NoActiveParameterSet, 409),
    (NotFound, 404),
    (InvalidStateTransition, 409),
    (StoreUnavailable, 503),
    (Forbidden, 403),
)


def status_for(error: PricingError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db(get_engine())
    yield


settings = get_settings()

app = FastAPI(
    title="HVAC Pricing API",
    description="Device sell-price requests, approvals and parameter management",
    version="1.0.0",
    lifespan=lifespan,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(pricing_router)
app.include_router(settings_router)
app.include_router(catalog_router)
app.include_router(projects_router)


@app.exception_handler(PricingError)
async def pricing_error_handler(request: Request, exc: PricingError):
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.get("/")
async def root():
    return {"status": "online", "message": "HVAC Pricing API Active"}
