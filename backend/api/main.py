"""
GroupBuy API — FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from core.config import get_settings

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("GroupBuy API starting up", version=settings.app_version, env=settings.app_env)
    yield
    logger.info("GroupBuy API shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Chat-driven group-buy ordering with atomic stock reservation",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies, ids and query params are client errors (400), nothing is mutated."""
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors())},
    )


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and register routers
from api.v1.routers import (
    customers,
    line,
    orders,
    products,
)
from api.v1.routers import settings as settings_router

app.include_router(products.router)
app.include_router(orders.router)
app.include_router(customers.router)
app.include_router(settings_router.router)
app.include_router(line.router)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers."""
    return {"status": "healthy", "version": settings.app_version}
