"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — disposes of the database engine on shutdown
  2. CORS headers — attached to every response, including pre-flight
  3. Exception handlers — maps domain errors to {"error": ...} responses
  4. Router registration — mounts the credentials endpoint

Running locally:
    uvicorn app.main:app --reload

The Directory Store schema is owned elsewhere; this service never creates
or migrates tables.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import CORS_HEADERS, settings
from app.database import engine
from app.exceptions import register_exception_handlers
from app.routers import credentials


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # --- Shutdown ---
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Administrative password provisioning for directory users",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

# Fixed, permissive CORS headers. Pre-flight is answered by the OPTIONS
# route with 204, so Starlette's CORSMiddleware (which answers 200) is not used.
@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(credentials.router, tags=["Credentials"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for deployment probes."""
    return {"status": "ok", "version": settings.APP_VERSION}
