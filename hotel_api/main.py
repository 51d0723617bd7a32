"""FastAPI application setup for the hotel data API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import router as api_router
from .config import settings
from .services import get_services
from utils.logging_utils import get_tagged_logger, setup_logging

setup_logging(level=settings.log_level)
logger = get_tagged_logger(__name__, tag="main")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    # let in-flight error reports finish before the loop closes
    await get_services().reporter.drain()


app = FastAPI(title="Hotel Data API", lifespan=lifespan)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors as {"error": detail}."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Report anything that escaped a route and answer with a generic 500."""
    get_services().reporter.report_in_background(exc, f"{request.method} {request.url.path}", critical=True)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# API routes
app.include_router(api_router, prefix="/api")
