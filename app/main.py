import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from .admin import router as admin_router
from .database import create_tables, get_db, health_check
from .leads import router as leads_router
from .scores import router as scores_router

logger = logging.getLogger("uvicorn")

@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    logger.info(f"Environment: {config.ENVIRONMENT}")
    logger.info(f"CORS origin: {config.CORS_ORIGIN}")
    logger.info(f"API key protection: {'enabled' if config.API_KEY else 'disabled'}")
    yield

app = FastAPI(
    title="Escape Room Lead API",
    version="1.0.0",
    lifespan=lifespan,
    # Disable docs in production
    docs_url="/docs" if config.is_development else None,
    redoc_url="/redoc" if config.is_development else None,
    openapi_url="/openapi.json" if config.is_development else None
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path}")
    return await call_next(request)

# --- Error envelopes ---

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.info(f"Rejected malformed request to {request.url.path}: {errors}")
    in_query = any(error.get("loc", ("",))[0] == "query" for error in errors)
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Invalid query parameters" if in_query else "Invalid request body",
        },
    )

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error" if config.is_production else str(exc),
        },
    )

# --- Routes ---

@app.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    if await health_check(db):
        return {"status": "healthy", "database": "connected"}
    return JSONResponse(
        status_code=503,
        content={"status": "unhealthy", "database": "disconnected"},
    )

app.include_router(leads_router)
app.include_router(scores_router)
app.include_router(admin_router)
