"""
Student Registry - Backend Application

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from student_registry.core.config import get_config, get_database_path, get_log_path
from student_registry.core.logging import setup_logging, get_logger
from student_registry.services.directory import StorageError
from student_registry.api import api_router


# Record startup time globally
_startup_time = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes resources on startup and cleans up on shutdown.
    """
    # Startup
    global _startup_time
    _startup_time = datetime.utcnow().isoformat()
    logger = setup_logging()
    log_path = get_log_path()
    logger.info("Starting Student Registry...")
    logger.debug("Log level: %s, log file: %s", get_config().logging.level, log_path)

    # Tables are created by scripts/init_db.py, not on startup.
    logger.info(f"Database: {get_database_path()}")

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")


# Create FastAPI application
app = FastAPI(
    title="Student Registry",
    description="Student registration, cohorts, reminder points and reports for a Quran school",
    version="0.1.0",
    lifespan=lifespan,
)

# Request logging middleware (flow-wise: log each request and response)
@app.middleware("http")
async def log_requests(request, call_next):
    logger = get_logger()
    method = request.method
    path = request.url.path
    logger.debug("Request started: %s %s", method, path)
    response = await call_next(request)
    logger.debug("Request completed: %s %s -> %s", method, path, response.status_code)
    return response


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    """The store rejected a write; nothing was committed."""
    return JSONResponse(status_code=503, content={"detail": str(exc)})


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "name": "Student Registry",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint with startup time."""
    return {
        "status": "healthy",
        "startup_time": _startup_time,
        "timestamp": datetime.utcnow().isoformat(),
    }


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(
        "main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.debug,
    )
