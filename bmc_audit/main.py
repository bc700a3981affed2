"""Main FastAPI application.

Entry point for the BMC audit service.
"""

import logging
import shutil
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from bmc_audit.api.dependencies import get_checker_backend, get_settings
from bmc_audit.api.routes import audit
from bmc_audit.shared.logging_config import configure_logging

# Configure logging
settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


def checker_available() -> bool:
    """Whether the configured checker executable can be found."""
    return shutil.which(settings.checker_path) is not None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events using the modern lifespan pattern.
    A missing checker does not stop startup: audits will halt with a
    CheckerUnavailable error and /health reports the service as degraded.
    """
    logger.info(f"Starting {settings.api_title} v{settings.api_version}")

    if checker_available():
        logger.info(f"Using checker: {shutil.which(settings.checker_path)}")
    else:
        logger.critical(
            f"Checker executable '{settings.checker_path}' not found on PATH; "
            "set CHECKER_PATH to enable audits"
        )

    yield

    active = get_checker_backend().active_process_count
    if active:
        logger.warning(f"Shutting down with {active} checker processes still running")
    logger.info(f"Shutting down {settings.api_title}")


app = FastAPI(
    lifespan=lifespan,
    title=settings.api_title,
    version=settings.api_version,
    description=f"""
# {settings.api_title}

{settings.api_description}.

## How It Works

```
    source file
        │
        ▼
    solver selection ──► loop discovery ──► strategy planning
                                                   │
                                                   ▼
                          one checker pass per check category
                          (default, memory, overflow, ub_shift, concurrency)
                                                   │
                                                   ▼
                                          aggregated report
```

## Documentation

- **Swagger UI**: Interactive API documentation and testing
- **ReDoc**: Alternative documentation view
- **Health Check**: Service status at `/health`
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Audit", "description": "Plan and run model checking audits"},
        {"name": "Health & Status", "description": "Service health check and status endpoints"},
    ],
)

# Note: allow_credentials=False is required when using allow_origins=["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(audit.router)


@app.get("/", include_in_schema=False)
async def root():
    """Redirect root to API documentation."""
    return RedirectResponse(url="/docs")


@app.get(
    "/health",
    status_code=200,
    summary="Service health check",
    description="""
    Check the health and status of the audit service.

    - **status**: `healthy` when the checker executable is available, `degraded` otherwise
    - **service**: Service name
    - **version**: Current API version
    - **checker**: Configured checker executable
    - **active_processes**: Checker processes currently running
    """,
    tags=["Health & Status"],
)
async def health_check():
    """Service health check endpoint.

    Returns:
        Dictionary containing service health status and metadata
    """
    return {
        "status": "healthy" if checker_available() else "degraded",
        "service": settings.api_title,
        "version": settings.api_version,
        "checker": settings.checker_path,
        "active_processes": get_checker_backend().active_process_count,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bmc_audit.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
