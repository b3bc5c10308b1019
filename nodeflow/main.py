"""
NodeFlow - FastAPI Application Entry Point.

Serves the registered sample workflows: list them, inspect their graphs
and run them against a shared context.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from nodeflow.config import settings
from nodeflow.api.routes import workflows
from nodeflow.workflows import workflow_registry


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Registered workflows: {[w.name for w in workflow_registry]}")

    yield

    logger.info("Shutting down...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="""
## NodeFlow API

A minimal async workflow engine: nodes with a prep/exec/post lifecycle,
routed by the action labels they return.

### Features
- **Nodes**: prep, exec and post steps with retries and fallbacks
- **Flows**: graph traversal by action label, nestable inside other flows
- **Batch flows**: one graph pass per parameter set
- **Handoff queues**: turn-taking between concurrently running flows

### Quick Start
1. List workflows: `GET /workflows`
2. Inspect a workflow graph: `GET /workflows/{name}`
3. Run it: `POST /workflows/{name}/run`
4. Check a run: `GET /workflows/runs/{run_id}`
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(workflows.router)


# ============================================================
# Root Endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root():
    """API root - returns basic info and links."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "A minimal async workflow engine",
        "docs": "/docs",
        "redoc": "/redoc",
        "endpoints": {
            "workflows": "/workflows",
            "runs": "/workflows/runs",
        },
    }


@app.get("/health", tags=["Root"])
async def health():
    """Health check endpoint."""
    from nodeflow.storage.memory import run_storage

    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "workflows_count": len(workflow_registry),
        "runs_count": len(run_storage),
    }


# ============================================================
# Error Handlers
# ============================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception(f"Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        },
    )
