"""Main FastAPI application"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from timelink import __version__
from timelink.api import dashboard, issues, sync
from timelink.config import settings
from timelink.models.base import engine, init_db
from timelink.scheduler import scheduler

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting TimeLink reconciliation service")
    await init_db()
    scheduler.start()
    yield
    # Shutdown
    logger.info("Stopping TimeLink reconciliation service")
    scheduler.stop()
    await engine.dispose()


app = FastAPI(
    title="TimeLink",
    description="Reconcile Toggl time entries with Jira issues",
    version=__version__,
    lifespan=lifespan,
)

# Include API routers
app.include_router(sync.router)
app.include_router(issues.router)
app.include_router(dashboard.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "TimeLink"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "timelink.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
