"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from iam.presentation import router as iam_router
from infrastructure.database.dependencies import close_database_connections
from infrastructure.logging import configure_logging
from infrastructure.observability import DefaultStartupProbe
from infrastructure.settings import get_settings
from infrastructure.version import __version__


@asynccontextmanager
async def identity_vault_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Logging configuration
    - Database engine lifecycle (created lazily, disposed on shutdown)
    """
    configure_logging()
    probe = DefaultStartupProbe()
    probe.application_started(get_settings().app_name, __version__)

    yield

    await close_database_connections()
    probe.application_stopped()


app = FastAPI(
    title="Identity Vault API",
    description="Verified sign-in with encrypted-at-rest identity records",
    version=__version__,
    lifespan=identity_vault_lifespan,
)

# Include IAM bounded context routes
app.include_router(iam_router)


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}
