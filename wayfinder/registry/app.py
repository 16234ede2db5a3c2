from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import APIRouter
from loguru import logger

from wayfinder.registry.log import setup_logging
from wayfinder.registry.managers.workspaces import projects_root
from wayfinder.registry.settings import WayfinderSettings, get_settings
from wayfinder.registry.store.base import RecordStore
from wayfinder.registry.store.local import LocalRecordStore


def create_record_store(settings: WayfinderSettings) -> RecordStore:
    """Create the record store backend based on configuration."""
    if settings.record_store == "s3":
        from wayfinder.registry.store.s3 import S3RecordStore

        if not (settings.s3_endpoint and settings.s3_bucket and settings.s3_access_key and settings.s3_secret_key):
            msg = "record_store=s3 requires WAYFINDER_S3_ENDPOINT, _BUCKET, _ACCESS_KEY and _SECRET_KEY"
            raise ValueError(msg)
        return S3RecordStore(
            bucket=settings.s3_bucket,
            endpoint_url=settings.s3_endpoint,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key.get_secret_value(),
            prefix=settings.data_prefix,
            region=settings.s3_region,
            path_style=settings.s3_path_style,
        )
    return LocalRecordStore(settings.data_root, prefix=settings.data_prefix)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("Workspace registry starting (host={}, port={})", settings.host, settings.port)
    prefix_info = f", prefix={settings.data_prefix}" if settings.data_prefix else ""
    logger.info("Data root: {} (store={}{})", settings.data_root, settings.record_store, prefix_info)

    _app.state.record_store = create_record_store(settings)
    _app.state.projects_root = projects_root(settings.data_root, settings.data_prefix)

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Workspace registry shutting down")


app = FastAPI(title="Wayfinder Workspace Registry", lifespan=lifespan)

# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


# -- Registry routers --------------------------------------------------------
from wayfinder.registry.routers.workspaces import router as workspaces_router  # noqa: E402

api.include_router(workspaces_router)

app.include_router(api)
