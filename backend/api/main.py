import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.core.config import settings
from backend.core.db import count_items, init_db
from backend.api.routers import (
    imports_router,
    items_router,
    storages_router,
    activities_router,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown."""
    init_db()
    logger.info(f"Theatre Stock API ready (database: {settings.DB_PATH})")

    yield  # Application runs here


app = FastAPI(title="Theatre Stock", version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "version": VERSION, "items": count_items()}


app.include_router(imports_router)
app.include_router(items_router)
app.include_router(storages_router)
app.include_router(activities_router)
