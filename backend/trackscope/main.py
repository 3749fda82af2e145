"""
FastAPI application serving track telemetry queries.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trackscope.api.tracks import folder_router, router as tracks_router
from trackscope.services.repository import get_repository, init_repository


logging.basicConfig(
    level=os.getenv("TRACKSCOPE_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"
DATA_FOLDER_ENV = "TRACKSCOPE_DATA_FOLDER"
DEFAULT_DATA_FOLDER = "./data/tracks"


def configured_data_folder() -> Path:
    return Path(os.getenv(DATA_FOLDER_ENV, DEFAULT_DATA_FOLDER))


@asynccontextmanager
async def lifespan(app: FastAPI):
    # a folder chosen through the API before startup wins over the environment
    if get_repository().data_folder is None:
        folder = configured_data_folder()
        if folder.is_dir():
            init_repository(folder)
        else:
            logger.info(f"No track folder at {folder}, only the sample track is served")
    yield


app = FastAPI(title="Track Telemetry Timeline", version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(tracks_router)
app.include_router(folder_router)


@app.get("/")
async def root():
    return {"name": app.title, "version": VERSION, "status": "running"}


@app.get("/health")
async def health_check():
    repo = get_repository()
    return {
        "status": "healthy",
        "data_folder": str(repo.data_folder) if repo.data_folder else None,
        "track_count": repo.track_count,
    }
