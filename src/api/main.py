"""FastAPI application entry point."""

import sys
import logging
import tomllib
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from dotenv import load_dotenv

# Load environment variables from .env file
# Must be called before importing modules that read env vars (like the Graph adapter)
load_dotenv()

# main.py is at src/api/main.py, so src is two levels up
_src_path = Path(__file__).parent.parent
sys.path.insert(0, str(_src_path))

from api.dependencies import (
    REQUIRED_SETTINGS,
    close_directory_provider,
    require_setting,
    task_queue,
)
from api.routes import health, users
from utils.logging import setup_structured_logging

setup_structured_logging()

logger = logging.getLogger(__name__)

# Read version from pyproject.toml (single source of truth)
_project_root = _src_path.parent
with open(_project_root / "pyproject.toml", "rb") as f:
    VERSION = tomllib.load(f)["project"]["version"]

SERVICE_NAME = "Directory Users API"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown logic."""
    # Missing issuer configuration is fatal at startup
    for name in REQUIRED_SETTINGS:
        require_setting(name)

    await task_queue.start()
    logger.info("Service started", extra={"service": SERVICE_NAME, "version": VERSION})

    yield

    # Let queued deletions finish before closing the Graph connection pool
    await task_queue.stop(drain=True)
    await close_directory_provider()
    logger.info("Service stopped", extra={"service": SERVICE_NAME})


app = FastAPI(title=SERVICE_NAME, version=VERSION, lifespan=lifespan)

app.include_router(users.router)
app.include_router(health.router)
