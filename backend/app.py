import sys
import pathlib
from contextlib import asynccontextmanager

# Ensure the project root (parent of backend/) is on sys.path so that
# ``import globetiles`` resolves without an install.
_project_root = str(pathlib.Path(__file__).parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend import config
from backend.routers import tiles
from backend.service import get_tile_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.INITIAL_ZOOM >= 0:
        service = get_tile_service()
        service.scene.request_zoom(config.INITIAL_ZOOM)
        service.schedule()
    yield


app = FastAPI(
    title="globetiles API",
    description="Vector tiles projected onto a globe, served as line-mesh buffers",
    version="0.1.0",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS -- the WebGL viewer pulls buffers cross-origin
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(tiles.router)


@app.get("/")
async def root():
    return {"status": "ok", "service": "globetiles API"}
