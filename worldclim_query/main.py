from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from worldclim_query.catalog.registry import load_registry
from worldclim_query.logging_config import setup_logging
from worldclim_query.settings import S
from worldclim_query.worldclim.routes import router as worldclim_router

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Registry errors are fatal here, before any request is served.
    registry = load_registry()
    logger.info("WorldClim registry ready: %d variables", len(registry))
    yield


app = FastAPI(title="WorldClim Spatial Query API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=(["*"] if ("*" in S.cors_origins) else S.cors_origins),
    allow_origin_regex=S.cors_origin_regex,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(worldclim_router)


@app.get("/health")
def health() -> dict:
    return {"ok": True}
