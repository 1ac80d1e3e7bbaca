import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from media_optimizer import __version__
from media_optimizer.config import settings
from media_optimizer.api.router import api_router
from media_optimizer.services.batch_service import BatchRegistry
from media_optimizer.services.metadata_extractor import reset_strategy
from media_optimizer.utils.log_buffer import recent_logs

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    recent_logs.attach()
    app.state.batches = BatchRegistry()
    logger.info(f"Media Optimizer API ready on port {settings.API_PORT}")
    yield
    reset_strategy()
    logger.info("Shutting down Media Optimizer API...")


app = FastAPI(
    title="Media Optimizer API",
    description="Media file analysis and encoding recommendations",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")
