from fastapi import APIRouter

from media_optimizer import __version__
from media_optimizer.services.metadata_extractor import current_strategy

router = APIRouter()


@router.get("/health")
async def health():
    strategy = current_strategy()
    return {
        "status": "ok",
        "version": __version__,
        "strategy": strategy.name if strategy else None,
    }
