from fastapi import APIRouter
from typing import Dict, List

from media_optimizer.schemas.codec import Profile
from media_optimizer.services import codec_database as kb

router = APIRouter()


@router.get("/profiles", response_model=List[Profile])
async def list_profiles():
    return list(kb.PROFILES.values())


@router.get("/profiles/legacy", response_model=Dict[str, Profile])
async def list_legacy_presets():
    return kb.legacy_preset_view()


@router.get("/profiles/{profile_id}", response_model=Profile)
async def get_profile(profile_id: str):
    # Unknown ids resolve to the default profile rather than 404
    return kb.get_profile(profile_id)


@router.get("/codecs")
async def list_codecs():
    return {
        "video": list(kb.VIDEO_CODECS.values()),
        "audio": list(kb.AUDIO_CODECS.values()),
        "subtitle": list(kb.SUBTITLE_FORMATS.values()),
    }
