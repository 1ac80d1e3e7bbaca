from pydantic_settings import BaseSettings
from typing import List
import json
import shutil


def _find_binary(name: str, fallback: str) -> str:
    return shutil.which(name) or fallback


class Settings(BaseSettings):
    MEDIAINFO_PATH: str = _find_binary("mediainfo", "/usr/local/bin/mediainfo")
    FFPROBE_PATH: str = _find_binary("ffprobe", "/usr/local/bin/ffprobe")
    ENCODER_BINARY: str = "ffmpeg"
    LOG_LEVEL: str = "INFO"
    API_PORT: int = 9876
    API_HOST: str = "0.0.0.0"
    CORS_ORIGINS: str = '["http://localhost:9876"]'

    # Precise capability readiness polling: attempts x delay
    PROBE_ATTEMPTS: int = 50
    PROBE_DELAY_SECONDS: float = 0.1
    PROBE_TIMEOUT_SECONDS: float = 10.0
    READ_CHUNK_SIZE: int = 1024 * 1024

    DEFAULT_PROFILE: str = "balanced"
    OUTPUT_SUFFIX: str = "_optimized"
    BATCH_CONCURRENCY: int = 1

    @property
    def cors_origins_list(self) -> List[str]:
        return json.loads(self.CORS_ORIGINS)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
