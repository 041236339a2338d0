from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    data_dir: Path = BASE_DIR.parent / "data" / "atlas"
    organizations_collection: str = "organizations"
    system_config_path: str = "system/config"
    allow_public_maps: bool = True
    log_level: str = "INFO"

    model_config = {
        "env_prefix": "ATLAS_",
        "env_file": BASE_DIR / ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
