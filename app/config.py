from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    db_path: Path = Path(__file__).resolve().parent.parent / "movies.db"
    log_level: str = "INFO"

    recent_cache_key: str = "MOVIE_RECENT"
    recent_cache_ttl_ms: int = 3000
    recent_limit: int = 10

    default_take: int = 5
    max_take: int = 100
    default_order: list[str] = ["id_DESC"]

    model_config = {"env_prefix": "MOVIE_CATALOG_"}


settings = Settings()
