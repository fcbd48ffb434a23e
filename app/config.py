from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "resume_review"

    # Uploads
    upload_dir: str = "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024
    upload_chunk_size: int = 64 * 1024

    # Auth
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    token_ttl_hours: int = 24
    remember_me_ttl_days: int = 7

    # OpenRouter
    provider_service_name: str = "openrouter"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "openai/gpt-3.5-turbo"
    openrouter_timeout_seconds: float = 60.0
    openrouter_max_retries: int = 0
    prompt_char_limit: int = 3000

    log_level: str = "INFO"

    class Config:
        env_file = ".env"

@lru_cache()
def get_settings():
    return Settings()
