from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    composio_api_key: str | None = None
    composio_base_url: str = "https://backend.composio.dev"
    composio_timeout_seconds: float = 20.0

    llm_api_key: str | None = None
    llm_base_url: str = "https://api.fireworks.ai/inference/v1"
    llm_model: str = "accounts/sentientfoundation/models/dobby-unhinged-llama-3-3-70b-new"
    llm_timeout_seconds: float = 30.0
    llm_extraction_temperature: float = 0.1
    llm_extraction_max_tokens: int = 1000
    llm_response_temperature: float = 0.7
    llm_response_max_tokens: int = 300

    extraction_max_attempts: int = 3
    extraction_retry_delay_seconds: float = 0.5
    agent_request_timeout_seconds: float = 60.0

    frontend_url: str = "http://localhost:3000"
    allowed_origins: str = "http://localhost:3000"
    connection_redirect_path: str = "/connection-success"
    app_env: str = "production"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_development(self) -> bool:
        return (self.app_env or "").strip().lower() == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
