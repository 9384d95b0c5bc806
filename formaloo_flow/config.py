from typing import Literal, Optional

from pydantic import computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_empty=True, extra="ignore"
    )
    PROJECT_NAME: str = "Formaloo Flow"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # Formaloo API
    FORMALOO_API_URL: str = "https://api.formaloo.me"
    FORMALOO_FORMS_PAGE_SIZE: int = 25
    FORMALOO_MAX_FORM_PAGES: int = 100
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Public base the trigger registers as its callback when the host gives none
    WEBHOOK_BASE_URL: str = "http://localhost:8000"

    # Instance-scoped static data (webhook registrations)
    STATIC_DATA_BACKEND: Literal["memory", "redis"] = "memory"
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    NODE_PACKAGES_DIR: Optional[str] = None

    @field_validator("FORMALOO_API_URL", "WEBHOOK_BASE_URL")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("FORMALOO_FORMS_PAGE_SIZE", "FORMALOO_MAX_FORM_PAGES")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/0"

    def webhook_url_for(self, workflow_id: str, node_id: str) -> str:
        return f"{self.WEBHOOK_BASE_URL}{self.API_V1_STR}/webhooks/{workflow_id}/{node_id}"


settings = Settings()  # type: ignore
