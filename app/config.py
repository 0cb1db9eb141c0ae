from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    gemini_api_key: str = Field(..., alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-1.5-flash", alias="GEMINI_MODEL")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models",
        alias="GEMINI_BASE_URL",
    )

    http_timeout: Optional[float] = Field(default=120.0, alias="HTTP_TIMEOUT")
    upload_dir: Optional[str] = Field(default=None, alias="UPLOAD_DIR")
    session_ttl: Optional[float] = Field(default=1800.0, alias="SESSION_TTL")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def gemini_endpoint(self) -> str:
        return f"{self.gemini_base_url.rstrip('/')}/{self.gemini_model}:generateContent"


settings = Settings()
