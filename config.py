from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime settings, read from the environment or a local .env file.

    Only deployment concerns live here. Product limits such as the row cap,
    the page size and the export filename are module constants because the
    UI contract depends on them.
    """
    app_name: str = Field(default="WhatsApp Number Validator", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")

    provider_url: str = Field(
        default="https://proweblook.com/api/v1/checkwanumber",
        alias="PROVIDER_URL",
    )
    # None disables the client-side timeout entirely
    provider_timeout: Optional[float] = Field(default=30.0, alias="PROVIDER_TIMEOUT")

    log_dir: str = Field(default="logs", alias="LOG_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    cors_origins: List[str] = Field(default=["*"], alias="CORS_ORIGINS")

    model_config = SettingsConfigDict(
        env_file=(".env", ),
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
