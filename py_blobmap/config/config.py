import os
from pathlib import Path

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env for local/dev environments only for values missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    for k, v in file_env.items():
        if k not in os.environ and v is not None:
            os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(default=False, description="Enable debug mode")
    allowed_origins: str = Field(
        default="http://localhost:3000", description="CORS allowed origins"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (console or json)")

    # Map Generation Limits
    max_map_width: float = Field(default=4000, description="Max allowed map width")
    max_map_height: float = Field(default=4000, description="Max allowed map height")
    max_cells: int = Field(default=200000, description="Max estimated cell count per map")
    max_stored_maps: int = Field(default=32, description="Maps kept in memory by the API")

    @property
    def cors_origins(self):
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


# Instantiate singleton settings object
settings = Settings()
