"""Application configuration using Pydantic Settings."""

from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings

# Resolve config: prefer system config (installed), fall back to repo .env (dev)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_SYSTEM_CONF = Path("/etc/aquaponia/aquaponia.conf")
_ENV_FILE = _SYSTEM_CONF if _SYSTEM_CONF.exists() else _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # ThingSpeak channel
    thingspeak_channel_id: str = ""
    thingspeak_read_api_key: str = ""
    thingspeak_write_api_key: str = ""
    thingspeak_base_url: str = "https://api.thingspeak.com"
    request_timeout_sec: float = 10.0

    # Collection
    poll_interval_sec: int = 60
    retention_check_interval_sec: int = 3600

    # Database
    db_path: str = "aquaponia.db"

    @model_validator(mode="after")
    def _resolve_db_path(self) -> "Settings":
        """Make db_path absolute: relative to /var/lib/aquaponia if installed, else project root."""
        p = Path(self.db_path)
        if not p.is_absolute():
            if _ENV_FILE == _SYSTEM_CONF:
                self.db_path = str(Path("/var/lib/aquaponia") / p)
            else:
                self.db_path = str(_PROJECT_ROOT / p)
        return self

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    @property
    def thingspeak_configured(self) -> bool:
        return bool(self.thingspeak_channel_id and self.thingspeak_read_api_key)

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    model_config = {"env_prefix": "AQUAPONIA_", "env_file": str(_ENV_FILE)}


settings = Settings()
