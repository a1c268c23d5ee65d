"""Environment-based configuration for the API service."""

import logging
import os

from ..core.config import DealConfigManager
from ..storage import BACKENDS

logger = logging.getLogger(__name__)


class Settings:
    """API configuration loaded from environment variables.

    Unset store settings fall back to the agent's saved config.
    """

    def __init__(self):
        defaults = DealConfigManager().config
        self.deal_config = defaults

        self.host = os.getenv("DEAL_API_HOST", "127.0.0.1")
        self.port = int(os.getenv("DEAL_API_PORT", "8000"))
        self.store_backend = os.getenv("DEAL_STORE_BACKEND", defaults.store_backend).lower()
        if self.store_backend not in BACKENDS:
            raise RuntimeError(
                f"DEAL_STORE_BACKEND must be one of {', '.join(BACKENDS)}, got {self.store_backend!r}"
            )
        default_path = defaults.json_store_path if self.store_backend == "json" else defaults.database_path
        self.database_path = os.getenv("DEAL_DATABASE_PATH", str(default_path))
        self.debug = os.getenv("DEAL_ENV", "production") != "production"

        # CORS
        self.allowed_origins = [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]


_settings = None


def _get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings():
    """Forget the loaded settings so the next access re-reads the environment."""
    global _settings
    _settings = None


class _SettingsProxy:
    """Lazy proxy so settings aren't loaded until first access."""

    def __getattr__(self, name):
        return getattr(_get_settings(), name)


settings = _SettingsProxy()
