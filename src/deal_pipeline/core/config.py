"""Persisted defaults for commission, CPCV and storage settings."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from datetime import datetime

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".deal-pipeline"


@dataclass
class DealConfig:
    """Agent-level defaults applied when an operation omits a value."""

    # Commission defaults (percentages, 0-100)
    commission_rate: float = 5.0
    agency_split_percentage: float = 55.0
    shared_split_percentage: float = 50.0  # Used when split_type is "split"

    # CPCV signal defaults to this share of the accepted amount
    signal_percentage: float = 10.0

    # Storage
    store_backend: str = "sqlite"  # "sqlite", "json" or "memory"
    data_dir: str = str(DEFAULT_HOME)

    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def database_path(self) -> Path:
        return Path(self.data_dir) / "deals.db"

    @property
    def json_store_path(self) -> Path:
        return Path(self.data_dir) / "deals.json"


class DealConfigManager:
    """Load and save the agent's defaults."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager."""
        self.config_path = config_path or DEFAULT_HOME / "config.json"
        self.config = self._load_config()

    def _load_config(self) -> DealConfig:
        """Load configuration from file."""
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                    return DealConfig(
                        commission_rate=data.get("commission_rate", 5.0),
                        agency_split_percentage=data.get("agency_split_percentage", 55.0),
                        shared_split_percentage=data.get("shared_split_percentage", 50.0),
                        signal_percentage=data.get("signal_percentage", 10.0),
                        store_backend=data.get("store_backend", "sqlite"),
                        data_dir=data.get("data_dir", str(DEFAULT_HOME)),
                    )
            except (OSError, ValueError) as e:
                logger.error(f"Error loading deal config: {e}")

        return DealConfig()

    def save_config(self):
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config.updated_at = datetime.now()
        data = {
            "commission_rate": self.config.commission_rate,
            "agency_split_percentage": self.config.agency_split_percentage,
            "shared_split_percentage": self.config.shared_split_percentage,
            "signal_percentage": self.config.signal_percentage,
            "store_backend": self.config.store_backend,
            "data_dir": self.config.data_dir,
            "updated_at": self.config.updated_at.isoformat(),
        }
        with open(self.config_path, 'w') as f:
            json.dump(data, f, indent=2)

    def update(self, **changes) -> DealConfig:
        """Apply changes to known settings and persist them."""
        for key, value in changes.items():
            if value is None:
                continue
            if not hasattr(self.config, key) or key == "updated_at":
                raise KeyError(f"Unknown setting: {key}")
            setattr(self.config, key, value)
        self.save_config()
        logger.info(f"Updated deal config: {', '.join(k for k, v in changes.items() if v is not None)}")
        return self.config
