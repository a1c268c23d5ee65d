"""Service wiring for the routes."""

import logging
from pathlib import Path
from typing import Optional

from ..opportunities.service import DealService
from ..storage import open_store
from .config import settings

logger = logging.getLogger(__name__)

_service: Optional[DealService] = None


def get_service() -> DealService:
    """Shared service over the configured store; tests override this dependency."""
    global _service
    if _service is None:
        store = open_store(
            settings.deal_config,
            backend=settings.store_backend,
            path=Path(settings.database_path),
        )
        _service = DealService(store, settings.deal_config)
        logger.info(f"Deal service using {settings.store_backend} store at {settings.database_path}")
    return _service


def reset_service():
    global _service
    _service = None
