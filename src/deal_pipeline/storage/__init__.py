"""Document storage for opportunities."""

import logging
from pathlib import Path
from typing import Optional

from ..core.config import DealConfig
from .port import DocumentStore, deep_merge
from .memory import MemoryDocumentStore
from .sqlite import SQLiteDocumentStore
from .json_file import JsonFileDocumentStore
from .paths import opportunity_path, opportunities_prefix, is_opportunity_path

logger = logging.getLogger(__name__)

BACKENDS = ("sqlite", "json", "memory")


def open_store(
    config: Optional[DealConfig] = None,
    backend: Optional[str] = None,
    path: Optional[Path] = None,
) -> DocumentStore:
    """Open the store named by ``backend`` (default: the configured one)."""
    config = config or DealConfig()
    backend = (backend or config.store_backend).lower()

    if backend == "sqlite":
        store = SQLiteDocumentStore(Path(path) if path else config.database_path)
    elif backend == "json":
        store = JsonFileDocumentStore(Path(path) if path else config.json_store_path)
    elif backend == "memory":
        store = MemoryDocumentStore()
    else:
        raise ValueError(f"Unknown store backend: {backend} (expected one of {', '.join(BACKENDS)})")

    logger.info(f"Opened {backend} document store")
    return store


__all__ = [
    "DocumentStore",
    "MemoryDocumentStore",
    "SQLiteDocumentStore",
    "JsonFileDocumentStore",
    "deep_merge",
    "open_store",
    "opportunity_path",
    "opportunities_prefix",
    "is_opportunity_path",
    "BACKENDS",
]
