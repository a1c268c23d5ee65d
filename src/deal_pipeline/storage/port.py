"""Document-store port used by the deal service.

Records are JSON-compatible dicts addressed by slash-separated paths. Every
write bumps the record's ``version``; ``compare_and_set`` only writes when
the stored version still matches what the caller read.
"""

import copy
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Tuple


def deep_merge(base: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``changes`` into a copy of ``base``.

    Nested dicts are merged key by key; any other value replaces the old one.
    """
    merged = copy.deepcopy(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def with_version(record: Dict[str, Any], version: int) -> Dict[str, Any]:
    stored = copy.deepcopy(record)
    stored["version"] = version
    return stored


class DocumentStore(ABC):
    """Path-addressed document storage with optimistic concurrency."""

    @abstractmethod
    def get(self, path: str) -> Optional[Dict[str, Any]]:
        """Return the record at ``path``, or None."""

    @abstractmethod
    def set(self, path: str, record: Dict[str, Any], merge: bool = False) -> int:
        """Write a record unconditionally; with ``merge`` deep-merge into the existing one.

        Returns the new version.
        """

    @abstractmethod
    def append_to_list(self, path: str, field: str, item: Any) -> int:
        """Append ``item`` to the list stored under ``field``. Returns the new version."""

    @abstractmethod
    def compare_and_set(self, path: str, record: Dict[str, Any], expected_version: int) -> int:
        """Write ``record`` only if the stored version equals ``expected_version``.

        ``expected_version`` 0 means the record must not exist yet. Raises
        ConflictError when another write got there first. Returns the new
        version.
        """

    @abstractmethod
    def list(self, prefix: str) -> List[Tuple[str, Dict[str, Any]]]:
        """All ``(path, record)`` pairs under ``prefix``, ordered by path."""

    def close(self):
        """Release any held resources."""
