"""In-process document store, used by tests and throwaway sessions."""

import copy
import logging
import threading
from typing import Optional, List, Dict, Any, Tuple

from ..core.errors import ConflictError, OpportunityNotFound, ValidationError
from .port import DocumentStore, deep_merge, with_version

logger = logging.getLogger(__name__)


class MemoryDocumentStore(DocumentStore):
    """Dict-backed store. Records are copied in and out."""

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._records.get(path)
            return copy.deepcopy(record) if record is not None else None

    def set(self, path: str, record: Dict[str, Any], merge: bool = False) -> int:
        with self._lock:
            current = self._records.get(path)
            version = (current or {}).get("version", 0) + 1
            if merge and current is not None:
                record = deep_merge(current, record)
            self._records[path] = with_version(record, version)
            return version

    def append_to_list(self, path: str, field: str, item: Any) -> int:
        with self._lock:
            current = self._records.get(path)
            if current is None:
                raise OpportunityNotFound(path)
            items = current.get(field) or []
            if not isinstance(items, list):
                raise ValidationError(field, "is not a list", items)
            current[field] = items + [copy.deepcopy(item)]
            current["version"] = current.get("version", 0) + 1
            return current["version"]

    def compare_and_set(self, path: str, record: Dict[str, Any], expected_version: int) -> int:
        with self._lock:
            current = self._records.get(path)
            actual = current.get("version", 0) if current is not None else None
            if (current is None and expected_version != 0) or (current is not None and actual != expected_version):
                raise ConflictError(path, expected_version, actual)
            version = expected_version + 1
            self._records[path] = with_version(record, version)
            return version

    def list(self, prefix: str) -> List[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            return [
                (path, copy.deepcopy(record))
                for path, record in sorted(self._records.items())
                if path.startswith(prefix)
            ]
