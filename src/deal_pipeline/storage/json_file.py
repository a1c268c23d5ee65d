"""Single-file JSON document store."""

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple

from ..core.errors import PersistenceError, ConflictError, OpportunityNotFound, ValidationError
from .port import DocumentStore, deep_merge, with_version

logger = logging.getLogger(__name__)


class JsonFileDocumentStore(DocumentStore):
    """Keeps every document in memory and rewrites the file after each write."""

    def __init__(self, data_path: Optional[Path] = None):
        self.data_path = Path(data_path) if data_path else Path.home() / ".deal-pipeline" / "deals.json"
        self.documents: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._load_data()

    def _load_data(self):
        """Load documents from file.

        An unreadable file is never replaced: the store refuses to open so
        the next write cannot overwrite the data still on disk.
        """
        if self.data_path.exists():
            try:
                with open(self.data_path, 'r') as f:
                    data = json.load(f)
                documents = data.get("documents", {})
                if not isinstance(documents, dict):
                    raise ValueError("'documents' is not an object")
                self.documents = dict(documents)
            except (OSError, ValueError, AttributeError) as e:
                logger.error(f"Error loading documents from {self.data_path}: {e}")
                raise PersistenceError(f"Cannot read {self.data_path}: {e}", cause=e) from e

    def _save_data(self):
        """Save documents to file."""
        try:
            self.data_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.data_path, 'w') as f:
                json.dump({"documents": self.documents}, f, indent=2)
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.data_path}: {e}", cause=e) from e

    def _commit(self, path: str, record: Dict[str, Any]):
        previous = self.documents.get(path)
        self.documents[path] = record
        try:
            self._save_data()
        except PersistenceError:
            if previous is None:
                self.documents.pop(path, None)
            else:
                self.documents[path] = previous
            raise

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self.documents.get(path)
            return copy.deepcopy(record) if record is not None else None

    def set(self, path: str, record: Dict[str, Any], merge: bool = False) -> int:
        with self._lock:
            current = self.documents.get(path)
            version = (current or {}).get("version", 0) + 1
            if merge and current is not None:
                record = deep_merge(current, record)
            self._commit(path, with_version(record, version))
            return version

    def append_to_list(self, path: str, field: str, item: Any) -> int:
        with self._lock:
            current = self.documents.get(path)
            if current is None:
                raise OpportunityNotFound(path)
            items = current.get(field) or []
            if not isinstance(items, list):
                raise ValidationError(field, "is not a list", items)
            updated = copy.deepcopy(current)
            updated[field] = items + [copy.deepcopy(item)]
            updated["version"] = current.get("version", 0) + 1
            self._commit(path, updated)
            return updated["version"]

    def compare_and_set(self, path: str, record: Dict[str, Any], expected_version: int) -> int:
        with self._lock:
            current = self.documents.get(path)
            actual = current.get("version", 0) if current is not None else None
            if (current is None and expected_version != 0) or (current is not None and actual != expected_version):
                raise ConflictError(path, expected_version, actual)
            version = expected_version + 1
            self._commit(path, with_version(record, version))
            return version

    def list(self, prefix: str) -> List[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            return [
                (path, copy.deepcopy(record))
                for path, record in sorted(self.documents.items())
                if path.startswith(prefix)
            ]
