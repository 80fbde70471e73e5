"""
Key-value stores for the ledger function.

Both follow the hosted platform's storage calls: ``load(namespace, key,
default)`` and ``store(namespace, key, value)``, last write wins.
"""

from pathlib import Path
from typing import Any, Dict, Union
import copy
import json
import logging
import os
import tempfile

from nft_ledger import StoreError

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Dict-backed store. Values are deep-copied in and out."""

    def __init__(self) -> None:
        self.namespaces: Dict[str, Dict[str, Any]] = {}
        self.writes = 0

    def load(self, namespace: str, key: str, default: Any = None) -> Any:
        bucket = self.namespaces.get(namespace, {})
        if key not in bucket:
            return default
        return copy.deepcopy(bucket[key])

    def store(self, namespace: str, key: str, value: Any) -> None:
        self.namespaces.setdefault(namespace, {})[key] = copy.deepcopy(value)
        self.writes += 1


class JsonFileStore:
    """Single JSON file holding ``{namespace: {key: value}}``."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Store {self.path} must hold a JSON object, got {type(data).__name__}")
        return data

    def load(self, namespace: str, key: str, default: Any = None) -> Any:
        bucket = self._read().get(namespace, {})
        if not isinstance(bucket, dict):
            raise StoreError(f"Namespace {namespace} in {self.path} is not a JSON object")
        return bucket.get(key, default)

    def store(self, namespace: str, key: str, value: Any) -> None:
        data = self._read()
        bucket = data.setdefault(namespace, {})
        if not isinstance(bucket, dict):
            raise StoreError(f"Namespace {namespace} in {self.path} is not a JSON object")
        bucket[key] = value

        directory = self.path.parent
        tmp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=self.path.name, suffix=".tmp")
            with os.fdopen(fd, "w") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StoreError(f"Cannot write {namespace}/{key} to {self.path}: {e}") from e

        logger.debug("Stored %s/%s in %s", namespace, key, self.path)
