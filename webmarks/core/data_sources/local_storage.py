"""
Local JSON-file key-value storage.

This is the local-only persistence used when no external key-value
capability is available. It keeps a single JSON object on disk and offers
the same ``get``/``set`` contract as the external storage.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Union

from .protocol import ExternalCallError


class JsonFileStorage:
    """
    Key-value storage persisted as one JSON object in a file.

    Attributes:
        path: Path to the JSON file (created on first ``set``)

    Example:
        >>> storage = JsonFileStorage(Path(".webmarks/storage.json"))
        >>> await storage.set({"selectedFolders": ["1", "5"]})
        >>> await storage.get(["selectedFolders"])
        {'selectedFolders': ['1', '5']}
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self.logger = logging.getLogger(__name__)

    @property
    def source_name(self) -> str:
        return "Local storage"

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ExternalCallError(
                f"Failed to read {self.path}",
                source_name=self.source_name,
                original_error=e,
            )
        if not isinstance(data, dict):
            raise ExternalCallError(
                f"{self.path} does not contain a JSON object",
                source_name=self.source_name,
            )
        return data

    async def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        data = self._load()
        return {key: data[key] for key in keys if key in data}

    async def set(self, items: Dict[str, Any]) -> None:
        data = self._load()
        data.update(items)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".storage.", dir=str(self.path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            raise ExternalCallError(
                f"Failed to write {self.path}",
                source_name=self.source_name,
                original_error=e,
            )
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
        self.logger.debug(f"Stored keys {sorted(items)} in {self.path}")

    def __repr__(self) -> str:
        return f"JsonFileStorage(path={str(self.path)!r})"
