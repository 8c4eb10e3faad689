"""
Selection Store for Webmarks.

Persists the set of selected folder ids under the ``selectedFolders`` key.
Every save replaces the whole set; there is no merging and no locking, so
the last writer wins.
"""

import logging
from typing import FrozenSet, Iterable, Optional

from .data_sources.protocol import DataSourceError, KeyValueStore
from ..utils.error_handler import DiagnosticsLog, ErrorCategory

SELECTION_KEY = "selectedFolders"


class SelectionStore:
    """
    Load and save the folder selection.

    The external key-value capability is used when present; otherwise the
    local fallback storage is used with the same semantics.

    Attributes:
        storage: External key-value capability, or None when absent
        fallback: Local-only key-value storage

    Example:
        >>> store = SelectionStore(None, JsonFileStorage(Path("storage.json")))
        >>> await store.save({"1", "5"})
        >>> await store.load()
        frozenset({'1', '5'})
    """

    def __init__(
        self,
        storage: Optional[KeyValueStore],
        fallback: KeyValueStore,
        diagnostics: Optional[DiagnosticsLog] = None,
    ):
        self.storage = storage
        self.fallback = fallback
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsLog()
        self.logger = logging.getLogger(__name__)

    @property
    def backend(self) -> KeyValueStore:
        return self.storage if self.storage is not None else self.fallback

    async def load(self) -> FrozenSet[str]:
        """
        Return the persisted selection (empty when nothing is stored).

        Read failures are logged and yield the empty selection.
        """
        try:
            result = await self.backend.get([SELECTION_KEY])
        except DataSourceError as e:
            self.diagnostics.record(
                ErrorCategory.STORAGE,
                "Error loading selected folders",
                operation="load_selection",
                error=e,
            )
            return frozenset()

        stored = result.get(SELECTION_KEY) or []
        if not isinstance(stored, list):
            self.logger.warning(f"Ignoring malformed {SELECTION_KEY} value: {stored!r}")
            return frozenset()
        return frozenset(str(folder_id) for folder_id in stored)

    async def save(self, selection: Iterable[str]) -> None:
        """
        Replace the persisted selection with ``selection``.

        Raises:
            DataSourceError: If the backend cannot be written
        """
        folder_ids = sorted(set(selection))
        await self.backend.set({SELECTION_KEY: folder_ids})
        self.logger.info(
            f"Saved {len(folder_ids)} selected folders to {self.backend.source_name}"
        )

    async def toggle(self, folder_id: str) -> FrozenSet[str]:
        """Flip membership of one folder and persist the whole set."""
        current = set(await self.load())
        if folder_id in current:
            current.discard(folder_id)
        else:
            current.add(folder_id)
        await self.save(current)
        return frozenset(current)

    async def discard(self, folder_id: str) -> FrozenSet[str]:
        """Remove one folder from the persisted selection, if present."""
        current = set(await self.load())
        current.discard(folder_id)
        await self.save(current)
        return frozenset(current)

    async def update(self, add: Iterable[str] = (), remove: Iterable[str] = ()) -> FrozenSet[str]:
        """Apply additions and removals, then save the resulting whole set."""
        current = set(await self.load())
        current.update(add)
        current.difference_update(remove)
        await self.save(current)
        return frozenset(current)
