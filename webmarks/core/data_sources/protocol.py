"""
Capability Ports for the Webmarks sync layer.

This module defines the two external capabilities the core depends on:
a bookmark-tree store and a key-value store. Concrete adapters (Chromium
profile file, browser bridge, local JSON file) implement these interfaces so
the core never talks to a host environment directly.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional, Protocol, runtime_checkable

from ..data_models import FolderNode


@runtime_checkable
class BookmarkTreeStore(Protocol):
    """
    Protocol for external bookmark-tree stores.

    All operations are asynchronous and keyed by node id. Implementations
    raise ``ExternalCallError`` (or a subclass of ``DataSourceError``) when a
    call fails; callers in the core decide whether that failure matters.

    Example Usage:
        >>> store = ChromeBookmarksFile(Path("~/.config/chromium/Default/Bookmarks"))
        >>> root = await store.get_tree()
        >>> await store.move("42", parent_id="7")
    """

    async def get_tree(self) -> FolderNode:
        """
        Return the root node of the whole bookmark tree.

        Raises:
            ExternalCallError: If the tree cannot be read
        """
        ...

    async def create(self, parent_id: str, title: str, url: Optional[str] = None) -> FolderNode:
        """
        Create a bookmark (or a folder when ``url`` is None) under a folder.

        Returns:
            The created node, carrying the id assigned by the store
        """
        ...

    async def move(self, node_id: str, parent_id: str) -> None:
        """Move a node under a different parent folder."""
        ...

    async def remove(self, node_id: str) -> None:
        """Remove a bookmark or an empty folder."""
        ...

    async def remove_tree(self, node_id: str) -> None:
        """Remove a folder and everything below it."""
        ...

    @property
    def source_name(self) -> str:
        """Human-readable name for this store."""
        ...


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Protocol for key-value persistence capabilities.

    ``get`` returns only the keys that are present; ``set`` writes the given
    keys and leaves the others untouched.
    """

    async def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        ...

    async def set(self, items: Dict[str, Any]) -> None:
        ...

    @property
    def source_name(self) -> str:
        ...


class AbstractBookmarkTreeStore(ABC):
    """
    Abstract base class for bookmark-tree stores.

    Provides a default ``remove_tree`` built on ``get_tree`` and ``remove``
    for stores without a native recursive delete.
    """

    @abstractmethod
    async def get_tree(self) -> FolderNode:
        """Return the root of the bookmark tree."""
        pass

    @abstractmethod
    async def create(self, parent_id: str, title: str, url: Optional[str] = None) -> FolderNode:
        """Create a node under ``parent_id``."""
        pass

    @abstractmethod
    async def move(self, node_id: str, parent_id: str) -> None:
        """Move a node under ``parent_id``."""
        pass

    @abstractmethod
    async def remove(self, node_id: str) -> None:
        """Remove a single node."""
        pass

    async def remove_tree(self, node_id: str) -> None:
        """
        Default recursive removal: remove descendants bottom-up, then the node.

        Concrete classes should override this when the store can delete a
        subtree in one call.
        """
        root = await self.get_tree()
        node = root.find(node_id)
        if node is None:
            raise ExternalCallError(
                f"Node {node_id} not found", source_name=self.source_name
            )
        for child in node.iter_children():
            if child.is_folder:
                await self.remove_tree(child.id)
            else:
                await self.remove(child.id)
        await self.remove(node_id)

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Human-readable name for this store."""
        pass


class DataSourceError(Exception):
    """
    Exception raised for capability errors.

    Attributes:
        message: Error description
        source_name: Name of the store that raised the error
        original_error: The underlying exception if any
    """

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.source_name = source_name
        self.original_error = original_error
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = []
        if self.source_name:
            parts.append(f"[{self.source_name}]")
        parts.append(self.message)
        if self.original_error:
            parts.append(f"(Caused by: {type(self.original_error).__name__}: {self.original_error})")
        return " ".join(parts)


class CapabilityUnavailableError(DataSourceError):
    """Exception raised when a store or storage capability is absent."""
    pass


class ExternalCallError(DataSourceError):
    """Exception raised when a call to an external store fails."""
    pass


class NodeNotFoundError(ExternalCallError):
    """Exception raised when a node id does not exist in the store."""
    pass
