"""
Browser bridge adapters for the tree and key-value capabilities.

These adapters translate the capability ports onto bridge tools that mirror
the browser's own APIs (``bookmarks.getTree``, ``bookmarks.move``,
``storage.get`` ...). Bridge client errors are translated into the
data-source error hierarchy.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from ..data_models import FolderNode
from .bridge_client import (
    BridgeClient,
    BridgeClientError,
    BridgeConnectionError,
)
from .protocol import (
    AbstractBookmarkTreeStore,
    CapabilityUnavailableError,
    ExternalCallError,
)


class _BridgeAdapter:
    """Shared plumbing: one bridge client and error translation."""

    def __init__(self, client: BridgeClient):
        self.client = client
        self.logger = logging.getLogger(__name__)

    @property
    def source_name(self) -> str:
        return "Browser bridge"

    async def _call(self, tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        if not self.client.is_connected:
            raise CapabilityUnavailableError(
                "Bridge client is not connected", source_name=self.source_name
            )
        try:
            return await self.client.call_tool(tool_name, arguments)
        except BridgeConnectionError as e:
            raise CapabilityUnavailableError(
                f"Browser bridge unreachable: {e.message}",
                source_name=self.source_name,
                original_error=e,
            )
        except BridgeClientError as e:
            raise ExternalCallError(
                f"{tool_name} failed: {e.message}",
                source_name=self.source_name,
                original_error=e,
            )


class BrowserBridgeTreeStore(_BridgeAdapter, AbstractBookmarkTreeStore):
    """
    Bookmark-tree capability served by the browser through the bridge.

    Example:
        >>> async with BridgeClient("http://127.0.0.1:8765") as client:
        ...     store = BrowserBridgeTreeStore(client)
        ...     root = await store.get_tree()
    """

    TOOL_GET_TREE = "bookmarks.getTree"
    TOOL_CREATE = "bookmarks.create"
    TOOL_MOVE = "bookmarks.move"
    TOOL_REMOVE = "bookmarks.remove"
    TOOL_REMOVE_TREE = "bookmarks.removeTree"

    async def get_tree(self) -> FolderNode:
        result = await self._call(self.TOOL_GET_TREE, {})
        nodes = result.get("tree", result.get("nodes", []))
        if isinstance(nodes, dict):
            nodes = [nodes]
        if not nodes:
            raise ExternalCallError("Bridge returned an empty tree", source_name=self.source_name)
        return FolderNode.from_dict(nodes[0])

    async def create(self, parent_id: str, title: str, url: Optional[str] = None) -> FolderNode:
        details: Dict[str, Any] = {"parentId": parent_id, "title": title}
        if url:
            details["url"] = url
        result = await self._call(self.TOOL_CREATE, {"details": details})
        node = result.get("node", result)
        if "id" not in node:
            raise ExternalCallError("Bridge did not return the created node", source_name=self.source_name)
        return FolderNode.from_dict(node, parent_id=parent_id)

    async def move(self, node_id: str, parent_id: str) -> None:
        await self._call(self.TOOL_MOVE, {"id": node_id, "destination": {"parentId": parent_id}})

    async def remove(self, node_id: str) -> None:
        await self._call(self.TOOL_REMOVE, {"id": node_id})

    async def remove_tree(self, node_id: str) -> None:
        await self._call(self.TOOL_REMOVE_TREE, {"id": node_id})


class BrowserBridgeStorage(_BridgeAdapter):
    """Key-value capability backed by the extension's local storage area."""

    TOOL_STORAGE_GET = "storage.get"
    TOOL_STORAGE_SET = "storage.set"

    async def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        result = await self._call(self.TOOL_STORAGE_GET, {"keys": list(keys)})
        return dict(result.get("items", {}))

    async def set(self, items: Dict[str, Any]) -> None:
        await self._call(self.TOOL_STORAGE_SET, {"items": items})
