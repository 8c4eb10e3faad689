"""
In-memory capability doubles for Webmarks tests.

``InMemoryTreeStore`` keeps a ``FolderNode`` tree and applies create / move /
remove like a browser would; any operation named in ``failing`` raises
``ExternalCallError`` without touching the tree. ``InMemoryKeyValueStore``
does the same for the key-value capability.
"""

import copy
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from webmarks.core.data_models import FolderNode
from webmarks.core.data_sources.protocol import (
    AbstractBookmarkTreeStore,
    ExternalCallError,
    NodeNotFoundError,
)


class InMemoryTreeStore(AbstractBookmarkTreeStore):
    """Bookmark tree held in memory."""

    def __init__(self, root: FolderNode, failing: Optional[Iterable[str]] = None):
        self.root = copy.deepcopy(root)
        self.failing: Set[str] = set(failing or [])
        self.calls: List[Tuple[str, tuple]] = []
        self._next_id = 1000

    @property
    def source_name(self) -> str:
        return "In-memory tree"

    def _check(self, operation: str, *args) -> None:
        self.calls.append((operation, args))
        if operation in self.failing:
            raise ExternalCallError(f"{operation} failed", source_name=self.source_name)

    def _locate(self, node_id: str) -> Tuple[FolderNode, Optional[FolderNode]]:
        stack: List[Tuple[FolderNode, Optional[FolderNode]]] = [(self.root, None)]
        while stack:
            node, parent = stack.pop()
            if node.id == node_id:
                return node, parent
            for child in node.children or []:
                stack.append((child, node))
        raise NodeNotFoundError(f"Node {node_id} not found", source_name=self.source_name)

    async def get_tree(self) -> FolderNode:
        self._check("get_tree")
        return copy.deepcopy(self.root)

    async def create(self, parent_id: str, title: str, url: Optional[str] = None) -> FolderNode:
        self._check("create", parent_id, title, url)
        parent, _ = self._locate(parent_id)
        self._next_id += 1
        node = FolderNode(
            id=str(self._next_id),
            title=title,
            url=url,
            children=None if url else [],
            parent_id=parent_id,
        )
        parent.children = (parent.children or []) + [node]
        return copy.deepcopy(node)

    async def move(self, node_id: str, parent_id: str) -> None:
        self._check("move", node_id, parent_id)
        node, old_parent = self._locate(node_id)
        new_parent, _ = self._locate(parent_id)
        old_parent.children.remove(node)
        node.parent_id = parent_id
        new_parent.children = (new_parent.children or []) + [node]

    async def remove(self, node_id: str) -> None:
        self._check("remove", node_id)
        node, parent = self._locate(node_id)
        if node.children:
            raise ExternalCallError(f"Folder {node_id} is not empty")
        parent.children.remove(node)

    async def remove_tree(self, node_id: str) -> None:
        self._check("remove_tree", node_id)
        node, parent = self._locate(node_id)
        parent.children.remove(node)

    def contains(self, node_id: str) -> bool:
        return self.root.find(node_id) is not None


class InMemoryKeyValueStore:
    """Key-value capability held in a dict."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None, failing: Optional[Iterable[str]] = None):
        self.data: Dict[str, Any] = dict(initial or {})
        self.failing: Set[str] = set(failing or [])

    @property
    def source_name(self) -> str:
        return "In-memory storage"

    async def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        if "get" in self.failing:
            raise ExternalCallError("get failed", source_name=self.source_name)
        return {key: copy.deepcopy(self.data[key]) for key in keys if key in self.data}

    async def set(self, items: Dict[str, Any]) -> None:
        if "set" in self.failing:
            raise ExternalCallError("set failed", source_name=self.source_name)
        self.data.update(copy.deepcopy(items))
