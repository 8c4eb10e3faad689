"""
Chromium Profile Bookmark Store.

This module implements the bookmark-tree capability on top of a Chromium
``Bookmarks`` JSON file (Chrome, Edge, Brave, Vivaldi all share the format).

Chromium Bookmarks Format:
- JSON file at: {profile}/Bookmarks
- Structure: { "checksum": "...", "roots": { "bookmark_bar": {...}, ... }, "version": 1 }
- Node keys: id, guid, name, type ("url" | "folder"), url, date_added, children
- ``date_added`` is microseconds since 1601-01-01 (WebKit epoch), as a string

The browser should not be running while this store writes: Chromium keeps
its own copy in memory and overwrites the file on exit.
"""

import json
import logging
import os
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ..data_models import FolderNode
from .protocol import (
    AbstractBookmarkTreeStore,
    CapabilityUnavailableError,
    ExternalCallError,
    NodeNotFoundError,
)

# Microseconds between 1601-01-01 and 1970-01-01
WEBKIT_EPOCH_OFFSET_US = 11644473600 * 1_000_000

ROOT_ID = "0"

# Root folders in the order browsers present them
ROOT_FOLDER_KEYS = ["bookmark_bar", "other", "synced"]


def webkit_to_millis(value: Union[str, int, None]) -> Optional[float]:
    """Convert a WebKit timestamp (microseconds since 1601) to epoch millis."""
    if value in (None, "", "0", 0):
        return None
    try:
        return (int(value) - WEBKIT_EPOCH_OFFSET_US) / 1000.0
    except (TypeError, ValueError):
        return None


def millis_to_webkit(value: float) -> str:
    return str(int(value * 1000) + WEBKIT_EPOCH_OFFSET_US)


class ChromeBookmarksFile(AbstractBookmarkTreeStore):
    """
    Bookmark-tree store backed by a Chromium ``Bookmarks`` file.

    The whole document is re-read for every call, so changes made by other
    processes between calls are picked up; each mutation is written back
    atomically (temporary file + rename) with the stale checksum dropped.

    Attributes:
        path: Path to the Bookmarks JSON file

    Example:
        >>> store = ChromeBookmarksFile(Path("Bookmarks"))
        >>> root = await store.get_tree()
        >>> [child.title for child in root.children]
        ['Bookmarks bar', 'Other bookmarks', 'Mobile bookmarks']
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self.logger = logging.getLogger(__name__)

    @property
    def source_name(self) -> str:
        return "Chromium profile"

    # ------------------------------------------------------------------
    # Document I/O
    # ------------------------------------------------------------------

    def _read_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            raise CapabilityUnavailableError(
                f"Bookmarks file not found: {self.path}",
                source_name=self.source_name,
            )
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ExternalCallError(
                f"Failed to read {self.path}",
                source_name=self.source_name,
                original_error=e,
            )
        if not isinstance(document.get("roots"), dict):
            raise ExternalCallError(
                f"{self.path} has no 'roots' object",
                source_name=self.source_name,
            )
        return document

    def _write_document(self, document: Dict[str, Any]) -> None:
        # Chromium recomputes the checksum; a stale one would flag corruption
        document.pop("checksum", None)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=".Bookmarks.", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=3, ensure_ascii=False)
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
        self.logger.debug(f"Wrote bookmarks document to {self.path}")

    def _root_nodes(self, document: Dict[str, Any]) -> List[Dict[str, Any]]:
        roots = document["roots"]
        ordered = [roots[key] for key in ROOT_FOLDER_KEYS if isinstance(roots.get(key), dict)]
        # Newer Chromium versions add extra roots (e.g. "account")
        for key, value in roots.items():
            if key not in ROOT_FOLDER_KEYS and isinstance(value, dict) and "children" in value:
                ordered.append(value)
        return ordered

    def _locate(
        self, document: Dict[str, Any], node_id: str
    ) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
        """Return (node, parent) for ``node_id``; parent is None for roots."""
        stack: List[Tuple[Dict[str, Any], Optional[Dict[str, Any]]]] = [
            (node, None) for node in self._root_nodes(document)
        ]
        while stack:
            node, parent = stack.pop()
            if str(node.get("id")) == node_id:
                return node, parent
            for child in node.get("children", []):
                stack.append((child, node))
        raise NodeNotFoundError(
            f"Node {node_id} not found", source_name=self.source_name
        )

    def _next_id(self, document: Dict[str, Any]) -> str:
        highest = 0
        stack = list(self._root_nodes(document))
        while stack:
            node = stack.pop()
            try:
                highest = max(highest, int(node.get("id", 0)))
            except (TypeError, ValueError):
                pass
            stack.extend(node.get("children", []))
        return str(highest + 1)

    def _to_folder_node(self, node: Dict[str, Any], parent_id: Optional[str]) -> FolderNode:
        node_id = str(node.get("id", ""))
        is_folder = node.get("type") == "folder" or "children" in node
        return FolderNode(
            id=node_id,
            title=node.get("name", ""),
            url=None if is_folder else node.get("url"),
            date_added=webkit_to_millis(node.get("date_added")),
            parent_id=parent_id,
            children=(
                [self._to_folder_node(child, node_id) for child in node.get("children", [])]
                if is_folder
                else None
            ),
        )

    # ------------------------------------------------------------------
    # Capability operations
    # ------------------------------------------------------------------

    async def get_tree(self) -> FolderNode:
        document = self._read_document()
        root = FolderNode(id=ROOT_ID, title="", children=[])
        for node in self._root_nodes(document):
            root.children.append(self._to_folder_node(node, ROOT_ID))
        self.logger.debug(f"Loaded bookmark tree from {self.path}")
        return root

    async def create(self, parent_id: str, title: str, url: Optional[str] = None) -> FolderNode:
        document = self._read_document()
        parent, _ = self._locate(document, parent_id)
        if parent.get("type") != "folder":
            raise ExternalCallError(
                f"Parent {parent_id} is not a folder", source_name=self.source_name
            )

        now_ms = datetime.now().timestamp() * 1000
        node: Dict[str, Any] = {
            "date_added": millis_to_webkit(now_ms),
            "guid": str(uuid.uuid4()),
            "id": self._next_id(document),
            "name": title,
        }
        if url:
            node.update({"type": "url", "url": url})
        else:
            node.update({"type": "folder", "children": [], "date_modified": node["date_added"]})

        parent.setdefault("children", []).append(node)
        self._write_document(document)
        self.logger.info(f"Created node {node['id']} under {parent_id}")
        return self._to_folder_node(node, parent_id)

    async def move(self, node_id: str, parent_id: str) -> None:
        document = self._read_document()
        node, old_parent = self._locate(document, node_id)
        if old_parent is None:
            raise ExternalCallError(
                f"Cannot move root folder {node_id}", source_name=self.source_name
            )
        new_parent, _ = self._locate(document, parent_id)
        if new_parent.get("type") != "folder":
            raise ExternalCallError(
                f"Target {parent_id} is not a folder", source_name=self.source_name
            )
        if node.get("type") == "folder" and self._contains(node, parent_id):
            raise ExternalCallError(
                f"Cannot move folder {node_id} into its own subtree",
                source_name=self.source_name,
            )

        old_parent["children"].remove(node)
        new_parent.setdefault("children", []).append(node)
        self._write_document(document)
        self.logger.info(f"Moved node {node_id} to {parent_id}")

    async def remove(self, node_id: str) -> None:
        document = self._read_document()
        node, parent = self._locate(document, node_id)
        if parent is None:
            raise ExternalCallError(
                f"Cannot remove root folder {node_id}", source_name=self.source_name
            )
        if node.get("children"):
            raise ExternalCallError(
                f"Folder {node_id} is not empty", source_name=self.source_name
            )
        parent["children"].remove(node)
        self._write_document(document)
        self.logger.info(f"Removed node {node_id}")

    async def remove_tree(self, node_id: str) -> None:
        document = self._read_document()
        node, parent = self._locate(document, node_id)
        if parent is None:
            raise ExternalCallError(
                f"Cannot remove root folder {node_id}", source_name=self.source_name
            )
        parent["children"].remove(node)
        self._write_document(document)
        self.logger.info(f"Removed folder tree {node_id}")

    def _contains(self, node: Dict[str, Any], node_id: str) -> bool:
        for child in node.get("children", []):
            if str(child.get("id")) == node_id or self._contains(child, node_id):
                return True
        return False

    def __repr__(self) -> str:
        return f"ChromeBookmarksFile(path={str(self.path)!r})"
