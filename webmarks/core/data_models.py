"""
Data models for Webmarks.

This module defines the normalized entities (lists and bookmarks) derived
from the external bookmark tree, the read-only tree node shape, and the form
payload used to add bookmarks.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional
from urllib.parse import quote, urlparse

# Palette cycled over selected folders in first-encounter order
DEFAULT_PALETTE = ["#6366f1", "#10b981", "#f59e0b", "#8b5cf6", "#ef4444", "#ec4899"]

# Colors offered when a list is created in-session
LIST_COLORS = [
    "#6366f1",  # Indigo
    "#10b981",  # Emerald
    "#f59e0b",  # Amber
    "#8b5cf6",  # Violet
    "#ef4444",  # Red
    "#3b82f6",  # Blue
    "#f97316",  # Orange
    "#06b6d4",  # Cyan
    "#84cc16",  # Lime
    "#ec4899",  # Pink
    "#6b7280",  # Gray
    "#14b8a6",  # Teal
]

FAVICON_TEMPLATE = "https://www.google.com/s2/favicons?domain={domain}&sz={size}"

UNTITLED = "Untitled"


class SortOption(str, Enum):
    """Keys accepted by the sort engine."""

    RECENT = "recent"
    OLDEST = "oldest"
    ALPHABETICAL = "alphabetical"


def new_id() -> str:
    return uuid.uuid4().hex


def favicon_url(
    url: str, size: int = 16, template: str = FAVICON_TEMPLATE
) -> Optional[str]:
    """
    Build the favicon lookup URL for a bookmark URL.

    Args:
        url: Bookmark URL
        size: Icon size in pixels
        template: Lookup template with ``{domain}`` and ``{size}`` fields

    Returns:
        Lookup URL, or None when the URL has no parsable hostname
    """
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    return template.format(domain=quote(hostname, safe=".-"), size=size)


def datetime_from_millis(value: Optional[float]) -> datetime:
    """Convert epoch milliseconds to a datetime, defaulting to now."""
    if value is None:
        return datetime.now()
    return datetime.fromtimestamp(value / 1000.0)


def datetime_to_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


@dataclass
class FolderNode:
    """
    A node of the external bookmark tree.

    A node with a ``url`` is a bookmark leaf, otherwise it is a folder.
    ``date_added`` is expressed in milliseconds since the Unix epoch.
    """

    id: str
    title: str = ""
    url: Optional[str] = None
    children: Optional[List["FolderNode"]] = None
    date_added: Optional[float] = None
    parent_id: Optional[str] = None

    @property
    def is_bookmark(self) -> bool:
        return bool(self.url)

    @property
    def is_folder(self) -> bool:
        return not self.url

    def iter_children(self) -> List["FolderNode"]:
        return list(self.children or [])

    def find(self, node_id: str) -> Optional["FolderNode"]:
        """Depth-first lookup of a node by id (including this node)."""
        if self.id == node_id:
            return self
        for child in self.children or []:
            found = child.find(node_id)
            if found is not None:
                return found
        return None

    @classmethod
    def from_dict(cls, data: dict, parent_id: Optional[str] = None) -> "FolderNode":
        """
        Build a tree from the ``{id, title, url?, dateAdded?, children?}``
        shape used by browser bookmark APIs.
        """
        node_id = str(data.get("id", ""))
        children = data.get("children")
        return cls(
            id=node_id,
            title=data.get("title") or "",
            url=data.get("url") or None,
            date_added=data.get("dateAdded", data.get("date_added")),
            parent_id=data.get("parentId", parent_id),
            children=(
                [cls.from_dict(child, parent_id=node_id) for child in children]
                if children is not None
                else None
            ),
        )

    def to_dict(self) -> dict:
        data = {"id": self.id, "title": self.title}
        if self.url:
            data["url"] = self.url
        if self.date_added is not None:
            data["dateAdded"] = self.date_added
        if self.parent_id is not None:
            data["parentId"] = self.parent_id
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class BookmarkList:
    """A named, colored bucket of bookmarks backed by a folder or by the session."""

    id: str
    name: str
    color: str
    bookmark_count: int = 0
    backed_by_folder: bool = True


@dataclass
class Bookmark:
    """A normalized bookmark belonging to exactly one list."""

    id: str
    title: str
    url: str
    list_id: str
    description: Optional[str] = None
    favicon: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    last_accessed: Optional[datetime] = None

    @property
    def hostname(self) -> str:
        try:
            return urlparse(self.url).hostname or ""
        except ValueError:
            return ""

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match over title and url."""
        needle = query.lower()
        return needle in self.title.lower() or needle in self.url.lower()


@dataclass
class BookmarkFormData:
    """Input payload for adding a bookmark."""

    title: str
    url: str
    list_id: str
    description: str = ""
    tags: List[str] = field(default_factory=list)


@dataclass
class FolderSummary:
    """A folder of the external tree as offered for selection."""

    id: str
    title: str
    path: str
    bookmark_count: int = 0
    parent_id: Optional[str] = None


@dataclass
class ExtractionResult:
    """Lists and bookmarks derived from one pass over the tree."""

    lists: List[BookmarkList] = field(default_factory=list)
    bookmarks: List[Bookmark] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.lists and not self.bookmarks
