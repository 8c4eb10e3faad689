"""
Normalized Model for Webmarks.

The in-memory list and bookmark collections that every view reads from.
``BookmarkList.bookmark_count`` is maintained incrementally by the primitive
operations below and must always agree with the derived count
(``len(bookmarks_for(list_id))``); ``verify_counts`` checks exactly that.

All methods are synchronous: the model never suspends mid-update.
"""

import dataclasses
import logging
from typing import Dict, Iterable, List, Optional

from .data_models import Bookmark, BookmarkList, ExtractionResult, LIST_COLORS, new_id
from .list_reorder import reorder_lists
from .sort_engine import sort_bookmarks
from ..utils.validation import validate_color, validate_list_name


class ModelConsistencyError(AssertionError):
    """Raised by ``verify_counts`` when stored and derived counts differ."""
    pass


class NormalizedModel:
    """
    Owner of the List and Bookmark collections.

    Example:
        >>> model = NormalizedModel()
        >>> model.replace(extractor.extract(root, selection))
        >>> model.bookmarks_for("5")
        [Bookmark(id='12', ...)]
    """

    def __init__(
        self,
        lists: Optional[Iterable[BookmarkList]] = None,
        bookmarks: Optional[Iterable[Bookmark]] = None,
    ):
        self.lists: List[BookmarkList] = list(lists or [])
        self.bookmarks: List[Bookmark] = list(bookmarks or [])
        self.logger = logging.getLogger(__name__)
        self.reconcile_counts()

    # ------------------------------------------------------------------
    # Wholesale rebuild
    # ------------------------------------------------------------------

    def replace(self, result: ExtractionResult) -> None:
        """Replace both collections with a fresh extraction result."""
        self.lists = list(result.lists)
        self.bookmarks = list(result.bookmarks)
        self.reconcile_counts()

    def clear(self) -> None:
        self.lists = []
        self.bookmarks = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_list(self, list_id: str) -> Optional[BookmarkList]:
        for bookmark_list in self.lists:
            if bookmark_list.id == list_id:
                return bookmark_list
        return None

    def has_list(self, list_id: str) -> bool:
        return self.get_list(list_id) is not None

    def list_ids(self) -> List[str]:
        return [bookmark_list.id for bookmark_list in self.lists]

    def get_bookmark(self, bookmark_id: str) -> Optional[Bookmark]:
        for bookmark in self.bookmarks:
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    def bookmarks_for(self, list_id: str) -> List[Bookmark]:
        """Bookmarks of one list, in model order."""
        return [b for b in self.bookmarks if b.list_id == list_id]

    def derived_count(self, list_id: str) -> int:
        return sum(1 for b in self.bookmarks if b.list_id == list_id)

    def lists_with_counts(self) -> List[BookmarkList]:
        """Copies of the lists with counts recomputed from the bookmarks."""
        counts = self._derived_counts()
        return [dataclasses.replace(lst, bookmark_count=counts.get(lst.id, 0)) for lst in self.lists]

    def search(self, query: str) -> List[Bookmark]:
        """Case-insensitive substring search over titles and urls."""
        if not query:
            return list(self.bookmarks)
        return [b for b in self.bookmarks if b.matches(query)]

    @property
    def is_empty(self) -> bool:
        return not self.lists

    # ------------------------------------------------------------------
    # Count bookkeeping
    # ------------------------------------------------------------------

    def _derived_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for bookmark in self.bookmarks:
            counts[bookmark.list_id] = counts.get(bookmark.list_id, 0) + 1
        return counts

    def reconcile_counts(self) -> None:
        """Overwrite every stored count with its derived value."""
        counts = self._derived_counts()
        for bookmark_list in self.lists:
            bookmark_list.bookmark_count = counts.get(bookmark_list.id, 0)

    def verify_counts(self) -> None:
        """
        Check the model invariants.

        Raises:
            ModelConsistencyError: If a stored count differs from the derived
                count, or a bookmark references a list that does not exist
        """
        counts = self._derived_counts()
        known = set(self.list_ids())
        orphans = [b.id for b in self.bookmarks if b.list_id not in known]
        if orphans:
            raise ModelConsistencyError(f"Bookmarks without a list: {orphans}")
        for bookmark_list in self.lists:
            derived = counts.get(bookmark_list.id, 0)
            if bookmark_list.bookmark_count != derived:
                raise ModelConsistencyError(
                    f"List {bookmark_list.id!r} stores {bookmark_list.bookmark_count} "
                    f"bookmarks but holds {derived}"
                )

    def _adjust_count(self, list_id: str, delta: int) -> None:
        bookmark_list = self.get_list(list_id)
        if bookmark_list is not None:
            bookmark_list.bookmark_count += delta

    # ------------------------------------------------------------------
    # Primitive mutations
    # ------------------------------------------------------------------

    def prepend_bookmark(self, bookmark: Bookmark) -> None:
        """Insert a bookmark at the front and count it on its list."""
        if not self.has_list(bookmark.list_id):
            raise KeyError(f"Unknown list: {bookmark.list_id}")
        self.bookmarks.insert(0, bookmark)
        self._adjust_count(bookmark.list_id, +1)

    def remove_bookmark(self, bookmark_id: str) -> Optional[Bookmark]:
        """Remove a bookmark; returns it, or None when it was not present."""
        for index, bookmark in enumerate(self.bookmarks):
            if bookmark.id == bookmark_id:
                del self.bookmarks[index]
                self._adjust_count(bookmark.list_id, -1)
                return bookmark
        return None

    def reassign_bookmark(self, bookmark_id: str, target_list_id: str) -> Optional[Bookmark]:
        """Point a bookmark at another list, adjusting both counts."""
        if not self.has_list(target_list_id):
            raise KeyError(f"Unknown list: {target_list_id}")
        bookmark = self.get_bookmark(bookmark_id)
        if bookmark is None or bookmark.list_id == target_list_id:
            return bookmark
        source_list_id = bookmark.list_id
        bookmark.list_id = target_list_id
        self._adjust_count(source_list_id, -1)
        self._adjust_count(target_list_id, +1)
        return bookmark

    def rekey_bookmark(self, old_id: str, store_id: str) -> Optional[Bookmark]:
        """Replace a bookmark's id (after the store assigned its own)."""
        bookmark = self.get_bookmark(old_id)
        if bookmark is not None:
            bookmark.id = store_id
        return bookmark

    def add_list(self, bookmark_list: BookmarkList) -> None:
        if self.has_list(bookmark_list.id):
            raise KeyError(f"Duplicate list id: {bookmark_list.id}")
        bookmark_list.bookmark_count = self.derived_count(bookmark_list.id)
        self.lists.append(bookmark_list)

    def remove_list(self, list_id: str) -> List[Bookmark]:
        """Remove a list and cascade over its bookmarks; returns the dropped bookmarks."""
        dropped = [b for b in self.bookmarks if b.list_id == list_id]
        self.bookmarks = [b for b in self.bookmarks if b.list_id != list_id]
        self.lists = [lst for lst in self.lists if lst.id != list_id]
        return dropped

    def create_list(self, name: str, color: Optional[str] = None) -> BookmarkList:
        """
        Create a session-only list that is not backed by a store folder.

        Raises:
            BookmarkValidationError: If the name is blank or the color malformed
        """
        bookmark_list = BookmarkList(
            id=new_id(),
            name=validate_list_name(name),
            color=validate_color(color) if color else LIST_COLORS[0],
            bookmark_count=0,
            backed_by_folder=False,
        )
        self.add_list(bookmark_list)
        self.logger.info(f"Created session list {bookmark_list.name!r} ({bookmark_list.id})")
        return bookmark_list

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def sort(self, list_id: str, key: str) -> None:
        """Sort one list's bookmarks; see ``sort_engine.sort_bookmarks``."""
        self.bookmarks = sort_bookmarks(self.bookmarks, list_id, key)

    def reorder(self, dragged_id: str, target_id: str) -> None:
        """Move a list to another list's position; see ``list_reorder``."""
        self.lists = reorder_lists(self.lists, dragged_id, target_id)
