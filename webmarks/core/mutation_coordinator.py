"""
Mutation Coordinator for Webmarks.

Applies add / delete / move / remove-folder against both the normalized
model and the external bookmark store with optimistic semantics:

- the model is updated first, synchronously, before the store call is awaited;
- a failing store call is reported to the diagnostic channel and never
  rolled back or retried, so the model and the store may diverge until the
  next reload (local state wins);
- only validation failures reach the caller, and they are raised before any
  state changes.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Set

from .data_models import FAVICON_TEMPLATE, Bookmark, BookmarkFormData, favicon_url, new_id
from .data_sources.protocol import (
    BookmarkTreeStore,
    CapabilityUnavailableError,
    DataSourceError,
)
from .normalized_model import NormalizedModel
from .selection_store import SelectionStore
from ..utils.error_handler import (
    BookmarkValidationError,
    DiagnosticsLog,
    ErrorCategory,
    ErrorSeverity,
    FolderNotEmptyError,
)
from ..utils.validation import validate_bookmark_form


class MutationCoordinator:
    """
    Optimistic mutations over the model and the external store.

    Attributes:
        model: The normalized model being mutated
        tree_store: External bookmark-tree capability, or None when absent
        selection_store: Selection persistence, used by ``remove_folder``
        diagnostics: Diagnostic channel for external failures

    Example:
        >>> coordinator = MutationCoordinator(model, store, selection_store)
        >>> bookmark = await coordinator.add(
        ...     BookmarkFormData(title="X", url="http://x.test", list_id="5")
        ... )
        >>> await coordinator.delete(bookmark.id)
    """

    def __init__(
        self,
        model: NormalizedModel,
        tree_store: Optional[BookmarkTreeStore] = None,
        selection_store: Optional[SelectionStore] = None,
        diagnostics: Optional[DiagnosticsLog] = None,
        favicon_size: int = 16,
        favicon_template: str = FAVICON_TEMPLATE,
    ):
        self.model = model
        self.tree_store = tree_store
        self.selection_store = selection_store
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsLog()
        self.favicon_size = favicon_size
        self.favicon_template = favicon_template
        # Bookmarks the store has never confirmed (created locally only)
        self.local_only: Set[str] = set()
        self.logger = logging.getLogger(__name__)

    def _report_failure(self, operation: str, error: DataSourceError, **context) -> None:
        if isinstance(error, CapabilityUnavailableError):
            category, severity = ErrorCategory.CAPABILITY_UNAVAILABLE, ErrorSeverity.LOW
        else:
            category, severity = ErrorCategory.EXTERNAL_CALL_FAILED, ErrorSeverity.MEDIUM
        self.diagnostics.record(
            category,
            f"Error during {operation}; local state kept",
            operation=operation,
            severity=severity,
            error=error,
            **context,
        )

    def _is_folder_backed(self, list_id: str) -> bool:
        bookmark_list = self.model.get_list(list_id)
        return bookmark_list is not None and bookmark_list.backed_by_folder

    def _mirrors_to_store(self, bookmark_id: str) -> bool:
        return self.tree_store is not None and bookmark_id not in self.local_only

    # ------------------------------------------------------------------
    # Add
    # ------------------------------------------------------------------

    async def add(self, form: BookmarkFormData) -> Bookmark:
        """
        Add a bookmark to a list.

        The bookmark is prepended to the model and counted on its list. For
        folder-backed lists it is then created in the store; on success the
        local id is replaced by the store's node id.

        Raises:
            BookmarkValidationError: If the title, url or list is missing or
                the url is malformed (nothing is changed)
        """
        data = validate_bookmark_form(form, self.model.list_ids())

        bookmark = Bookmark(
            id=new_id(),
            title=data.title,
            url=data.url,
            list_id=data.list_id,
            description=data.description or None,
            favicon=favicon_url(data.url, self.favicon_size, self.favicon_template),
            tags=list(data.tags),
            created_at=datetime.now(),
        )
        self.model.prepend_bookmark(bookmark)
        self.logger.info(f"Added bookmark {bookmark.url} to list {bookmark.list_id}")

        if self.tree_store is None or not self._is_folder_backed(data.list_id):
            self.local_only.add(bookmark.id)
            return bookmark

        local_id = bookmark.id
        try:
            node = await self.tree_store.create(data.list_id, data.title, data.url)
        except DataSourceError as e:
            self._report_failure("add", e, bookmark_id=local_id, list_id=data.list_id)
            self.local_only.add(local_id)
            return bookmark

        # Deleted locally while the create was in flight
        if self.model.get_bookmark(local_id) is not None:
            self.model.rekey_bookmark(local_id, node.id)
        return bookmark

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete(self, bookmark_id: str) -> Optional[Bookmark]:
        """
        Delete a bookmark from the model and the store.

        The local removal happens whatever the store answers; store failures
        are only logged.

        Returns:
            The removed bookmark, or None if it was not in the model
        """
        removed = self.model.remove_bookmark(bookmark_id)
        if removed is None:
            self.logger.warning(f"Delete requested for unknown bookmark {bookmark_id}")
            return None
        self.logger.info(f"Deleted bookmark {bookmark_id} from list {removed.list_id}")

        if self._mirrors_to_store(bookmark_id):
            try:
                await self.tree_store.remove(bookmark_id)
            except DataSourceError as e:
                self._report_failure("delete", e, bookmark_id=bookmark_id)
        self.local_only.discard(bookmark_id)

        return removed

    async def delete_many(self, bookmark_ids: Iterable[str]) -> List[Bookmark]:
        """Delete several bookmarks one after another."""
        removed = []
        for bookmark_id in list(bookmark_ids):
            bookmark = await self.delete(bookmark_id)
            if bookmark is not None:
                removed.append(bookmark)
        return removed

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------

    async def move(self, bookmark_id: str, target_list_id: str) -> Optional[Bookmark]:
        """
        Move a bookmark to another list.

        The bookmark's ``list_id`` and both list counts are updated whatever
        the store answers; store failures are only logged.

        Raises:
            BookmarkValidationError: If the target list does not exist
        """
        if not self.model.has_list(target_list_id):
            raise BookmarkValidationError(
                f"Unknown target list: {target_list_id}", field_name="list_id"
            )

        bookmark = self.model.get_bookmark(bookmark_id)
        if bookmark is None:
            self.logger.warning(f"Move requested for unknown bookmark {bookmark_id}")
            return None
        if bookmark.list_id == target_list_id:
            return bookmark

        source_list_id = bookmark.list_id
        moved = self.model.reassign_bookmark(bookmark_id, target_list_id)
        self.logger.info(
            f"Moved bookmark {bookmark_id} from {source_list_id} to {target_list_id}"
        )

        if self._mirrors_to_store(bookmark_id) and self._is_folder_backed(target_list_id):
            try:
                await self.tree_store.move(bookmark_id, parent_id=target_list_id)
            except DataSourceError as e:
                self._report_failure(
                    "move", e, bookmark_id=bookmark_id, list_id=target_list_id
                )

        return moved

    # ------------------------------------------------------------------
    # Remove folder
    # ------------------------------------------------------------------

    def can_remove_folder(self, list_id: str) -> bool:
        """True when the list exists and holds no bookmarks."""
        bookmark_list = self.model.get_list(list_id)
        return bookmark_list is not None and bookmark_list.bookmark_count == 0

    async def remove_empty_folder(self, list_id: str) -> None:
        """
        Remove a list and its folder, but only when the list is empty.

        Raises:
            FolderNotEmptyError: If the list still holds bookmarks
            BookmarkValidationError: If the list does not exist
        """
        bookmark_list = self.model.get_list(list_id)
        if bookmark_list is None:
            raise BookmarkValidationError(f"Unknown list: {list_id}", field_name="list_id")
        if bookmark_list.bookmark_count > 0:
            raise FolderNotEmptyError(list_id, bookmark_list.bookmark_count)
        await self.remove_folder(list_id)

    async def remove_folder(self, list_id: str) -> None:
        """
        Remove a list, its bookmarks, and its backing folder.

        Emptiness is not checked here: callers are expected to gate with
        ``can_remove_folder`` / ``remove_empty_folder``. The list and its
        bookmarks always leave the model. The folder id leaves the selection
        only when the store removal succeeded (or the list had no folder);
        otherwise the folder still exists and returns on the next reload.
        """
        backed = self._is_folder_backed(list_id)
        dropped = self.model.remove_list(list_id)
        self.logger.info(f"Removed list {list_id} ({len(dropped)} bookmarks dropped)")

        if not backed:
            return

        if self.tree_store is not None:
            try:
                await self.tree_store.remove_tree(list_id)
            except DataSourceError as e:
                self._report_failure("remove_folder", e, list_id=list_id)
                return

        if self.selection_store is None:
            return
        try:
            await self.selection_store.discard(list_id)
        except DataSourceError as e:
            self.diagnostics.record(
                ErrorCategory.STORAGE,
                "Error updating selected folders",
                operation="remove_folder",
                error=e,
                list_id=list_id,
            )
