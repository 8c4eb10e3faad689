"""
Session for Webmarks.

Owns the long-lived state of one run: the capabilities, the persisted
selection, the normalized model and the mutation coordinator. Every change
of the selection triggers a wholesale rebuild of the model from the store.
"""

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .data_models import (
    DEFAULT_PALETTE,
    FAVICON_TEMPLATE,
    LIST_COLORS,
    Bookmark,
    BookmarkList,
    ExtractionResult,
    FolderSummary,
)
from .data_sources import (
    BookmarkTreeStore,
    BridgeClient,
    BrowserBridgeStorage,
    BrowserBridgeTreeStore,
    ChromeBookmarksFile,
    DataSourceError,
    JsonFileStorage,
    KeyValueStore,
)
from .mutation_coordinator import MutationCoordinator
from .normalized_model import NormalizedModel
from .selection_store import SelectionStore
from .tree_extractor import TreeExtractor, list_folders
from ..utils.error_handler import DiagnosticsLog, ErrorCategory


class WebmarksSession:
    """
    Wires the selection, the extractor, the model and the coordinator.

    Attributes:
        tree_store: External bookmark tree, or None when unavailable
        selection_store: Selection persistence
        model: Normalized model every query reads from
        coordinator: Optimistic mutations
        diagnostics: Shared diagnostic channel
        selection: The selection the model was last built from
    """

    def __init__(
        self,
        tree_store: Optional[BookmarkTreeStore],
        storage: Optional[KeyValueStore],
        fallback: KeyValueStore,
        palette: Optional[Sequence[str]] = None,
        list_colors: Optional[Sequence[str]] = None,
        favicon_size: int = 16,
        favicon_template: str = FAVICON_TEMPLATE,
        diagnostics: Optional[DiagnosticsLog] = None,
    ):
        self.tree_store = tree_store
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsLog()
        self.selection_store = SelectionStore(storage, fallback, self.diagnostics)
        self.extractor = TreeExtractor(
            palette=palette or DEFAULT_PALETTE,
            favicon_size=favicon_size,
            favicon_template=favicon_template,
            diagnostics=self.diagnostics,
        )
        self.list_colors = list(list_colors or LIST_COLORS)
        self.model = NormalizedModel()
        self.coordinator = MutationCoordinator(
            self.model,
            tree_store,
            self.selection_store,
            self.diagnostics,
            favicon_size=favicon_size,
            favicon_template=favicon_template,
        )
        self.selection: FrozenSet[str] = frozenset()
        self.logger = logging.getLogger(__name__)

    async def load(self) -> ExtractionResult:
        """Load the persisted selection and rebuild the model from the store."""
        self.selection = await self.selection_store.load()
        result = await self.extractor.load(self.tree_store, self.selection)
        self.model.replace(result)
        self.logger.info(
            f"Loaded {len(self.model.lists)} lists and {len(self.model.bookmarks)} bookmarks"
        )
        return result

    reload = load

    async def folders(self) -> List[FolderSummary]:
        """Every folder of the store, for choosing the selection."""
        if self.tree_store is None:
            return []
        try:
            root = await self.tree_store.get_tree()
        except DataSourceError as e:
            self.diagnostics.record(
                ErrorCategory.EXTERNAL_CALL_FAILED,
                "Failed to list folders",
                operation="folders",
                error=e,
            )
            return []
        return list_folders(root)

    async def select(self, folder_ids: Iterable[str]) -> FrozenSet[str]:
        """Add folders to the selection, persist it, and reload."""
        selection = await self.selection_store.update(add=folder_ids)
        await self.reload()
        return selection

    async def deselect(self, folder_ids: Iterable[str]) -> FrozenSet[str]:
        """Remove folders from the selection, persist it, and reload."""
        selection = await self.selection_store.update(remove=folder_ids)
        await self.reload()
        return selection

    async def toggle(self, folder_id: str) -> FrozenSet[str]:
        selection = await self.selection_store.toggle(folder_id)
        await self.reload()
        return selection

    def lists(self) -> List[BookmarkList]:
        return self.model.lists_with_counts()

    def bookmarks(self, list_id: Optional[str] = None) -> List[Bookmark]:
        if list_id is None:
            return list(self.model.bookmarks)
        return self.model.bookmarks_for(list_id)

    def search(self, query: str) -> List[Bookmark]:
        return self.model.search(query)

    def sort(self, list_id: str, key: str) -> List[Bookmark]:
        self.model.sort(list_id, key)
        return self.model.bookmarks_for(list_id)

    def reorder(self, dragged_id: str, target_id: str) -> List[BookmarkList]:
        self.model.reorder(dragged_id, target_id)
        return list(self.model.lists)

    def create_list(self, name: str, color: Optional[str] = None) -> BookmarkList:
        """Create a session-only list; new lists cycle through ``list_colors``."""
        if color is None:
            session_lists = sum(1 for lst in self.model.lists if not lst.backed_by_folder)
            color = self.list_colors[session_lists % len(self.list_colors)]
        return self.model.create_list(name, color)


async def build_capabilities(
    configuration, stack: AsyncExitStack
) -> Tuple[Optional[BookmarkTreeStore], Optional[KeyValueStore]]:
    """
    Build the tree store and external storage for the configured backend.

    A bridge client is entered on ``stack`` and closed with it.
    """
    backend = configuration.get_backend()

    if backend == "chrome":
        return ChromeBookmarksFile(configuration.get_bookmarks_file()), None

    if backend == "bridge":
        client = await stack.enter_async_context(
            BridgeClient(
                configuration.get_bridge_url(),
                timeout=configuration.get_timeout(),
                access_token=configuration.get_bridge_token(),
            )
        )
        return BrowserBridgeTreeStore(client), BrowserBridgeStorage(client)

    return None, None


@asynccontextmanager
async def open_session(configuration) -> AsyncIterator[WebmarksSession]:
    """
    Open a loaded session for a ``Configuration``.

    Example:
        >>> async with open_session(Configuration()) as session:
        ...     session.lists()
    """
    async with AsyncExitStack() as stack:
        tree_store, storage = await build_capabilities(configuration, stack)
        session = WebmarksSession(
            tree_store,
            storage,
            JsonFileStorage(configuration.get_selection_path()),
            palette=configuration.get_palette(),
            list_colors=configuration.get_list_colors(),
            **configuration.get_favicon_settings(),
        )
        await session.load()
        yield session
