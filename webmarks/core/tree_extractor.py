"""
Tree Extractor for Webmarks.

Walks the external bookmark tree once and derives the flat list/bookmark
model for a selection of folder ids.

Membership is direct-children-only: a bookmark belongs to a list only when
its immediate parent folder is selected. Bookmarks below a non-selected
subfolder are never attributed to a selected ancestor.
"""

import logging
from datetime import datetime
from typing import AbstractSet, Iterable, List, Optional, Sequence

from .data_models import (
    DEFAULT_PALETTE,
    FAVICON_TEMPLATE,
    UNTITLED,
    Bookmark,
    BookmarkList,
    ExtractionResult,
    FolderNode,
    FolderSummary,
    datetime_from_millis,
    favicon_url,
)
from .data_sources.protocol import (
    BookmarkTreeStore,
    CapabilityUnavailableError,
    DataSourceError,
)
from ..utils.error_handler import DiagnosticsLog, ErrorCategory, ErrorSeverity

PATH_SEPARATOR = " > "


class TreeExtractor:
    """
    Derive lists and bookmarks from a folder tree and a selection.

    Colors are assigned by cycling the palette in the order selected folders
    are first met during a depth-first walk, so the result depends on the
    store's native child ordering.

    Example:
        >>> extractor = TreeExtractor()
        >>> result = extractor.extract(root, {"5", "9"})
        >>> [lst.name for lst in result.lists]
        ['Work', 'Reading']
    """

    def __init__(
        self,
        palette: Optional[Sequence[str]] = None,
        favicon_size: int = 16,
        favicon_template: str = FAVICON_TEMPLATE,
        diagnostics: Optional[DiagnosticsLog] = None,
    ):
        self.palette = list(palette) if palette else list(DEFAULT_PALETTE)
        self.favicon_size = favicon_size
        self.favicon_template = favicon_template
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsLog()
        self.logger = logging.getLogger(__name__)

    def extract(self, root: FolderNode, selection: Iterable[str]) -> ExtractionResult:
        """
        Extract lists and bookmarks for the selected folders.

        Args:
            root: Root node of the tree (never itself a list)
            selection: Selected folder ids; order and duplicates are ignored

        Returns:
            ExtractionResult with lists in traversal order and bookmarks
            sorted by descending creation time
        """
        selected = frozenset(selection)
        result = ExtractionResult()
        if not selected:
            return result

        now = datetime.now()
        self._walk(root, selected, result, now)

        # Stable: equal timestamps keep traversal order
        result.bookmarks.sort(key=lambda b: b.created_at, reverse=True)

        self.logger.debug(
            f"Extracted {len(result.lists)} lists and {len(result.bookmarks)} bookmarks "
            f"from {len(selected)} selected folders"
        )
        return result

    def _walk(
        self,
        node: FolderNode,
        selected: AbstractSet[str],
        result: ExtractionResult,
        now: datetime,
    ) -> None:
        for child in node.iter_children():
            if child.is_bookmark:
                continue

            if child.id in selected:
                bookmark_list = BookmarkList(
                    id=child.id,
                    name=child.title or UNTITLED,
                    color=self.palette[len(result.lists) % len(self.palette)],
                )
                result.lists.append(bookmark_list)

                for leaf in child.iter_children():
                    if not leaf.is_bookmark:
                        continue
                    result.bookmarks.append(self._to_bookmark(leaf, child.id, now))
                    bookmark_list.bookmark_count += 1

            self._walk(child, selected, result, now)

    def _to_bookmark(self, leaf: FolderNode, list_id: str, now: datetime) -> Bookmark:
        return Bookmark(
            id=leaf.id,
            title=leaf.title or UNTITLED,
            url=leaf.url,
            list_id=list_id,
            favicon=favicon_url(leaf.url, self.favicon_size, self.favicon_template),
            tags=[],
            created_at=(
                datetime_from_millis(leaf.date_added) if leaf.date_added is not None else now
            ),
        )

    async def load(
        self, tree_store: Optional[BookmarkTreeStore], selection: Iterable[str]
    ) -> ExtractionResult:
        """
        Fetch the tree from a store and extract it.

        An absent store, a failing ``get_tree`` call, or an empty selection
        all produce the empty result; failures are only logged.
        """
        selected = frozenset(selection)
        if tree_store is None:
            self.diagnostics.record(
                ErrorCategory.CAPABILITY_UNAVAILABLE,
                "No bookmark tree store configured",
                operation="load",
                severity=ErrorSeverity.LOW,
            )
            return ExtractionResult()

        if not selected:
            self.logger.info("No folders selected")
            return ExtractionResult()

        try:
            root = await tree_store.get_tree()
        except CapabilityUnavailableError as e:
            self.diagnostics.record(
                ErrorCategory.CAPABILITY_UNAVAILABLE,
                "Bookmark tree store unavailable",
                operation="load",
                severity=ErrorSeverity.LOW,
                error=e,
            )
            return ExtractionResult()
        except DataSourceError as e:
            self.diagnostics.record(
                ErrorCategory.EXTERNAL_CALL_FAILED,
                "Failed to load bookmark tree",
                operation="load",
                error=e,
            )
            return ExtractionResult()

        return self.extract(root, selected)


def list_folders(root: FolderNode) -> List[FolderSummary]:
    """
    List every folder below the root, for selection UIs.

    Paths join ancestor titles with ``" > "`` (the root's own title is not
    part of the path); ``bookmark_count`` counts direct bookmark children.
    """
    folders: List[FolderSummary] = []

    def visit(node: FolderNode, parent_path: str) -> None:
        for child in node.iter_children():
            if child.is_bookmark:
                continue
            title = child.title or UNTITLED
            path = f"{parent_path}{PATH_SEPARATOR}{title}" if parent_path else title
            folders.append(
                FolderSummary(
                    id=child.id,
                    title=title,
                    path=path,
                    bookmark_count=sum(1 for leaf in child.iter_children() if leaf.is_bookmark),
                    parent_id=node.id,
                )
            )
            visit(child, path)

    visit(root, "")
    return folders
