"""
Core Webmarks modules.

This package contains the synchronization layer: tree extraction, the
normalized list/bookmark model, optimistic mutations, sorting, list
reordering and selection persistence.
"""

from .data_models import Bookmark, BookmarkFormData, BookmarkList, FolderNode, SortOption

__all__ = [
    'Bookmark',
    'BookmarkFormData',
    'BookmarkList',
    'FolderNode',
    'SortOption',
]
