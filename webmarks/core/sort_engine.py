"""
Sort Engine for Webmarks.

Sorting one list moves that list's bookmarks to the end of the global
sequence (``rest + sorted(target)``). Consumers must always filter by
``list_id`` before displaying a list and never rely on absolute positions.
"""

import unicodedata
from typing import List, Sequence, Tuple, Union

from .data_models import Bookmark, SortOption
from ..utils.validation import validate_sort_option


def collation_key(title: str) -> Tuple[str, str, str]:
    """
    Locale-style comparison key for titles.

    Compares case- and accent-insensitively first ("apple" < "Banana" <
    "éclair" < "zebra"), then by accents, then by case, so the ordering is
    total and deterministic.
    """
    decomposed = unicodedata.normalize("NFKD", title)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), decomposed.casefold(), title)


def sort_bookmarks(
    bookmarks: Sequence[Bookmark],
    list_id: str,
    key: Union[str, SortOption],
) -> List[Bookmark]:
    """
    Sort the bookmarks of one list.

    Args:
        bookmarks: The whole bookmark collection
        list_id: List whose bookmarks are sorted
        key: ``recent``, ``oldest`` or ``alphabetical``

    Returns:
        A new sequence: other lists' bookmarks in their original relative
        order followed by the sorted bookmarks of ``list_id``. Sorting is
        stable, so ties keep their previous relative order.

    Raises:
        BookmarkValidationError: If ``key`` is not a known sort option
    """
    option = validate_sort_option(key)

    target = [b for b in bookmarks if b.list_id == list_id]
    rest = [b for b in bookmarks if b.list_id != list_id]

    if option is SortOption.RECENT:
        target.sort(key=lambda b: b.created_at, reverse=True)
    elif option is SortOption.OLDEST:
        target.sort(key=lambda b: b.created_at)
    else:
        target.sort(key=lambda b: collation_key(b.title))

    return rest + target
