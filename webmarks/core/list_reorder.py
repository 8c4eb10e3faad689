"""
List Reorder Engine for Webmarks.

Drag-and-drop reordering of the list collection. The order lives only in
the session; it is rebuilt from the store's folder order on every reload.
"""

from typing import List, Sequence

from .data_models import BookmarkList


def reorder_lists(
    lists: Sequence[BookmarkList], dragged_id: str, target_id: str
) -> List[BookmarkList]:
    """
    Move the dragged list to the target list's position.

    The dragged list is removed from its position and reinserted at the
    index the target occupied before the removal. Returns an unchanged copy
    when either id is unknown or both ids are equal.
    """
    reordered = list(lists)
    if not dragged_id or dragged_id == target_id:
        return reordered

    ids = [lst.id for lst in reordered]
    if dragged_id not in ids or target_id not in ids:
        return reordered

    dragged_index = ids.index(dragged_id)
    target_index = ids.index(target_id)

    dragged = reordered.pop(dragged_index)
    reordered.insert(target_index, dragged)
    return reordered
