"""
Unit tests for the Mutation Coordinator.

Tests optimistic add / delete / move / remove-folder against an in-memory
tree store, including the behaviour when the store call fails.
"""

import pytest

from webmarks.core.data_models import BookmarkFormData, BookmarkList
from webmarks.core.mutation_coordinator import MutationCoordinator
from webmarks.core.normalized_model import NormalizedModel
from webmarks.core.selection_store import SELECTION_KEY, SelectionStore
from webmarks.core.tree_extractor import TreeExtractor
from webmarks.utils.error_handler import (
    BookmarkValidationError,
    ErrorCategory,
    FolderNotEmptyError,
)
from tests.fixtures.fake_stores import InMemoryKeyValueStore, InMemoryTreeStore


def failing_coordinator(loaded_model, sample_tree, selection_store, diagnostics, *operations):
    store = InMemoryTreeStore(sample_tree, failing=operations)
    return MutationCoordinator(loaded_model, store, selection_store, diagnostics), store


def build_model(result):
    model = NormalizedModel()
    model.replace(result)
    return model


class TestAdd:
    """Test adding bookmarks."""

    @pytest.mark.asyncio
    async def test_add_prepends_and_counts(self, coordinator, loaded_model):
        before = loaded_model.get_list("9").bookmark_count

        bookmark = await coordinator.add(
            BookmarkFormData(title="X", url="http://x.test", list_id="9", tags=["a", " "])
        )

        assert loaded_model.bookmarks[0] is bookmark
        assert bookmark.list_id == "9"
        assert bookmark.tags == ["a"]
        assert bookmark.favicon == "https://www.google.com/s2/favicons?domain=x.test&sz=16"
        assert loaded_model.get_list("9").bookmark_count == before + 1
        loaded_model.verify_counts()

    @pytest.mark.asyncio
    async def test_add_mirrors_to_store_and_rekeys(self, coordinator, tree_store, loaded_model):
        bookmark = await coordinator.add(
            BookmarkFormData(title="X", url="http://x.test", list_id="9")
        )

        assert tree_store.calls == [("create", ("9", "X", "http://x.test"))]
        assert tree_store.root.find(bookmark.id) is not None
        assert tree_store.root.find(bookmark.id).parent_id == "9"

    @pytest.mark.asyncio
    async def test_add_then_delete_restores_count(self, coordinator, loaded_model):
        before = loaded_model.get_list("5").bookmark_count

        bookmark = await coordinator.add(
            BookmarkFormData(title="X", url="http://x.test", list_id="5")
        )
        await coordinator.delete(bookmark.id)

        assert loaded_model.get_list("5").bookmark_count == before
        loaded_model.verify_counts()

    @pytest.mark.asyncio
    async def test_failed_create_keeps_local_bookmark(
        self, loaded_model, sample_tree, selection_store, diagnostics
    ):
        coordinator, _ = failing_coordinator(
            loaded_model, sample_tree, selection_store, diagnostics, "create"
        )

        bookmark = await coordinator.add(
            BookmarkFormData(title="X", url="http://x.test", list_id="9")
        )

        assert loaded_model.get_bookmark(bookmark.id) is bookmark
        assert len(diagnostics.entries(ErrorCategory.EXTERNAL_CALL_FAILED)) == 1
        loaded_model.verify_counts()

    @pytest.mark.asyncio
    async def test_add_to_session_list_skips_store(self, coordinator, tree_store, loaded_model):
        session_list = loaded_model.create_list("Later")

        await coordinator.add(
            BookmarkFormData(title="X", url="http://x.test", list_id=session_list.id)
        )

        assert tree_store.calls == []
        assert loaded_model.get_list(session_list.id).bookmark_count == 1

    @pytest.mark.asyncio
    async def test_add_without_store(self, loaded_model):
        coordinator = MutationCoordinator(loaded_model)
        bookmark = await coordinator.add(
            BookmarkFormData(title="X", url="http://x.test", list_id="5")
        )
        assert loaded_model.get_bookmark(bookmark.id) is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "form,field_name",
        [
            (BookmarkFormData(title="", url="http://x.test", list_id="5"), "title"),
            (BookmarkFormData(title="   ", url="http://x.test", list_id="5"), "title"),
            (BookmarkFormData(title="X", url="", list_id="5"), "url"),
            (BookmarkFormData(title="X", url="not a url", list_id="5"), "url"),
            (BookmarkFormData(title="X", url="http://x.test", list_id=""), "list_id"),
            (BookmarkFormData(title="X", url="http://x.test", list_id="404"), "list_id"),
        ],
    )
    async def test_invalid_form_changes_nothing(
        self, coordinator, tree_store, loaded_model, form, field_name
    ):
        before = [b.id for b in loaded_model.bookmarks]

        with pytest.raises(BookmarkValidationError) as exc_info:
            await coordinator.add(form)

        assert exc_info.value.field_name == field_name
        assert [b.id for b in loaded_model.bookmarks] == before
        assert tree_store.calls == []


class TestDelete:
    """Test deleting bookmarks."""

    @pytest.mark.asyncio
    async def test_delete(self, coordinator, tree_store, loaded_model):
        removed = await coordinator.delete("12")

        assert removed.id == "12"
        assert loaded_model.get_bookmark("12") is None
        assert loaded_model.get_list("5").bookmark_count == 1
        assert not tree_store.contains("12")

    @pytest.mark.asyncio
    async def test_failed_remove_still_deletes_locally(
        self, loaded_model, sample_tree, selection_store, diagnostics
    ):
        coordinator, store = failing_coordinator(
            loaded_model, sample_tree, selection_store, diagnostics, "remove"
        )

        await coordinator.delete("12")

        assert loaded_model.get_bookmark("12") is None
        assert loaded_model.get_list("5").bookmark_count == 1
        assert store.contains("12")
        assert store.calls.count(("remove", ("12",))) == 1
        assert len(diagnostics.entries(ErrorCategory.EXTERNAL_CALL_FAILED)) == 1
        loaded_model.verify_counts()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("node_id", ["nope", "14", "10"])
    async def test_delete_outside_lists_leaves_store_alone(
        self, coordinator, tree_store, loaded_model, diagnostics, node_id
    ):
        # 14 is a bookmark in no selected folder, 10 an unselected folder
        assert await coordinator.delete(node_id) is None

        assert tree_store.calls == []
        assert len(diagnostics) == 0
        if node_id != "nope":
            assert tree_store.contains(node_id)
        loaded_model.verify_counts()

    @pytest.mark.asyncio
    async def test_delete_after_failed_create_stays_local(
        self, loaded_model, sample_tree, selection_store, diagnostics
    ):
        coordinator, store = failing_coordinator(
            loaded_model, sample_tree, selection_store, diagnostics, "create"
        )
        bookmark = await coordinator.add(
            BookmarkFormData(title="X", url="http://x.test", list_id="9")
        )

        await coordinator.delete(bookmark.id)

        assert loaded_model.get_bookmark(bookmark.id) is None
        assert [op for op, _ in store.calls] == ["create"]
        assert len(diagnostics.entries(ErrorCategory.EXTERNAL_CALL_FAILED)) == 1
        loaded_model.verify_counts()

    @pytest.mark.asyncio
    async def test_delete_many(self, coordinator, loaded_model):
        removed = await coordinator.delete_many(["11", "12", "missing"])

        assert [b.id for b in removed] == ["11", "12"]
        assert loaded_model.get_list("5").bookmark_count == 0
        loaded_model.verify_counts()


class TestMove:
    """Test moving bookmarks between lists."""

    @pytest.mark.asyncio
    async def test_move(self, coordinator, tree_store, loaded_model):
        moved = await coordinator.move("11", "9")

        assert moved.list_id == "9"
        assert loaded_model.get_list("5").bookmark_count == 1
        assert loaded_model.get_list("9").bookmark_count == 2
        assert tree_store.root.find("11").parent_id == "9"

    @pytest.mark.asyncio
    async def test_failed_move_still_updates_locally(
        self, loaded_model, sample_tree, selection_store, diagnostics
    ):
        coordinator, store = failing_coordinator(
            loaded_model, sample_tree, selection_store, diagnostics, "move"
        )

        await coordinator.move("11", "9")

        assert loaded_model.get_bookmark("11").list_id == "9"
        assert loaded_model.get_list("5").bookmark_count == 1
        assert loaded_model.get_list("9").bookmark_count == 2
        assert store.root.find("11").parent_id == "5"
        assert len(diagnostics.entries(ErrorCategory.EXTERNAL_CALL_FAILED)) == 1
        loaded_model.verify_counts()

    @pytest.mark.asyncio
    async def test_move_to_unknown_list_is_rejected(self, coordinator, tree_store, loaded_model):
        with pytest.raises(BookmarkValidationError):
            await coordinator.move("11", "404")

        assert loaded_model.get_bookmark("11").list_id == "5"
        assert tree_store.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("node_id", ["nope", "6", "14"])
    async def test_move_outside_lists_leaves_store_alone(
        self, coordinator, tree_store, loaded_model, diagnostics, node_id
    ):
        # 6 is an unselected folder, 14 a bookmark in no selected folder
        assert await coordinator.move(node_id, "9") is None

        assert tree_store.calls == []
        assert len(diagnostics) == 0
        assert loaded_model.get_list("9").bookmark_count == 1
        if node_id != "nope":
            assert tree_store.root.find(node_id).parent_id != "9"

    @pytest.mark.asyncio
    async def test_move_after_failed_create_stays_local(
        self, loaded_model, sample_tree, selection_store, diagnostics
    ):
        coordinator, store = failing_coordinator(
            loaded_model, sample_tree, selection_store, diagnostics, "create"
        )
        bookmark = await coordinator.add(
            BookmarkFormData(title="X", url="http://x.test", list_id="9")
        )

        await coordinator.move(bookmark.id, "5")

        assert loaded_model.get_bookmark(bookmark.id).list_id == "5"
        assert [op for op, _ in store.calls] == ["create"]
        assert len(diagnostics.entries(ErrorCategory.EXTERNAL_CALL_FAILED)) == 1
        loaded_model.verify_counts()

    @pytest.mark.asyncio
    async def test_move_to_same_list_is_noop(self, coordinator, tree_store, loaded_model):
        await coordinator.move("11", "5")

        assert loaded_model.get_list("5").bookmark_count == 2
        assert tree_store.calls == []

    @pytest.mark.asyncio
    async def test_move_to_session_list_stays_local(self, coordinator, tree_store, loaded_model):
        session_list = loaded_model.create_list("Later")

        await coordinator.move("11", session_list.id)

        assert loaded_model.get_list(session_list.id).bookmark_count == 1
        assert tree_store.calls == []


class TestRemoveFolder:
    """Test removing lists and their folders."""

    @pytest.mark.asyncio
    async def test_gate_rejects_non_empty(self, coordinator, tree_store, loaded_model):
        assert coordinator.can_remove_folder("5") is False

        with pytest.raises(FolderNotEmptyError) as exc_info:
            await coordinator.remove_empty_folder("5")

        assert exc_info.value.bookmark_count == 2
        assert loaded_model.has_list("5")
        assert tree_store.calls == []

    @pytest.mark.asyncio
    async def test_gate_rejects_unknown(self, coordinator):
        assert coordinator.can_remove_folder("404") is False
        with pytest.raises(BookmarkValidationError):
            await coordinator.remove_empty_folder("404")

    @pytest.mark.asyncio
    async def test_remove_empty_folder(
        self, sample_tree, tree_store, selection_store, diagnostics, key_value_store
    ):
        await selection_store.save({"9", "10"})
        model_result = TreeExtractor().extract(sample_tree, {"9", "10"})
        coordinator = MutationCoordinator(
            build_model(model_result), tree_store, selection_store, diagnostics
        )

        assert coordinator.can_remove_folder("10") is True
        await coordinator.remove_empty_folder("10")

        assert not coordinator.model.has_list("10")
        assert not tree_store.contains("10")
        assert key_value_store.data[SELECTION_KEY] == ["9"]

    @pytest.mark.asyncio
    async def test_remove_folder_cascades(self, coordinator, tree_store, selection_store, loaded_model):
        await selection_store.save({"5", "9"})

        await coordinator.remove_folder("5")

        assert not loaded_model.has_list("5")
        assert loaded_model.bookmarks_for("5") == []
        assert not tree_store.contains("5")
        assert await selection_store.load() == frozenset({"9"})
        loaded_model.verify_counts()

    @pytest.mark.asyncio
    async def test_failed_remove_keeps_selection(
        self, loaded_model, sample_tree, selection_store, diagnostics
    ):
        await selection_store.save({"5", "9"})
        coordinator, store = failing_coordinator(
            loaded_model, sample_tree, selection_store, diagnostics, "remove_tree"
        )

        await coordinator.remove_folder("5")

        assert not loaded_model.has_list("5")
        assert store.contains("5")
        assert await selection_store.load() == frozenset({"5", "9"})
        assert len(diagnostics.entries(ErrorCategory.EXTERNAL_CALL_FAILED)) == 1

    @pytest.mark.asyncio
    async def test_remove_session_list_skips_store(self, coordinator, tree_store, loaded_model):
        session_list = loaded_model.create_list("Later")

        await coordinator.remove_folder(session_list.id)

        assert not loaded_model.has_list(session_list.id)
        assert tree_store.calls == []

    @pytest.mark.asyncio
    async def test_selection_write_failure_is_logged(
        self, loaded_model, tree_store, local_storage, diagnostics
    ):
        store = SelectionStore(InMemoryKeyValueStore(failing={"set"}), local_storage, diagnostics)
        coordinator = MutationCoordinator(loaded_model, tree_store, store, diagnostics)

        await coordinator.remove_folder("9")

        assert not loaded_model.has_list("9")
        assert len(diagnostics.entries(ErrorCategory.STORAGE)) == 1


class TestCountInvariant:
    """Counts stay equal to the derived counts across a mixed sequence."""

    @pytest.mark.asyncio
    async def test_mixed_sequence(self, loaded_model, sample_tree, selection_store, diagnostics):
        coordinator, _ = failing_coordinator(
            loaded_model, sample_tree, selection_store, diagnostics, "move", "create"
        )
        loaded_model.add_list(BookmarkList(id="extra", name="Extra", color="#000000", backed_by_folder=False))

        first = await coordinator.add(BookmarkFormData(title="A", url="http://a.test", list_id="5"))
        await coordinator.add(BookmarkFormData(title="B", url="http://b.test", list_id="extra"))
        await coordinator.move(first.id, "9")
        await coordinator.move("15", "extra")
        await coordinator.delete("11")
        await coordinator.remove_folder("extra")

        loaded_model.verify_counts()
        assert {lst.id: lst.bookmark_count for lst in loaded_model.lists} == {"5": 1, "9": 1}
