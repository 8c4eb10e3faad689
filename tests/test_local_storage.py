"""
Unit tests for the local JSON-file key-value storage.
"""

import json
from unittest.mock import patch

import pytest

from webmarks.core.data_sources import ExternalCallError, JsonFileStorage, KeyValueStore


class TestJsonFileStorage:
    """Test JsonFileStorage get/set."""

    def test_satisfies_protocol(self, local_storage):
        assert isinstance(local_storage, KeyValueStore)
        assert local_storage.source_name == "Local storage"

    @pytest.mark.asyncio
    async def test_missing_file_reads_empty(self, local_storage):
        assert await local_storage.get(["anything"]) == {}

    @pytest.mark.asyncio
    async def test_set_creates_parent_directories(self, temp_dir):
        storage = JsonFileStorage(temp_dir / "nested" / "state" / "storage.json")
        await storage.set({"k": 1})
        assert storage.path.exists()

    @pytest.mark.asyncio
    async def test_set_merges_keys(self, local_storage):
        await local_storage.set({"a": 1})
        await local_storage.set({"b": [1, 2]})

        assert await local_storage.get(["a", "b", "c"]) == {"a": 1, "b": [1, 2]}

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, local_storage):
        local_storage.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ExternalCallError):
            await local_storage.get(["a"])

    @pytest.mark.asyncio
    async def test_non_object_file_raises(self, local_storage):
        local_storage.path.write_text(json.dumps([1, 2]), encoding="utf-8")
        with pytest.raises(ExternalCallError):
            await local_storage.get(["a"])

    def test_repr(self, local_storage):
        assert "storage.json" in repr(local_storage)

    @pytest.mark.asyncio
    async def test_unserializable_value_leaves_no_temp_file(self, local_storage, temp_dir):
        await local_storage.set({"a": 1})

        with pytest.raises(ExternalCallError):
            await local_storage.set({"b": object()})

        assert [p.name for p in temp_dir.iterdir()] == ["storage.json"]
        assert await local_storage.get(["a", "b"]) == {"a": 1}

    @pytest.mark.asyncio
    async def test_failed_replace_leaves_no_temp_file(self, local_storage, temp_dir):
        with patch("os.replace", side_effect=OSError("read-only")):
            with pytest.raises(ExternalCallError):
                await local_storage.set({"a": 1})

        assert list(temp_dir.iterdir()) == []
