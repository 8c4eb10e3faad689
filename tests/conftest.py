"""
Pytest configuration and shared fixtures for Webmarks tests.

This module provides the sample bookmark tree, Chromium profile files,
in-memory capability doubles and a wired-up coordinator shared across test
modules.
"""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from webmarks.core.data_models import FolderNode
from webmarks.core.data_sources.chrome_profile import millis_to_webkit
from webmarks.core.data_sources.local_storage import JsonFileStorage
from webmarks.core.mutation_coordinator import MutationCoordinator
from webmarks.core.normalized_model import NormalizedModel
from webmarks.core.selection_store import SelectionStore
from webmarks.core.tree_extractor import TreeExtractor
from webmarks.utils.error_handler import DiagnosticsLog
from tests.fixtures.fake_stores import InMemoryKeyValueStore, InMemoryTreeStore

# Millisecond timestamps used by the sample tree
T1 = 1_600_000_000_000
T2 = 1_650_000_000_000
T3 = 1_700_000_000_000
T4 = 1_720_000_000_000


# ============================================================================
# Pytest Configuration
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep WEBMARKS_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("WEBMARKS_"):
            monkeypatch.delenv(name, raising=False)


# ============================================================================
# Directories
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


# ============================================================================
# Bookmark trees
# ============================================================================


def build_sample_tree() -> FolderNode:
    """
    Root
    ├── 1 Bookmarks bar
    │   ├── 5 Work            (11 Docs T1, 12 Tracker T3, 6 Archive -> 13 Old wiki T2)
    │   └── 14 Loose bookmark
    └── 2 Other bookmarks
        ├── 9 Reading         (15 Blog T4)
        └── 10 Empty
    """
    return FolderNode.from_dict(
        {
            "id": "0",
            "title": "",
            "children": [
                {
                    "id": "1",
                    "title": "Bookmarks bar",
                    "children": [
                        {
                            "id": "5",
                            "title": "Work",
                            "children": [
                                {"id": "11", "title": "Docs", "url": "https://docs.example.com/start", "dateAdded": T1},
                                {"id": "12", "title": "Tracker", "url": "https://tracker.example.com", "dateAdded": T3},
                                {
                                    "id": "6",
                                    "title": "Archive",
                                    "children": [
                                        {"id": "13", "title": "Old wiki", "url": "https://wiki.example.com", "dateAdded": T2},
                                    ],
                                },
                            ],
                        },
                        {"id": "14", "title": "Loose bookmark", "url": "https://loose.example.com", "dateAdded": T1},
                    ],
                },
                {
                    "id": "2",
                    "title": "Other bookmarks",
                    "children": [
                        {
                            "id": "9",
                            "title": "Reading",
                            "children": [
                                {"id": "15", "title": "Blog", "url": "https://blog.example.org/post", "dateAdded": T4},
                            ],
                        },
                        {"id": "10", "title": "Empty", "children": []},
                    ],
                },
            ],
        }
    )


@pytest.fixture
def sample_tree() -> FolderNode:
    return build_sample_tree()


@pytest.fixture
def nested_tree() -> FolderNode:
    """Root -> F1 (bookmark A, subfolder F2 -> bookmark B)."""
    return FolderNode.from_dict(
        {
            "id": "root",
            "children": [
                {
                    "id": "F1",
                    "title": "F1",
                    "children": [
                        {"id": "A", "title": "A", "url": "http://a.test"},
                        {
                            "id": "F2",
                            "title": "F2",
                            "children": [{"id": "B", "title": "B", "url": "http://b.test"}],
                        },
                    ],
                }
            ],
        }
    )


# ============================================================================
# Chromium profile files
# ============================================================================


def _chrome_url(node_id: str, name: str, url: str, millis: int) -> dict:
    return {
        "date_added": millis_to_webkit(millis),
        "guid": f"00000000-0000-4000-8000-{int(node_id):012d}",
        "id": node_id,
        "name": name,
        "type": "url",
        "url": url,
    }


def _chrome_folder(node_id: str, name: str, children: list) -> dict:
    return {
        "children": children,
        "date_added": millis_to_webkit(T1),
        "date_modified": "0",
        "guid": f"00000000-0000-4000-8000-{int(node_id):012d}",
        "id": node_id,
        "name": name,
        "type": "folder",
    }


def build_chrome_document() -> dict:
    return {
        "checksum": "0123456789abcdef0123456789abcdef",
        "roots": {
            "bookmark_bar": _chrome_folder(
                "1",
                "Bookmarks bar",
                [
                    _chrome_folder(
                        "5",
                        "Work",
                        [
                            _chrome_url("11", "Docs", "https://docs.example.com/start", T1),
                            _chrome_url("12", "Tracker", "https://tracker.example.com", T3),
                            _chrome_folder(
                                "6",
                                "Archive",
                                [_chrome_url("13", "Old wiki", "https://wiki.example.com", T2)],
                            ),
                        ],
                    ),
                    _chrome_url("14", "Loose bookmark", "https://loose.example.com", T1),
                ],
            ),
            "other": _chrome_folder(
                "2",
                "Other bookmarks",
                [
                    _chrome_folder(
                        "9",
                        "Reading",
                        [_chrome_url("15", "Blog", "https://blog.example.org/post", T4)],
                    ),
                    _chrome_folder("10", "Empty", []),
                ],
            ),
            "synced": _chrome_folder("3", "Mobile bookmarks", []),
        },
        "version": 1,
    }


@pytest.fixture
def chrome_bookmarks_file(temp_dir) -> Path:
    """A Chromium ``Bookmarks`` file with the sample tree."""
    path = temp_dir / "Bookmarks"
    path.write_text(json.dumps(build_chrome_document(), indent=3), encoding="utf-8")
    return path


# ============================================================================
# Capabilities and core objects
# ============================================================================


@pytest.fixture
def tree_store(sample_tree) -> InMemoryTreeStore:
    return InMemoryTreeStore(sample_tree)


@pytest.fixture
def key_value_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def local_storage(temp_dir) -> JsonFileStorage:
    return JsonFileStorage(temp_dir / "storage.json")


@pytest.fixture
def diagnostics() -> DiagnosticsLog:
    return DiagnosticsLog()


@pytest.fixture
def loaded_model(sample_tree) -> NormalizedModel:
    """Model extracted from the sample tree with folders 5 and 9 selected."""
    model = NormalizedModel()
    model.replace(TreeExtractor().extract(sample_tree, {"5", "9"}))
    return model


@pytest.fixture
def selection_store(key_value_store, local_storage, diagnostics) -> SelectionStore:
    return SelectionStore(key_value_store, local_storage, diagnostics)


@pytest.fixture
def coordinator(loaded_model, tree_store, selection_store, diagnostics) -> MutationCoordinator:
    return MutationCoordinator(loaded_model, tree_store, selection_store, diagnostics)
