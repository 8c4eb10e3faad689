"""
Capability adapters for Webmarks.

This module provides the two external capabilities the sync layer depends
on, as injectable interfaces with concrete implementations:

Main Components:
    - BookmarkTreeStore: Protocol for the external bookmark tree
    - KeyValueStore: Protocol for key-value persistence
    - ChromeBookmarksFile: Tree store over a Chromium ``Bookmarks`` file
    - JsonFileStorage: Local JSON-file key-value storage (fallback)
    - BridgeClient: HTTP client for the browser extension bridge
    - BrowserBridgeTreeStore / BrowserBridgeStorage: Bridge-backed capabilities

Usage:
    >>> from webmarks.core.data_sources import ChromeBookmarksFile
    >>> store = ChromeBookmarksFile(Path("~/.config/chromium/Default/Bookmarks"))
    >>> root = await store.get_tree()

For the browser bridge:
    >>> async with BridgeClient("http://127.0.0.1:8765", access_token=token) as client:
    ...     store = BrowserBridgeTreeStore(client)
    ...     storage = BrowserBridgeStorage(client)
"""

from .protocol import (
    AbstractBookmarkTreeStore,
    BookmarkTreeStore,
    CapabilityUnavailableError,
    DataSourceError,
    ExternalCallError,
    KeyValueStore,
    NodeNotFoundError,
)

from .chrome_profile import ChromeBookmarksFile

from .local_storage import JsonFileStorage

from .bridge_client import (
    BridgeAuthenticationError,
    BridgeClient,
    BridgeClientError,
    BridgeConnectionError,
    BridgeTimeoutError,
    BridgeToolError,
)

from .bridge_source import BrowserBridgeStorage, BrowserBridgeTreeStore


__all__ = [
    # Protocols and base classes
    "BookmarkTreeStore",
    "KeyValueStore",
    "AbstractBookmarkTreeStore",
    # Exceptions - Data Source
    "DataSourceError",
    "CapabilityUnavailableError",
    "ExternalCallError",
    "NodeNotFoundError",
    # Exceptions - Bridge
    "BridgeClientError",
    "BridgeConnectionError",
    "BridgeTimeoutError",
    "BridgeToolError",
    "BridgeAuthenticationError",
    # Implementations
    "ChromeBookmarksFile",
    "JsonFileStorage",
    "BridgeClient",
    "BrowserBridgeTreeStore",
    "BrowserBridgeStorage",
]
