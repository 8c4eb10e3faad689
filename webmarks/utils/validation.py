"""
Input validation utilities for Webmarks.

This module validates bookmark form input before it reaches the normalized
model, and command-line arguments before configuration is loaded.
"""

import os
import re
from pathlib import Path
from typing import Collection, Optional, Union
from urllib.parse import urlparse

from webmarks.core.data_models import BookmarkFormData, SortOption
from webmarks.utils.error_handler import BookmarkValidationError, ValidationError

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")
_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def validate_url(url: Optional[str]) -> str:
    """
    Validate that a URL is well formed.

    A URL is accepted when it has a valid scheme and a network location,
    e.g. ``http://a.test`` or ``https://example.com/path``.

    Args:
        url: URL string to validate

    Returns:
        The stripped URL

    Raises:
        BookmarkValidationError: If the URL is empty or malformed
    """
    if url is None or not url.strip():
        raise BookmarkValidationError("URL is required", field_name="url")

    url = url.strip()
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise BookmarkValidationError(f"Malformed URL: {url} ({e})", field_name="url")

    if not parsed.scheme or not _SCHEME_RE.match(parsed.scheme):
        raise BookmarkValidationError(f"URL has no valid scheme: {url}", field_name="url")
    if not parsed.netloc or not hostname:
        raise BookmarkValidationError(f"URL has no host: {url}", field_name="url")
    if any(ch.isspace() for ch in url):
        raise BookmarkValidationError(f"URL contains whitespace: {url}", field_name="url")

    return url


def validate_bookmark_form(
    form: BookmarkFormData, known_list_ids: Collection[str]
) -> BookmarkFormData:
    """
    Validate and normalize an add-bookmark request.

    Args:
        form: Raw form data
        known_list_ids: Ids of the lists currently in the model

    Returns:
        A new BookmarkFormData with stripped fields

    Raises:
        BookmarkValidationError: If any required field is empty or malformed
    """
    title = (form.title or "").strip()
    if not title:
        raise BookmarkValidationError("Title is required", field_name="title")

    url = validate_url(form.url)

    list_id = (form.list_id or "").strip()
    if not list_id:
        raise BookmarkValidationError("Target list is required", field_name="list_id")
    if list_id not in known_list_ids:
        raise BookmarkValidationError(f"Unknown list: {list_id}", field_name="list_id")

    tags = [tag.strip() for tag in form.tags or [] if tag and tag.strip()]

    return BookmarkFormData(
        title=title,
        url=url,
        list_id=list_id,
        description=(form.description or "").strip(),
        tags=tags,
    )


def validate_list_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise BookmarkValidationError("List name is required", field_name="name")
    return name.strip()


def validate_color(color: str) -> str:
    if not _COLOR_RE.match(color or ""):
        raise BookmarkValidationError(
            f"Color must be a #rrggbb hex value, got: {color!r}", field_name="color"
        )
    return color.lower()


def validate_sort_option(value: Union[str, SortOption]) -> SortOption:
    try:
        return SortOption(value)
    except ValueError:
        choices = ", ".join(option.value for option in SortOption)
        raise BookmarkValidationError(
            f"Unknown sort option {value!r} (expected one of: {choices})",
            field_name="sort",
        )


def validate_config_file(file_path: Union[str, Path, None]) -> Union[Path, None]:
    """
    Validate configuration file path.

    Args:
        file_path: Path to configuration file (optional)

    Returns:
        Validated Path object or None

    Raises:
        ValidationError: If file is specified but invalid
    """
    if file_path is None:
        return None

    path = Path(file_path)

    if not path.exists():
        raise ValidationError(f"Configuration file does not exist: {file_path}")

    if not path.is_file():
        raise ValidationError(f"Configuration path is not a file: {file_path}")

    if not os.access(path, os.R_OK):
        raise ValidationError(f"Configuration file is not readable: {file_path}")

    if path.suffix.lower() not in (".toml", ".json"):
        raise ValidationError(
            f"Configuration file must be TOML or JSON, got: {path.suffix}"
        )

    return path.absolute()


def validate_bookmarks_file(file_path: Union[str, Path, None]) -> Union[Path, None]:
    """
    Validate the path of a Chromium ``Bookmarks`` profile file.

    Raises:
        ValidationError: If the file is specified but missing or unreadable
    """
    if file_path is None:
        return None

    path = Path(file_path).expanduser()

    if not path.exists():
        raise ValidationError(f"Bookmarks file does not exist: {file_path}")

    if not path.is_file():
        raise ValidationError(f"Bookmarks path is not a file: {file_path}")

    if not os.access(path, os.R_OK):
        raise ValidationError(f"Bookmarks file is not readable: {file_path}")

    return path.absolute()
