"""Path utilities: normalize editor paths and split them into segments.

These helpers centralize the rules shared by the reconciliation engine and the
tree projection:
- Absolute path always starts with exactly one '/'; no trailing slash;
- Segments never contain '/'; empty or whitespace-only segments (from '//', '/ /' or a trailing '/') are dropped;
- The whole path is trimmed once; inner segments are kept verbatim, so spaces around a
  segment such as 'notes ' are part of the stored name.
"""

from __future__ import annotations

import posixpath

from app.packages.workspace.core.constants import (
    EXTENSION_LANGUAGES,
    FOLDER_MARKER,
    PLACEHOLDER_NAME,
)


def norm_abs_path(p: str | None) -> str:
    segments = path_segments(p)
    return "/" + "/".join(segments)


def path_segments(p: str | None) -> list[str]:
    return [seg for seg in (p or "").strip().split("/") if seg.strip()]


def split_path(p: str) -> tuple[list[str], str]:
    """'/src/components/App.js' -> (['src', 'components'], 'App.js')."""
    segments = path_segments(p)
    if not segments:
        return [], ""
    return segments[:-1], segments[-1]


def join_path(parent_path: str, name: str) -> str:
    if not parent_path or parent_path == "/":
        return "/" + name
    return f"{parent_path.rstrip('/')}/{name}"


def is_placeholder_path(p: str) -> bool:
    return path_segments(p)[-1:] == [PLACEHOLDER_NAME]


def is_folder_marker(content: str) -> bool:
    return content == FOLDER_MARKER or content.strip() == FOLDER_MARKER


def language_for_name(name: str, default: str) -> str:
    ext = posixpath.splitext(name)[1].lower().lstrip(".")
    return EXTENSION_LANGUAGES.get(ext, default)
