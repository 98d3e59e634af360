"""
File Kinds
==========
Extension-keyed classification used to dispatch structural validation.

    SCRIPT  — plain source code (js, ts, py, java, ...)
    MARKUP  — source that embeds tags (jsx, tsx, vue, svelte, html)
    GENERIC — anything else; only language-neutral checks apply
"""
import os
from enum import Enum

from healer.core.constants import MARKUP_EXTENSIONS, SOURCE_EXTENSIONS


class FileKind(str, Enum):
    SCRIPT = "script"
    MARKUP = "markup"
    GENERIC = "generic"


def classify_file_kind(file_path: str) -> FileKind:
    ext = os.path.splitext(file_path or "")[1].lower()
    if ext in MARKUP_EXTENSIONS:
        return FileKind.MARKUP
    if ext in SOURCE_EXTENSIONS:
        return FileKind.SCRIPT
    return FileKind.GENERIC


def uses_hash_comments(file_path: str) -> bool:
    """Languages whose line comments start with '#'."""
    return os.path.splitext(file_path or "")[1].lower() in (".py", ".rb")
