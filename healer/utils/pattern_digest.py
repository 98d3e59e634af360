"""
Pattern Digest
==============
Stable key identifying "the same kind of error" across events.

A digest combines:
    - error_type
    - error_message reduced to [a-z0-9]
    - file extension
    - lowercased source lines around the error

Rules:
    - SHA-256 truncated to 16 hex chars for compactness
    - Deterministic: same inputs always give the same digest
    - Reading the line context is best-effort; unreadable files contribute ""
"""
import hashlib
import json
import os
import re
from typing import Optional

from healer.models.error_location import ErrorLocation

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def extract_line_context(file_path: Optional[str], line: Optional[int]) -> str:
    """Lowercased lines L-2..L+2 of the file, or "" if unavailable."""
    if not file_path or not line:
        return ""
    try:
        with open(file_path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()
    except OSError:
        return ""
    start = max(0, line - 3)
    return "\n".join(lines[start:line + 2]).lower()


def compute_pattern_digest(location: ErrorLocation, line_context: str = "") -> str:
    """
    Digest for the fix-history store.

    Parameters
    ----------
    location : ErrorLocation
        The located error.
    line_context : str
        Source lines around the error (see extract_line_context).

    Returns
    -------
    str
        16-character hex digest.
    """
    pattern = {
        "error_type": location.error_type or "",
        "error_message": _NON_ALNUM_RE.sub("", (location.error_message or "").lower()),
        "file_extension": os.path.splitext(location.file or "")[1],
        "line_context": line_context,
    }
    raw = json.dumps(pattern, sort_keys=True)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]
