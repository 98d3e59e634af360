"""
Error Location Model
====================
Pydantic model for a normalised error location.
This is the contract between the event locator and all downstream consumers.

Fields:
    file            — repo-relative path, forward slashes (None = unresolved)
    line            — 1-based line number
    column          — 1-based column number
    function        — function / method name from the stack frame
    error_type      — exception class (TypeError, ReferenceError, ...)
    error_message   — exception value or event message
    pre_context     — source lines before the failing line (from the frame)
    context_line    — the failing source line itself
    post_context    — source lines after the failing line
    frames          — raw stack frames as received
    strategy        — name of the locator strategy that resolved `file`
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class ErrorLocation(BaseModel):
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    function: Optional[str] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    pre_context: List[str] = []
    context_line: Optional[str] = None
    post_context: List[str] = []
    frames: List[Dict[str, Any]] = []
    strategy: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        """True once a source file has been identified."""
        return bool(self.file)
