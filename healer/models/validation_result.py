"""
Validation Result Model
=======================
Outcome of the tiered structural safety check.

Fields:
    passed      — True if the content was accepted at some tier
    tier        — tier at which it passed, or the last tier tried on failure
    issues      — blocking problems found at `tier`
    warnings    — non-blocking notes (relaxed checks, internal validator errors)
"""
from typing import List
from pydantic import BaseModel


class ValidationResult(BaseModel):
    passed: bool
    tier: str
    issues: List[str] = []
    warnings: List[str] = []
