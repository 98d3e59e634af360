"""
Fix Result Models
=================
Pydantic models tracking the outcome of analysis and of a fix attempt.

BlockRange:
    start / end     — 1-based inclusive line range in the current file
    strategy        — "position" (known error line) or "fuzzy" (content match)

ApplyResult:
    success         — True if the file was overwritten with the fix
    state           — terminal FixState of the attempt
    diff            — unified diff of the located window vs the fix
    location        — the replaced range
    reason          — rejection reason constant (see rejection_reasons.py)
    confidence      — confidence of the applied / rejected candidate
    source          — candidate source tag
    validation      — structural validation outcome, when it ran

AnalysisResult:
    fixes           — candidate fixes, best first
    context         — rendered model context
    raw_response    — raw model text ("" if the call failed)
    error           — model-call failure message, if any
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel

from .candidate_fix import CandidateFix
from .validation_result import ValidationResult


class FixState(str, Enum):
    """Per-attempt state machine: located → validation → gate."""
    LOCATED = "located"
    LOCATION_FAILED = "location_failed"
    VALIDATION_PASSED = "validation_passed"
    VALIDATION_FAILED = "validation_failed"
    APPLIED = "applied"
    REJECTED = "rejected"


class BlockRange(BaseModel):
    start: int
    end: int
    strategy: str = "position"


class ApplyResult(BaseModel):
    success: bool = False
    state: FixState = FixState.REJECTED
    diff: str = ""
    location: Optional[BlockRange] = None
    reason: str = ""
    confidence: float = 0.0
    source: str = ""
    validation: Optional[ValidationResult] = None


class AnalysisResult(BaseModel):
    fixes: List[CandidateFix] = []
    context: str = ""
    raw_response: str = ""
    error: str = ""
