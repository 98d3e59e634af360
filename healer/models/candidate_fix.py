"""
Candidate Fix Model
===================
One proposed patch, created per model response (or per historical /
pattern suggestion) and consumed once by the mutator.

Fields:
    raw_text        — raw text the blocks were extracted from
    blocks          — extracted code blocks, in order (only the first is applied)
    start_line      — optional 1-based start of the target range
    end_line        — optional 1-based end of the target range (inclusive)
    error_line      — reported error line, drives position-based location
    confidence      — heuristic score in [0, 1]
    source          — "ai" / "historical" / "pattern"
    explanation     — short human-readable rationale
"""
from typing import List, Optional
from pydantic import BaseModel, Field


class CandidateFix(BaseModel):
    raw_text: str = ""
    blocks: List[str] = []
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    error_line: Optional[int] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    source: str = "ai"
    explanation: str = ""

    @property
    def code(self) -> str:
        """The block fed to downstream consumers."""
        return self.blocks[0] if self.blocks else ""
