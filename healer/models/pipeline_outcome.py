"""
Pipeline Outcome Model
======================
Terminal result of handling one incoming error event.

States:
    applied             — a fix was written to the working copy
    rejected            — gate rejected every candidate (low confidence / no-op)
    validation_failed   — every candidate failed structural validation
    location_failed     — no file/line could be resolved; manual review required
    analysis_failed     — the model call failed or produced no usable candidate
    workspace_failed    — the working copy could not be created
"""
from typing import List, Optional
from pydantic import BaseModel

from .error_location import ErrorLocation
from .fix_result import ApplyResult


class PipelineOutcome(BaseModel):
    state: str
    location: ErrorLocation
    apply_result: Optional[ApplyResult] = None
    attempts: List[ApplyResult] = []
    working_copy: str = ""
    target_file: str = ""
    summary: str = ""
