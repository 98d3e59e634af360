"""
POST /api/locate, POST /api/fix
===============================
Thin HTTP adapters over the pipeline.

/api/locate  — normalise a raw error payload into an ErrorLocation.
/api/fix     — run the full pipeline for one event against a repository
               and return the terminal outcome.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator

from healer.agents.fix_agent import FixAgent
from healer.agents.orchestrator import Orchestrator
from healer.core.config import FIX_HISTORY_MAX, PIPELINE_MODES, WORKSPACE_ROOT, get_pipeline_mode
from healer.models.error_location import ErrorLocation
from healer.parser.event_locator import locate_error
from healer.services.fix_history import FixHistoryStore, InMemoryFixHistory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Healer"])

# Learning cache shared by every request in this process
fix_history = InMemoryFixHistory(FIX_HISTORY_MAX)


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------
class LocateRequest(BaseModel):
    event: Dict[str, Any]


class FixRequest(BaseModel):
    event: Dict[str, Any]
    repo_path: str
    mode: Optional[str] = None

    @field_validator("mode")
    @classmethod
    def check_mode(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value.strip().lower() not in PIPELINE_MODES:
            raise ValueError(f"unknown mode {value!r}; expected one of {sorted(PIPELINE_MODES)}")
        return value


class FixResponse(BaseModel):
    state: str
    file: Optional[str] = None
    line: Optional[int] = None
    reason: str = ""
    confidence: float = 0.0
    source: str = ""
    diff: str = ""
    working_copy: str = ""
    summary: str = ""


def get_fix_history() -> FixHistoryStore:
    return fix_history


def get_orchestrator_factory(history: FixHistoryStore = Depends(get_fix_history)):
    """Dependency returning a callable that builds an Orchestrator for a mode."""
    def build(mode: Optional[str]) -> Orchestrator:
        agent = FixAgent(mode=get_pipeline_mode(mode), history=history)
        return Orchestrator(fix_agent=agent, workspace_root=WORKSPACE_ROOT)
    return build


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("/locate", response_model=ErrorLocation)
async def locate(request: LocateRequest):
    """Resolve the source location of an error event."""
    location = locate_error(request.event)
    logger.info("[API] Located %s:%s via %s", location.file, location.line, location.strategy)
    return location


@router.post("/fix", response_model=FixResponse)
async def fix(request: FixRequest, factory=Depends(get_orchestrator_factory)):
    """Locate, analyze and apply a fix for one error event."""
    logger.info("[API] Fix request for %s (mode=%s)", request.repo_path, request.mode or "default")
    orchestrator = factory(request.mode)
    try:
        outcome = await orchestrator.handle_event(request.event, request.repo_path)
    except Exception as exc:
        logger.error("[API] Pipeline crashed for %s: %s", request.repo_path, exc, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Fix failed: {exc}")
    finally:
        await orchestrator.fix_agent.close()

    result = outcome.apply_result
    logger.info("[API] Fix finished for %s: %s", request.repo_path, outcome.state)
    return FixResponse(
        state=outcome.state,
        file=outcome.location.file,
        line=outcome.location.line,
        reason=result.reason if result else "",
        confidence=result.confidence if result else 0.0,
        source=result.source if result else "",
        diff=result.diff if result else "",
        working_copy=outcome.working_copy,
        summary=outcome.summary,
    )
