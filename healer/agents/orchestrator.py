"""
Orchestrator Agent
==================
Drives one error event end to end:

    Locate → Working copy → Resolve target → Analyze → Apply (best first)

Core Features:
    - Terminal outcome for every event (never raises)
    - Each event gets its own disposable working copy
    - Candidates are tried best-first until one is applied
    - Markdown summary for manual review when nothing could be applied

The Orchestrator does NOT:
    - Create branches, commits or pull requests
    - Retry the model call
"""
import os
import logging
from typing import Any, List, Optional

from healer.agents.fix_agent import FixAgent
from healer.core.config import WORKSPACE_ROOT
from healer.core.output_formatter import format_error_analysis, format_manual_review
from healer.models.error_location import ErrorLocation
from healer.models.fix_result import ApplyResult, FixState
from healer.models.pipeline_outcome import PipelineOutcome
from healer.parser.event_locator import locate_error
from healer.services.workspace_service import create_working_copy, discard_working_copy
from healer.utils.path_utils import find_alternative_file
from healer.utils.rejection_reasons import FILE_NOT_FOUND, LOCATION_FAILED

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Outcome states
# ---------------------------------------------------------------------------
APPLIED = "applied"
REJECTED = "rejected"
VALIDATION_FAILED = "validation_failed"
LOCATION_FAILED_STATE = "location_failed"
ANALYSIS_FAILED = "analysis_failed"
WORKSPACE_FAILED = "workspace_failed"


def _final_state(attempts: List[ApplyResult]) -> str:
    """Collapse per-candidate attempts into one terminal state."""
    states = {a.state for a in attempts}
    if FixState.APPLIED in states:
        return APPLIED
    if FixState.REJECTED in states:
        return REJECTED
    if FixState.VALIDATION_FAILED in states:
        return VALIDATION_FAILED
    return LOCATION_FAILED_STATE


def _applied_summary(location: ErrorLocation, result: ApplyResult) -> str:
    block = result.location
    lines = f"{block.start}-{block.end}" if block else "?"
    return (
        f":white_check_mark: Applied a {result.source} fix "
        f"(confidence {result.confidence:.2f}) to lines {lines}.\n\n"
        f"```diff\n{result.diff}\n```\n\n"
        f"{format_error_analysis(location)}"
    )


class Orchestrator:
    """
    Pipeline driver for incoming error events.

    Parameters
    ----------
    fix_agent : FixAgent or None
        Analysis / mutation agent (auto-created if not provided).
    workspace_root : str
        Parent directory for working copies.
    """

    def __init__(self, fix_agent: Optional[FixAgent] = None, workspace_root: str = WORKSPACE_ROOT) -> None:
        self.fix_agent = fix_agent or FixAgent()
        self.workspace_root = workspace_root

    async def handle_event(
        self,
        payload: Any,
        repo_source: str,
        discard_on_failure: bool = True,
    ) -> PipelineOutcome:
        """
        Handle one error event against a repository.

        Parameters
        ----------
        payload : dict or str
            Raw error-report payload.
        repo_source : str
            Local directory or git URL of the repository.
        discard_on_failure : bool
            Remove the working copy unless a fix was applied.

        Returns
        -------
        PipelineOutcome
        """
        # ===========================================================
        # 1. Locate
        # ===========================================================
        location = locate_error(payload)
        if not location.is_resolved:
            logger.warning("Could not locate error in payload; manual review required")
            return PipelineOutcome(
                state=LOCATION_FAILED_STATE,
                location=location,
                summary=format_manual_review(location, LOCATION_FAILED),
            )
        logger.info("Step 1: Located error at %s:%s (%s)", location.file, location.line, location.strategy)

        # ===========================================================
        # 2. Working copy
        # ===========================================================
        try:
            working_copy = create_working_copy(repo_source, root=self.workspace_root)
        except RuntimeError as e:
            logger.error("Step 2: Working copy failed: %s", e)
            return PipelineOutcome(
                state=WORKSPACE_FAILED,
                location=location,
                summary=format_manual_review(location, "working copy failed", str(e)),
            )
        logger.info("Step 2: Working copy at %s", working_copy)

        outcome = await self._run_in_copy(location, working_copy)
        if discard_on_failure and outcome.state != APPLIED:
            discard_working_copy(working_copy)
        return outcome

    async def _run_in_copy(self, location: ErrorLocation, working_copy: str) -> PipelineOutcome:
        # ===========================================================
        # 3. Resolve target file
        # ===========================================================
        target = os.path.join(working_copy, location.file)
        if not os.path.isfile(target):
            alternative = find_alternative_file(working_copy, location.file, location.function)
            if not alternative:
                reason = f"{FILE_NOT_FOUND}: {location.file}"
                logger.warning("Step 3: %s", reason)
                return PipelineOutcome(
                    state=LOCATION_FAILED_STATE,
                    location=location,
                    working_copy=working_copy,
                    summary=format_manual_review(location, reason),
                )
            target = alternative
            location = location.model_copy(update={
                "file": os.path.relpath(alternative, working_copy).replace(os.sep, "/"),
            })
        logger.info("Step 3: Target file %s", target)

        try:
            # ===========================================================
            # 4. Analyze
            # ===========================================================
            analysis = await self.fix_agent.analyze(location, working_copy)
            if analysis.error or not analysis.fixes:
                reason = analysis.error or "no usable fix candidates"
                logger.warning("Step 4: Analysis failed: %s", reason)
                return PipelineOutcome(
                    state=ANALYSIS_FAILED,
                    location=location,
                    working_copy=working_copy,
                    target_file=target,
                    summary=format_manual_review(location, "analysis failed", reason),
                )

            # ===========================================================
            # 5. Apply best-first
            # ===========================================================
            attempts: List[ApplyResult] = []
            for fix in analysis.fixes:
                result = self.fix_agent.apply_fix(target, fix, working_copy)
                attempts.append(result)
                logger.info(
                    "Step 5: %s candidate (%.2f) → %s %s",
                    fix.source, fix.confidence, result.state.value, result.reason,
                )
                if result.success:
                    break
        except Exception as e:
            logger.error("Pipeline failed for %s: %s", location.file, e, exc_info=True)
            return PipelineOutcome(
                state=ANALYSIS_FAILED,
                location=location,
                working_copy=working_copy,
                target_file=target,
                summary=format_manual_review(location, "analysis failed", str(e)),
            )

        state = _final_state(attempts)
        final = attempts[-1]
        if state == APPLIED:
            summary = _applied_summary(location, final)
        else:
            reasons = "\n".join(f"- {a.source}: {a.reason}" for a in attempts)
            summary = format_manual_review(location, final.reason, reasons)

        return PipelineOutcome(
            state=state,
            location=location,
            apply_result=final,
            attempts=attempts,
            working_copy=working_copy,
            target_file=target,
            summary=summary,
        )
