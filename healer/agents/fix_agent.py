"""
Fix Agent
=========
Proposes fixes for a located error and applies them to a working copy.

Core Philosophy:
    - Replace only the window around the reported line
    - Keep every byte outside the replaced window, line endings included
    - Prefer a safe, reported rejection over a risky write

Analysis (analyze):
    1. Assemble a token-bounded context around the error
    2. Look up a previous fix for the same error pattern
    3. Call the model once (no retry; failure is terminal for the event)
    4. Extract the first code block and score its confidence
    5. Add historical and pattern-based candidates
    6. Drop trivial / dangerous candidates, rank by confidence
    7. Remember the best candidate for this error pattern

Application (apply_fix) — state machine per attempt:
    Located → ValidationPassed | ValidationFailed
    ValidationPassed → Applied | Rejected (meaningful + confidence gate)
    Terminal: Applied, Rejected, LocationFailed

The FixAgent does NOT:
    - Parse error payloads (that's event_locator's job)
    - Create branches, commits or PRs (external collaborators)
    - Touch the canonical repository (orchestrator hands it a disposable copy)
"""
import logging
import os
from typing import Optional

from healer.core.config import CONTEXT_MAX_TOKENS, FIX_HISTORY_MAX, PipelineMode, get_pipeline_mode
from healer.llm.client import LLMClient, LLMError
from healer.llm.patch_extractor import extract_code_blocks, extract_section, score_confidence
from healer.llm.prompts import SYSTEM_PROMPT, build_analysis_prompt
from healer.models.candidate_fix import CandidateFix
from healer.models.error_location import ErrorLocation
from healer.models.fix_result import AnalysisResult, ApplyResult, FixState
from healer.services.change_gate import ChangeGate, compute_diff
from healer.services.context_assembler import ContextAssembler
from healer.services.fix_history import FixHistoryEntry, FixHistoryStore, InMemoryFixHistory
from healer.services.pattern_fixes import generate_pattern_fix
from healer.services.safety_validator import SafetyValidator, find_dangerous_patterns
from healer.utils.block_locator import locate_block
from healer.utils.path_utils import find_alternative_file, should_skip_file
from healer.utils.pattern_digest import compute_pattern_digest, extract_line_context
from healer.utils.rejection_reasons import (
    EMPTY_FIX,
    FILE_NOT_FOUND,
    LOCATION_FAILED,
    SKIPPED_FILE,
    VALIDATION_FAILED,
)

logger = logging.getLogger(__name__)

MIN_FIX_LENGTH = 5
HISTORICAL_CONFIDENCE_BONUS = 0.1
HISTORICAL_CONFIDENCE_CAP = 0.9


# ---------------------------------------------------------------------------
# Text Helpers
# ---------------------------------------------------------------------------
def detect_newline(content: str) -> str:
    return "\r\n" if "\r\n" in content else "\n"


def split_content(content: str) -> tuple[list[str], list[str]]:
    """
    Split text into lines and each line's own ending.

    Endings are "\\r\\n", "\\n", or "" for an unterminated last line, so a
    file mixing CRLF and LF keeps one list entry per physical line.
    """
    lines: list[str] = []
    endings: list[str] = []
    parts = content.split("\n")
    for part in parts[:-1]:
        if part.endswith("\r"):
            lines.append(part[:-1])
            endings.append("\r\n")
        else:
            lines.append(part)
            endings.append("\n")
    if parts[-1]:
        lines.append(parts[-1])
        endings.append("")
    return lines, endings


def join_content(lines: list[str], endings: list[str]) -> str:
    return "".join(line + ending for line, ending in zip(lines, endings))


def replacement_endings(replaced: list[str], count: int, fallback: str) -> list[str]:
    """
    Endings for `count` lines spliced over lines with endings `replaced`.

    Each new line takes the ending of the line it lands on; the last new
    line takes the ending of the last replaced line.
    """
    if count == 0:
        return []
    if not replaced:
        return [fallback] * count
    body = replaced[:-1] or [replaced[-1] or fallback]
    inner = [body[i] if i < len(body) else body[-1] for i in range(count - 1)]
    return inner + [replaced[-1]]


# ---------------------------------------------------------------------------
# Fix Agent
# ---------------------------------------------------------------------------
class FixAgent:
    """
    Analyses located errors and applies candidate fixes.

    Parameters
    ----------
    mode : PipelineMode or None
        Threshold / radius pair (default: PIPELINE_MODE from config).
    confidence_threshold : float or None
        Overrides the mode's threshold.
    window_radius : int or None
        Overrides the mode's replacement radius.
    client : LLMClient or None
        Model client (auto-created if not provided).
    history : FixHistoryStore or None
        Past-fix store (a fresh in-memory store if not provided).
    assembler : ContextAssembler or None
        Context builder (default budget from CONTEXT_MAX_TOKENS).
    validator : SafetyValidator or None
        Structural validator.
    """

    def __init__(
        self,
        mode: Optional[PipelineMode] = None,
        confidence_threshold: Optional[float] = None,
        window_radius: Optional[int] = None,
        client: Optional[LLMClient] = None,
        history: Optional[FixHistoryStore] = None,
        assembler: Optional[ContextAssembler] = None,
        validator: Optional[SafetyValidator] = None,
    ) -> None:
        self.mode = mode or get_pipeline_mode()
        self.confidence_threshold = (
            confidence_threshold if confidence_threshold is not None else self.mode.confidence_threshold
        )
        self.window_radius = window_radius if window_radius is not None else self.mode.window_radius
        self.client = client or LLMClient()
        self.history = history if history is not None else InMemoryFixHistory(FIX_HISTORY_MAX)
        self.assembler = assembler or ContextAssembler(max_tokens=CONTEXT_MAX_TOKENS)
        self.validator = validator or SafetyValidator()
        self.gate = ChangeGate(self.confidence_threshold)

    # -------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------
    async def analyze(self, location: ErrorLocation, repo_path: str) -> AnalysisResult:
        """
        Produce ranked candidate fixes for a located error.

        Parameters
        ----------
        location : ErrorLocation
            Resolved error location (file relative to repo_path).
        repo_path : str
            Root of the working copy.

        Returns
        -------
        AnalysisResult
            `fixes` best first. On model failure `error` is set and `fixes`
            is empty. Never raises.
        """
        if not location.is_resolved:
            return AnalysisResult(error=LOCATION_FAILED)

        file_path = os.path.join(repo_path, location.file)
        context = self.assembler.build_context(file_path, location.line, repo_path)

        digest = compute_pattern_digest(location, extract_line_context(file_path, location.line))
        historical = self.history.get(digest)
        if historical:
            logger.info("Found historical fix for similar error pattern %s", digest)

        prompt = build_analysis_prompt(location, context, historical)
        try:
            raw = await self.client.complete(prompt, SYSTEM_PROMPT)
        except LLMError as e:
            logger.error("Model call failed for %s: %s", location.file, e)
            return AnalysisResult(context=context, error=str(e))

        fixes = self._candidates_from_response(raw, location)
        if historical:
            fixes.append(CandidateFix(
                raw_text=historical.code,
                blocks=[historical.code],
                error_line=location.line,
                confidence=min(historical.confidence + HISTORICAL_CONFIDENCE_BONUS, HISTORICAL_CONFIDENCE_CAP),
                source="historical",
                explanation=f"Adapted from previous similar fix: {historical.explanation}",
            ))
        pattern_fix = generate_pattern_fix(location)
        if pattern_fix:
            fixes.append(pattern_fix)

        fixes = sorted(self._filter_candidates(fixes), key=lambda f: f.confidence, reverse=True)
        if fixes:
            best = fixes[0]
            self.history.set(digest, FixHistoryEntry(
                code=best.code, explanation=best.explanation, confidence=best.confidence,
            ))

        logger.info("Analysis of %s produced %d candidate(s)", location.file, len(fixes))
        return AnalysisResult(fixes=fixes, context=context, raw_response=raw)

    @staticmethod
    def _candidates_from_response(raw: str, location: ErrorLocation) -> list[CandidateFix]:
        blocks = extract_code_blocks(raw)
        if not blocks:
            return []
        explanation = (
            extract_section(raw, "Solution Approach", "Implementation")
            or extract_section(raw, "Root Cause Analysis", "Solution Approach")
            or "AI-generated fix"
        )
        return [CandidateFix(
            raw_text=raw,
            blocks=blocks,
            error_line=location.line,
            confidence=score_confidence(raw, blocks[0]),
            source="ai",
            explanation=explanation,
        )]

    @staticmethod
    def _filter_candidates(fixes: list[CandidateFix]) -> list[CandidateFix]:
        kept: list[CandidateFix] = []
        for fix in fixes:
            if len(fix.code) < MIN_FIX_LENGTH:
                logger.info("Dropping %s candidate: too short", fix.source)
                continue
            dangerous = find_dangerous_patterns(fix.code)
            if dangerous:
                logger.warning("Dangerous pattern in %s candidate: %s", fix.source, ", ".join(dangerous))
                continue
            kept.append(fix)
        return kept

    # -------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------
    def apply_fix(self, file_path: str, fix: CandidateFix, repo_path: Optional[str] = None) -> ApplyResult:
        """
        Splice a candidate fix into the file and overwrite it.

        Parameters
        ----------
        file_path : str
            Absolute path of the file to patch.
        fix : CandidateFix
            Candidate to apply (its first block is used).
        repo_path : str or None
            Working-copy root; enables repo-relative skip rules and
            alternative-path resolution.

        Returns
        -------
        ApplyResult
            Structured outcome. Never raises.
        """
        base = ApplyResult(confidence=fix.confidence, source=fix.source)
        try:
            if not fix.code.strip():
                return base.model_copy(update={"state": FixState.REJECTED, "reason": EMPTY_FIX})

            rel_path = os.path.relpath(file_path, repo_path) if repo_path else file_path
            if should_skip_file(rel_path):
                return base.model_copy(update={"state": FixState.REJECTED, "reason": SKIPPED_FILE})

            if not os.path.isfile(file_path):
                alternative = find_alternative_file(repo_path, file_path) if repo_path else None
                if not alternative:
                    logger.warning("File does not exist: %s", file_path)
                    return base.model_copy(update={
                        "state": FixState.LOCATION_FAILED,
                        "reason": f"{FILE_NOT_FOUND}: {file_path}",
                    })
                return self.apply_fix(alternative, fix, repo_path)

            with open(file_path, "r", encoding="utf-8", newline="") as f:
                content = f.read()

            lines, endings = split_content(content)

            block = locate_block(lines, fix, fix.raw_text, self.window_radius)
            if block is None:
                return base.model_copy(update={"state": FixState.LOCATION_FAILED, "reason": LOCATION_FAILED})

            original_window = "\n".join(lines[block.start - 1:block.end])
            replacement = fix.code.splitlines()
            spliced = replacement_endings(endings[block.start - 1:block.end], len(replacement), detect_newline(content))
            proposed = join_content(
                lines[:block.start - 1] + replacement + lines[block.end:],
                endings[:block.start - 1] + spliced + endings[block.end:],
            )

            # Located → validation
            validation = self.validator.validate(proposed, file_path)
            located = base.model_copy(update={"location": block, "validation": validation})
            if not validation.passed:
                logger.warning("Validation failed for %s: %s", file_path, "; ".join(validation.issues))
                return located.model_copy(update={
                    "state": FixState.VALIDATION_FAILED,
                    "reason": VALIDATION_FAILED,
                    "diff": compute_diff(original_window, fix.code, os.path.basename(file_path)),
                })

            # ValidationPassed → gate
            decision = self.gate.decide(original_window, fix.code, fix.confidence, os.path.basename(file_path))
            if not decision.accepted:
                return located.model_copy(update={
                    "state": FixState.REJECTED, "reason": decision.reason, "diff": decision.diff,
                })

            with open(file_path, "w", encoding="utf-8", newline="") as f:
                f.write(proposed)
            logger.info(
                "Applied %s fix to %s lines %d-%d (confidence %.2f)",
                fix.source, file_path, block.start, block.end, fix.confidence,
            )
            return located.model_copy(update={
                "success": True, "state": FixState.APPLIED, "diff": decision.diff,
            })
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error applying fix to %s: %s", file_path, e)
            return base.model_copy(update={"state": FixState.REJECTED, "reason": str(e)})

    async def close(self) -> None:
        """Clean up the LLM client."""
        if self.client:
            await self.client.close()
