"""
Change Gate
===========
Decides whether a located fix is worth writing.

Rules:
    - MEANINGFUL: the line diff between the original window and the fix has
      at least one added or removed line with non-whitespace content once all
      whitespace is removed. Whitespace-only rewrites are never meaningful.
    - CONFIDENT: confidence >= threshold (0.6 or 0.8 depending on pipeline mode).
    - Apply only when both hold; otherwise report the reason. Never raises.
"""
import difflib
import logging
import re
from dataclasses import dataclass

from healer.utils.rejection_reasons import LOW_CONFIDENCE, NO_MEANINGFUL_CHANGE

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class GateDecision:
    accepted: bool
    reason: str = ""
    diff: str = ""


def compute_diff(original: str, patched: str, file_path: str = "file") -> str:
    """Unified diff between two texts (line-oriented)."""
    return "\n".join(difflib.unified_diff(
        original.splitlines(),
        patched.splitlines(),
        fromfile=f"a/{file_path}",
        tofile=f"b/{file_path}",
        lineterm="",
    ))


def _normalized(line: str) -> str:
    return _WHITESPACE_RE.sub("", line)


def is_meaningful_change(original: str, candidate: str) -> bool:
    """
    True if some added/removed hunk carries non-whitespace content.

    Lines are compared with whitespace stripped, so re-indentation and
    spacing changes alone do not count.
    """
    # Blank lines are dropped, so every non-equal opcode carries content
    original_lines = [l for l in map(_normalized, original.splitlines()) if l]
    candidate_lines = [l for l in map(_normalized, candidate.splitlines()) if l]
    matcher = difflib.SequenceMatcher(a=original_lines, b=candidate_lines, autojunk=False)
    return any(tag != "equal" for tag, *_ in matcher.get_opcodes())


class ChangeGate:
    """
    Meaningful-change + confidence gate.

    Parameters
    ----------
    confidence_threshold : float
        Minimum confidence to accept a change (inclusive).
    """

    def __init__(self, confidence_threshold: float = 0.6) -> None:
        self.confidence_threshold = confidence_threshold

    def decide(self, original: str, candidate: str, confidence: float, file_path: str = "file") -> GateDecision:
        diff = compute_diff(original, candidate, file_path)
        if not is_meaningful_change(original, candidate):
            logger.info("Fix for %s rejected: no meaningful change", file_path)
            return GateDecision(accepted=False, reason=NO_MEANINGFUL_CHANGE, diff=diff)
        if confidence < self.confidence_threshold:
            logger.info(
                "Fix for %s rejected: confidence %.2f below %.2f",
                file_path, confidence, self.confidence_threshold,
            )
            return GateDecision(accepted=False, reason=LOW_CONFIDENCE, diff=diff)
        return GateDecision(accepted=True, diff=diff)
