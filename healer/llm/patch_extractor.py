"""
Patch Extractor
===============
Pulls candidate code out of free-form model text.

Rules:
    - Every fenced (```) block is extracted, with or without a language tag
    - Blocks are trimmed and returned in order
    - No fenced block → the whole trimmed response is the single block
    - Only the first block is fed to downstream consumers

Also hosts the response heuristics used to score a candidate:
confidence scoring and section extraction for structured answers.
"""
import re
import logging

logger = logging.getLogger(__name__)

# ```lang\n ... ```: the tag is optional and the body may be empty
_FENCE_RE = re.compile(r"```[^\n`]*\n?(.*?)```", re.DOTALL)

CONFIDENCE_BASE = 0.5
CONFIDENCE_CAP = 0.95


def extract_code_blocks(text: str) -> list[str]:
    """
    Extract all fenced code blocks from model text.

    Parameters
    ----------
    text : str
        Raw model response.

    Returns
    -------
    list[str]
        N trimmed blocks for N fenced blocks; otherwise a single block equal
        to the trimmed response (empty list for empty input).
    """
    if not text or not text.strip():
        return []
    blocks = [m.group(1).strip() for m in _FENCE_RE.finditer(text)]
    if blocks:
        return blocks
    logger.info("No code block found in response, using whole text")
    return [text.strip()]


def first_code_block(text: str) -> str:
    blocks = extract_code_blocks(text)
    return blocks[0] if blocks else ""


def extract_section(text: str, start_marker: str, end_marker: str = "") -> str:
    """Text between two headings of a structured answer ("" if absent)."""
    start_index = text.find(start_marker)
    if start_index == -1:
        return ""
    start = start_index + len(start_marker)
    end = text.find(end_marker, start) if end_marker else -1
    return text[start:end if end != -1 else len(text)].strip(" :*#\n")


def score_confidence(response: str, code: str) -> float:
    """
    Heuristic confidence for a model-proposed fix.

    Base 0.5; +0.2 for substantive code; +0.1 each for a root-cause section,
    a safety section, a mention of error handling, and a try/catch in the
    answer. Capped at 0.95.
    """
    confidence = CONFIDENCE_BASE
    if code and len(code) > 10:
        confidence += 0.2
    if "Root Cause" in response:
        confidence += 0.1
    if "Safety Considerations" in response:
        confidence += 0.1
    if "error handling" in response:
        confidence += 0.1
    if "try" in response and ("catch" in response or "except" in response):
        confidence += 0.1
    return round(min(confidence, CONFIDENCE_CAP), 2)
