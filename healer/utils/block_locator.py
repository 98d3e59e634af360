"""
Block Locator
=============
Finds the line range in the *current* file that a candidate fix replaces.

Strategies:
    explicit — a candidate carrying an in-bounds start_line..end_line replaces
               exactly that range
    position — a known, in-bounds error line L gives [max(1, L-k), min(n, L+k)];
               purely positional, file content is not consulted
    fuzzy    — the first non-empty line of the fix becomes an escaped,
               case-insensitive literal; the first file line containing it
               (or contained by it) anchors a window of the same radius

No match under either strategy → None (caller escalates to manual review).

Performance: O(file lines) — no AST parsing, no extra LLM calls.
"""
import re
import logging
from typing import Optional

from healer.llm.patch_extractor import first_code_block
from healer.models.candidate_fix import CandidateFix
from healer.models.fix_result import BlockRange

logger = logging.getLogger(__name__)


def window_around(line: int, total_lines: int, radius: int) -> BlockRange:
    """Clamp a ±radius window around a 1-based line to the file bounds."""
    return BlockRange(start=max(1, line - radius), end=min(total_lines, line + radius))


def find_anchor_line(lines: list[str], needle: str) -> Optional[int]:
    """
    1-based index of the first line that contains `needle` or is contained
    by it, case-insensitively. Blank lines never match.
    """
    needle = needle.strip()
    if not needle:
        return None
    pattern = re.compile(re.escape(needle), re.IGNORECASE)
    folded = needle.casefold()
    for index, text in enumerate(lines, start=1):
        stripped = text.strip()
        if not stripped:
            continue
        if pattern.search(text) or stripped.casefold() in folded:
            return index
    return None


def locate_block(
    lines: list[str],
    fix: CandidateFix,
    model_text: str = "",
    radius: int = 2,
) -> Optional[BlockRange]:
    """
    Locate the range to replace.

    Parameters
    ----------
    lines : list[str]
        Current file content split into lines.
    fix : CandidateFix
        Candidate carrying the extracted block, an optional explicit range
        and an optional error line.
    model_text : str
        Full model response; used when the fix carries no extracted block.
    radius : int
        Window radius k (2 or 5 depending on pipeline mode).

    Returns
    -------
    BlockRange or None
        1-based inclusive range, or None when nothing can be located.
    """
    total = len(lines)
    if total == 0:
        return None

    if fix.start_line is not None and fix.end_line is not None:
        if 1 <= fix.start_line <= fix.end_line <= total:
            logger.debug("Explicit block %d-%d", fix.start_line, fix.end_line)
            return BlockRange(start=fix.start_line, end=fix.end_line, strategy="explicit")
        logger.warning("Ignoring out-of-bounds range %d-%d", fix.start_line, fix.end_line)

    if fix.error_line is not None and 1 <= fix.error_line <= total:
        block = window_around(fix.error_line, total, radius)
        logger.debug("Position-based block %d-%d", block.start, block.end)
        return block

    code = fix.code or first_code_block(model_text or fix.raw_text)
    first_line = next((l for l in code.splitlines() if l.strip()), "")
    anchor = find_anchor_line(lines, first_line)
    if anchor is None:
        logger.warning("Could not locate block for fix (first line: %r)", first_line[:80])
        return None

    block = window_around(anchor, total, radius)
    logger.debug("Fuzzy block %d-%d anchored at line %d", block.start, block.end, anchor)
    return BlockRange(start=block.start, end=block.end, strategy="fuzzy")
