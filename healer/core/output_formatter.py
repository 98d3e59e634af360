"""
Output Formatter
================
Markdown summaries of a handled event, for issue comments and manual review.

STRICT DETERMINISM CONTRACT:
  - This module NEVER calls an LLM.
  - This module NEVER reads environment variables.
  - Given the same inputs, it ALWAYS returns the exact same output string.
"""
from typing import Optional

from healer.models.error_location import ErrorLocation


def _code_context(location: ErrorLocation) -> str:
    lines = list(location.pre_context)
    if location.context_line:
        lines.append(f">> {location.context_line}")
    lines.extend(location.post_context)
    return "\n".join(l for l in lines if l)


def format_error_analysis(location: ErrorLocation) -> str:
    """Markdown analysis of a located error, including frame source context."""
    error = location.error_message or ""
    error_label = f"{location.error_type}: {error}" if location.error_type else error
    line = f"{location.line}" if location.line is not None else ""
    if location.column:
        line += f":{location.column}"

    if location.error_type == "ReferenceError" and "not defined" in error:
        suggestion = (
            "- Ensure that the variable or function mentioned is defined and in scope.\n"
            "- If it should be imported or passed in, make sure it is available in this file."
        )
    else:
        suggestion = (
            "- Review the code context and error message above to identify the root cause.\n"
            "- Check for typos, missing imports, or incorrect usage."
        )

    return (
        "### Error Analysis\n\n"
        f"- **Error:** `{error_label}`\n"
        f"- **File:** `{location.file or 'unknown'}`\n"
        f"- **Line:** `{line}`\n"
        f"- **Function:** `{location.function or ''}`\n\n"
        "**Context:**\n\n"
        f"```\n{_code_context(location)}\n```\n\n"
        f"**Suggested Fix:**\n{suggestion}"
    )


def format_manual_review(location: ErrorLocation, reason: str, detail: Optional[str] = None) -> str:
    """Comment asking a human to take over, with the analysis appended."""
    header = f":warning: The error could not be fixed automatically ({reason}). Manual intervention is required."
    if detail:
        header += f"\n\n{detail}"
    return f"{header}\n\n{format_error_analysis(location)}"
