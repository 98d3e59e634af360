"""
LLM Prompts
===========
Centralised store for the fix-analysis system and user prompts.

Prompt Design Rules:
    - Focus on the primary error location
    - Ask for a structured answer: root cause, approach, implementation, safety
    - Ask for the fixed code in a fenced code block
    - When a similar error was fixed before, show that fix as a reference
"""
from typing import Optional

from healer.models.error_location import ErrorLocation
from healer.services.fix_history import FixHistoryEntry


SYSTEM_PROMPT = (
    "You are an expert code fixer with deep knowledge of runtime errors.\n"
    "Analyze errors systematically and provide structured, safe fixes.\n"
    "\n"
    "Always follow this process:\n"
    "1. Identify the root cause\n"
    "2. Consider multiple solution approaches\n"
    "3. Choose the safest, most reliable fix\n"
    "4. Include proper error handling\n"
    "5. Maintain code quality and readability"
)


def build_analysis_prompt(
    location: ErrorLocation,
    context: str,
    historical_fix: Optional[FixHistoryEntry] = None,
) -> str:
    """
    Build the user prompt for one analysis call.

    Parameters
    ----------
    location : ErrorLocation
        The located error.
    context : str
        Rendered context bundle.
    historical_fix : FixHistoryEntry or None
        A previous fix for a similar error pattern, if known.

    Returns
    -------
    str
        Complete user prompt.
    """
    sections = [
        "An error was reported in our application:",
        "",
        f"Error Type: {location.error_type or 'Unknown'}",
        f"Error Message: {location.error_message or ''}",
        f"File: {location.file}",
        f"Line: {location.line if location.line is not None else 'unknown'}",
    ]
    if location.function:
        sections.append(f"Function: {location.function}")
    sections += ["", "Context:", context, ""]

    if historical_fix:
        sections += [
            "Historical Fix Reference:",
            "We've seen a similar error before. Here's what worked:",
            historical_fix.explanation,
            "",
            f"Code: {historical_fix.code}",
            "",
            "Consider this pattern but adapt it to the current context.",
            "",
        ]

    sections += [
        "Please provide a structured analysis and fix:",
        "",
        "1. Root Cause Analysis:",
        "   - What is causing this error?",
        "",
        "2. Solution Approach:",
        "   - Which solution is the safest and most reliable?",
        "",
        "3. Implementation:",
        "   - Provide the fixed code for the lines around the error line",
        "   - Include proper error handling",
        "",
        "4. Safety Considerations:",
        "   - Will this fix break anything else?",
        "",
        "Put the fixed code in a single fenced code block.",
    ]
    return "\n".join(sections)
