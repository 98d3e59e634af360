"""
Pattern Fixes
=============
Deterministic fix suggestions for common runtime error shapes, offered as
extra candidates next to the model's answer.

    ReferenceError / "is not defined"      → declare the missing name
    TypeError / "cannot read property"     → guard the property access

No LLM allowed in this layer.
"""
import os
import re
from typing import Optional

from healer.models.candidate_fix import CandidateFix
from healer.models.error_location import ErrorLocation

PATTERN_CONFIDENCE = 0.7

# The suggested snippets are JavaScript
_JS_EXTENSIONS = {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".vue", ".svelte"}

_NOT_DEFINED_RE = re.compile(r"'?([A-Za-z_$][\w$]*)'? is not defined", re.IGNORECASE)
_READ_PROPERTY_RE = re.compile(
    r"cannot read propert(?:y|ies) (?:of \w+ \(reading )?'([^']+)'\)?(?: of (\S+))?",
    re.IGNORECASE,
)


def suggest_default_value(name: str) -> str:
    lowered = name.lower()
    if "array" in lowered or "list" in lowered:
        return "[]"
    if "object" in lowered or "obj" in lowered:
        return "{}"
    if "string" in lowered or "str" in lowered:
        return "''"
    if "number" in lowered or "num" in lowered:
        return "0"
    return "null"


def generate_pattern_fix(location: ErrorLocation) -> Optional[CandidateFix]:
    """Return a pattern-based candidate, or None when no pattern applies."""
    if location.file and os.path.splitext(location.file)[1].lower() not in _JS_EXTENSIONS:
        return None
    error_type = (location.error_type or "").lower()
    message = location.error_message or ""

    not_defined = _NOT_DEFINED_RE.search(message)
    if error_type == "referenceerror" or not_defined:
        name = not_defined.group(1) if not_defined else "variable"
        code = (
            "// Ensure variable is properly declared\n"
            f"const {name} = {suggest_default_value(name)};"
        )
        return CandidateFix(
            raw_text=code,
            blocks=[code],
            error_line=location.line,
            confidence=PATTERN_CONFIDENCE,
            source="pattern",
            explanation="Variable not defined - adding proper declaration",
        )

    read_property = _READ_PROPERTY_RE.search(message)
    if error_type == "typeerror" or read_property:
        prop = read_property.group(1) if read_property else "property"
        obj = (read_property.group(2) if read_property else None) or "object"
        code = (
            "// Add null/undefined check\n"
            f"if ({obj}) {{\n"
            f"  // Safe property access\n"
            f"  {obj}.{prop};\n"
            "} else {\n"
            "  console.warn('Object is null or undefined');\n"
            "}"
        )
        return CandidateFix(
            raw_text=code,
            blocks=[code],
            error_line=location.line,
            confidence=PATTERN_CONFIDENCE,
            source="pattern",
            explanation="Property access on null/undefined - adding safety check",
        )

    return None
