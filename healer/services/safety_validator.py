"""
Safety Validator
================
Tiered structural checks on a proposed file before it is written.

Tiers (each a relaxation of the previous):
    strict   — brackets balanced, no corruption literals, markup tag parity,
               framework import present when framework-qualified calls appear
    lenient  — bracket / tag imbalance up to 2 tolerated, framework import
               downgraded to a warning
    fallback — only extreme imbalance (> 5 of any bracket kind) and
               corruption literals block

A failure at one tier re-attempts at the next before finally failing.
An internal scanner error never blocks: it passes with a warning.

File-kind dispatch (see utils/file_kinds.py):
    SCRIPT  — bracket scan with string / template / comment awareness
    MARKUP  — bracket scan that also skips tag text, plus tag parity
    GENERIC — corruption literals only
"""
import re
import logging
from dataclasses import dataclass, field

from healer.models.validation_result import ValidationResult
from healer.utils.file_kinds import FileKind, classify_file_kind, uses_hash_comments

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------
STRICT = "strict"
LENIENT = "lenient"
FALLBACK = "fallback"


@dataclass(frozen=True)
class Tier:
    name: str
    bracket_tolerance: int        # allowed |open - close| per bracket kind
    tag_tolerance: int            # allowed |open tags - close tags|
    check_tags: bool = True
    require_framework_import: bool = True
    fail_on_mismatch: bool = True  # wrong closer for the innermost opener


TIERS: tuple[Tier, ...] = (
    Tier(STRICT, bracket_tolerance=0, tag_tolerance=0),
    Tier(LENIENT, bracket_tolerance=2, tag_tolerance=2, require_framework_import=False,
         fail_on_mismatch=False),
    Tier(FALLBACK, bracket_tolerance=5, tag_tolerance=0, check_tags=False,
         require_framework_import=False, fail_on_mismatch=False),
)

CORRUPTION_LITERALS = ("undefinedundefined", "nullnull")

# Patterns never allowed in generated fixes
DANGEROUS_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\beval\s*\("),
    re.compile(r"\bFunction\s*\("),
    re.compile(r"innerHTML\s*="),
    re.compile(r"document\.write"),
    re.compile(r"process\.exit"),
)

_PAIRS = {")": "(", "]": "[", "}": "{"}
_OPENERS = set(_PAIRS.values())


def find_dangerous_patterns(code: str) -> list[str]:
    """Return the source of every dangerous pattern found in `code`."""
    return [p.pattern for p in DANGEROUS_PATTERNS if p.search(code or "")]


# ---------------------------------------------------------------------------
# Bracket Scanner
# ---------------------------------------------------------------------------
@dataclass
class BracketReport:
    """Result of one scan: per-kind counts and the first mismatch seen."""
    opened: dict = field(default_factory=lambda: {"(": 0, "[": 0, "{": 0})
    closed: dict = field(default_factory=lambda: {"(": 0, "[": 0, "{": 0})
    mismatches: list = field(default_factory=list)
    unclosed: list = field(default_factory=list)

    def imbalance(self) -> dict:
        return {k: self.opened[k] - self.closed[k] for k in self.opened}


_TAG_START_RE = re.compile(r"</?[A-Za-z]")
# A '<' right after an identifier or closer is a comparison or generic, not a tag
_TAG_BLOCKER_RE = re.compile(r"[\w)\]]")


def scan_brackets(content: str, markup: bool = False, hash_comments: bool = False) -> BracketReport:
    """
    Walk `content` with an explicit stack, ignoring brackets inside string
    literals, template literals, comments and (for markup) tag text.

    Template literals are tracked with their own stack so `${ ... }`
    expressions are scanned as code.
    """
    report = BracketReport()
    stack: list[tuple[str, int]] = []
    template_depths: list[int] = []   # stack depth at each `${` inside a template
    i, n, line = 0, len(content), 1

    def close(ch: str) -> None:
        expected = _PAIRS[ch]
        report.closed[expected] += 1
        if stack and stack[-1][0] == expected:
            stack.pop()
        elif stack:
            report.mismatches.append(f"line {line}: '{ch}' closes '{stack[-1][0]}' opened on line {stack[-1][1]}")
            # Resync on the nearest matching opener
            for depth in range(len(stack) - 1, -1, -1):
                if stack[depth][0] == expected:
                    del stack[depth:]
                    break
        else:
            report.mismatches.append(f"line {line}: unmatched '{ch}'")

    def skip_template(start: int) -> int:
        """Consume a template literal from after the opening backtick."""
        nonlocal line
        j = start
        while j < n:
            c = content[j]
            if c == "\n":
                line += 1
            if c == "\\":
                j += 2
                continue
            if c == "`":
                return j + 1
            if c == "$" and j + 1 < n and content[j + 1] == "{":
                template_depths.append(len(stack))
                stack.append(("{", line))
                report.opened["{"] += 1
                return j + 2
            j += 1
        return n

    while i < n:
        ch = content[i]
        nxt = content[i + 1] if i + 1 < n else ""
        prev = content[i - 1] if i > 0 else ""

        if ch == "\n":
            line += 1
            i += 1
        elif (ch == "/" and nxt == "/") or (hash_comments and ch == "#"):
            end = content.find("\n", i)
            i = n if end == -1 else end
        elif ch == "/" and nxt == "*":
            end = content.find("*/", i + 2)
            stop = n if end == -1 else end + 2
            line += content.count("\n", i, stop)
            i = stop
        elif content.startswith('"""', i) or content.startswith("'''", i):
            end = content.find(content[i:i + 3], i + 3)
            stop = n if end == -1 else end + 3
            line += content.count("\n", i, stop)
            i = stop
        elif ch in ("'", '"'):
            j = i + 1
            while j < n and content[j] != ch and content[j] != "\n":
                j += 2 if content[j] == "\\" else 1
            i = j + 1
        elif ch == "`":
            i = skip_template(i + 1)
        elif markup and ch == "<" and _TAG_START_RE.match(content, i) and not _TAG_BLOCKER_RE.match(prev):
            # Simplified tag heuristic: skip to the closing '>' unless the tag
            # embeds an expression, which is scanned as code.
            j = i + 1
            while j < n and content[j] not in ">{\n":
                j += 1
            i = j + 1 if j < n and content[j] == ">" else j
        elif ch in _OPENERS:
            stack.append((ch, line))
            report.opened[ch] += 1
            i += 1
        elif ch in _PAIRS:
            if ch == "}" and template_depths and template_depths[-1] == len(stack) - 1:
                template_depths.pop()
                close(ch)
                i = skip_template(i + 1)
                continue
            close(ch)
            i += 1
        else:
            i += 1

    report.unclosed = [f"'{c}' opened on line {ln}" for c, ln in stack]
    return report


# ---------------------------------------------------------------------------
# Markup Checks
# ---------------------------------------------------------------------------
_OPEN_TAG_RE = re.compile(r"<([A-Za-z][\w.\-]*)(?:\s[^<>]*?)?(?<!/)>")
_CLOSE_TAG_RE = re.compile(r"</([A-Za-z][\w.\-]*)\s*>")
_VOID_TAGS = {"br", "hr", "img", "input", "meta", "link", "area", "base", "col", "source", "wbr"}
_FRAMEWORK_CALL_RE = re.compile(r"\bReact\.\w+")
_FRAMEWORK_IMPORT_RE = re.compile(r"import\s+(?:\*\s+as\s+)?React\b|from\s+['\"]react['\"]|require\(\s*['\"]react['\"]\s*\)")


def count_tags(content: str) -> tuple[int, int]:
    """(open tags, close tags), excluding self-closing and void tags."""
    opens = sum(1 for m in _OPEN_TAG_RE.finditer(content) if m.group(1).lower() not in _VOID_TAGS)
    closes = len(_CLOSE_TAG_RE.findall(content))
    return opens, closes


def missing_framework_import(content: str) -> bool:
    return bool(_FRAMEWORK_CALL_RE.search(content)) and not _FRAMEWORK_IMPORT_RE.search(content)


# ---------------------------------------------------------------------------
# Safety Validator
# ---------------------------------------------------------------------------
class SafetyValidator:
    """
    Escalating structural validation.

    Parameters
    ----------
    tiers : tuple[Tier, ...]
        Ordered tiers, strictest first.
    """

    def __init__(self, tiers: tuple[Tier, ...] = TIERS) -> None:
        self.tiers = tiers

    def validate(self, content: str, file_path: str) -> ValidationResult:
        """
        Validate full proposed file content, escalating through the tiers.

        Returns
        -------
        ValidationResult
            Passed at the first tier with no issues; otherwise failed with
            the issues found at the last tier.
        """
        try:
            kind = classify_file_kind(file_path)
            report = None
            if kind is not FileKind.GENERIC:
                report = scan_brackets(
                    content,
                    markup=kind is FileKind.MARKUP,
                    hash_comments=uses_hash_comments(file_path),
                )

            issues: list[str] = []
            warnings: list[str] = []
            for tier in self.tiers:
                issues, warnings = self._check_tier(tier, content, kind, report)
                if not issues:
                    if tier is not self.tiers[0]:
                        logger.info("Validation of %s passed at %s tier", file_path, tier.name)
                    return ValidationResult(passed=True, tier=tier.name, warnings=warnings)
                logger.info("Validation of %s failed at %s tier: %s", file_path, tier.name, "; ".join(issues))

            return ValidationResult(passed=False, tier=self.tiers[-1].name, issues=issues, warnings=warnings)
        except Exception as e:
            logger.warning("Validator error for %s, passing with warning: %s", file_path, e)
            return ValidationResult(passed=True, tier=self.tiers[0].name, warnings=[f"validator error: {e}"])

    @staticmethod
    def _check_tier(tier: Tier, content: str, kind: FileKind, report) -> tuple[list[str], list[str]]:
        issues: list[str] = []
        warnings: list[str] = []

        for literal in CORRUPTION_LITERALS:
            if literal in content:
                issues.append(f"corruption marker '{literal}' found")

        if report is not None:
            for opener, delta in report.imbalance().items():
                if abs(delta) > tier.bracket_tolerance:
                    issues.append(f"unbalanced '{opener}': {report.opened[opener]} open, {report.closed[opener]} close")
                elif delta:
                    warnings.append(f"'{opener}' imbalance of {delta} tolerated at {tier.name} tier")
            if tier.fail_on_mismatch:
                issues.extend(report.mismatches[:5])

        if kind is FileKind.MARKUP:
            if tier.check_tags:
                opens, closes = count_tags(content)
                if abs(opens - closes) > tier.tag_tolerance:
                    issues.append(f"tag mismatch: {opens} open, {closes} close")
            if missing_framework_import(content):
                message = "framework-qualified calls without framework import"
                (issues if tier.require_framework_import else warnings).append(message)

        return issues, warnings
