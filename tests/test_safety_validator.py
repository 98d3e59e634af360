"""
Safety Validator Tests
======================
Covers:
    - Bracket scanning that ignores strings, templates and comments
    - Tier escalation: strict → lenient → fallback
    - Markup tag parity and framework import checks
    - Corruption literals and dangerous patterns
    - Validator errors never block
"""
import pytest

from healer.services import safety_validator
from healer.services.safety_validator import (
    FALLBACK,
    LENIENT,
    STRICT,
    SafetyValidator,
    count_tags,
    find_dangerous_patterns,
    scan_brackets,
)


@pytest.fixture
def validator():
    return SafetyValidator()


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------
class TestScanBrackets:

    def test_balanced_code(self):
        report = scan_brackets("function a() {\n  return [1, 2];\n}\n")
        assert report.imbalance() == {"(": 0, "[": 0, "{": 0}
        assert report.mismatches == []

    def test_strings_comments_and_templates_ignored(self):
        content = (
            'const s = "((";  // }}\n'
            "/* [[ */\n"
            "const t = `x ${ {a: 1}.a } )`;\n"
        )
        report = scan_brackets(content)
        assert report.imbalance() == {"(": 0, "[": 0, "{": 0}
        assert report.unclosed == []

    def test_hash_comments_and_docstrings(self):
        content = 'def f():\n    """doc ( """\n    # unbalanced ( in comment\n    return [1]\n'
        report = scan_brackets(content, hash_comments=True)
        assert report.imbalance() == {"(": 0, "[": 0, "{": 0}

    def test_mismatch_reported_with_line(self):
        report = scan_brackets("a = 1;\nb = (1, 2];")
        assert report.mismatches
        assert report.mismatches[0].startswith("line 2")
        assert report.unclosed == ["'(' opened on line 2"]

    def test_markup_tags_are_skipped(self):
        content = "<div>{a > b ? (<span>x</span>) : null}</div>"
        report = scan_brackets(content, markup=True)
        assert report.imbalance() == {"(": 0, "[": 0, "{": 0}

    def test_comparison_is_not_a_tag(self):
        report = scan_brackets("if (count<limit) { run(); }", markup=True)
        assert report.imbalance() == {"(": 0, "[": 0, "{": 0}


class TestCountTags:

    def test_void_and_self_closing_ignored(self):
        assert count_tags("<div><br><img src='x' /><Foo /></div>") == (1, 1)


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------
class TestTiers:

    def test_balanced_passes_strict(self, validator):
        result = validator.validate("function a() {\n  return [1, 2];\n}\n", "a.js")
        assert result.passed
        assert result.tier == STRICT
        assert result.issues == []

    def test_small_imbalance_passes_lenient(self, validator):
        content = "function a() {\n  if (x) {\n    run();\n}\n"
        result = validator.validate(content, "a.js")
        assert result.passed
        assert result.tier == LENIENT
        assert result.warnings

    def test_mismatch_passes_lenient(self, validator):
        result = validator.validate("a = (1, 2];", "a.js")
        assert result.passed
        assert result.tier == LENIENT

    def test_moderate_imbalance_passes_fallback(self, validator):
        result = validator.validate("{{{{", "a.ts")
        assert result.passed
        assert result.tier == FALLBACK

    def test_extreme_imbalance_fails(self, validator):
        result = validator.validate("{" * 8, "a.js")
        assert not result.passed
        assert result.tier == FALLBACK
        assert any("unbalanced '{'" in issue for issue in result.issues)

    def test_corruption_literal_fails_every_tier(self, validator):
        result = validator.validate("const a = undefinedundefined;", "a.js")
        assert not result.passed
        assert "corruption marker 'undefinedundefined' found" in result.issues

    def test_generic_file_skips_bracket_checks(self, validator):
        result = validator.validate("((((((((", "notes.txt")
        assert result.passed
        assert result.tier == STRICT


class TestMarkup:

    def test_balanced_jsx_passes_strict(self, validator):
        result = validator.validate("<div>{a > b ? (<span>x</span>) : null}</div>", "A.jsx")
        assert result.passed
        assert result.tier == STRICT

    def test_tag_mismatch_tolerated_at_lenient(self, validator):
        result = validator.validate("<div><span></div>", "A.jsx")
        assert result.passed
        assert result.tier == LENIENT

    def test_missing_framework_import_is_warning_after_strict(self, validator):
        result = validator.validate("const el = React.createElement('div');", "A.jsx")
        assert result.passed
        assert result.tier == LENIENT
        assert any("framework import" in w for w in result.warnings)

    def test_framework_import_present(self, validator):
        content = "import React from 'react';\nconst el = React.createElement('div');"
        result = validator.validate(content, "A.jsx")
        assert result.tier == STRICT


# ---------------------------------------------------------------------------
# Safety nets
# ---------------------------------------------------------------------------
class TestSafetyNets:

    def test_validator_error_passes_with_warning(self, validator, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("scanner exploded")

        monkeypatch.setattr(safety_validator, "scan_brackets", boom)
        result = validator.validate("const a = 1;", "a.js")
        assert result.passed
        assert result.warnings == ["validator error: scanner exploded"]

    @pytest.mark.parametrize("code", [
        "eval(userInput)",
        "new Function('return 1')",
        "el.innerHTML = html",
        "document.write('x')",
        "process.exit(1)",
    ])
    def test_dangerous_patterns(self, code):
        assert find_dangerous_patterns(code)

    def test_safe_code_has_no_dangerous_patterns(self):
        assert find_dangerous_patterns("const evaluate = (x) => x + 1;") == []
