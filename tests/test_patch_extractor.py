"""
Patch Extractor Tests
=====================
Block extraction from free-form model text and response heuristics.
"""
import pytest

from healer.llm.patch_extractor import (
    extract_code_blocks,
    extract_section,
    first_code_block,
    score_confidence,
)


class TestExtractCodeBlocks:

    def test_single_tagged_block(self):
        text = "Here is the fix:\n```javascript\nconst a = 1;\n```\nDone."
        assert extract_code_blocks(text) == ["const a = 1;"]

    def test_multiple_blocks_in_order(self):
        text = "```\nfirst()\n```\nprose\n```py\nsecond()\n```\n```ts\n  third()  \n```"
        assert extract_code_blocks(text) == ["first()", "second()", "third()"]

    def test_no_fence_returns_whole_trimmed_text(self):
        assert extract_code_blocks("  const x = compute();\n\n") == ["const x = compute();"]

    @pytest.mark.parametrize("text", ["", "   \n  "])
    def test_empty_input(self, text):
        assert extract_code_blocks(text) == []

    def test_empty_fenced_block(self):
        assert extract_code_blocks("```\n```") == [""]

    def test_first_code_block(self):
        assert first_code_block("```js\na()\n```\n```js\nb()\n```") == "a()"
        assert first_code_block("") == ""


class TestExtractSection:

    def test_between_markers(self):
        text = "## Root Cause Analysis\nfoo was never declared\n## Solution Approach\ndeclare it"
        assert extract_section(text, "Root Cause Analysis", "Solution Approach") == "foo was never declared"

    def test_to_end_when_no_end_marker(self):
        assert extract_section("## Solution Approach\ndeclare it", "Solution Approach") == "declare it"

    def test_missing_marker(self):
        assert extract_section("nothing here", "Root Cause") == ""


class TestScoreConfidence:

    def test_bare_short_answer(self):
        assert score_confidence("ok", "x") == 0.5

    def test_substantive_code(self):
        assert score_confidence("const value = 1;", "const value = 1;") == 0.7

    def test_structured_answer_is_capped(self):
        response = (
            "Root Cause: missing guard\n"
            "Safety Considerations: none\n"
            "Adds error handling with try / catch"
        )
        assert score_confidence(response, "try { run(); } catch (e) {}") == 0.95

    def test_python_try_except_counts(self):
        assert score_confidence("try:\n    x()\nexcept ValueError:\n    pass", "") == 0.6
