"""
Change Gate Tests
=================
Meaningful-change detection and the confidence threshold.
"""
import pytest

from healer.services.change_gate import ChangeGate, compute_diff, is_meaningful_change
from healer.utils.rejection_reasons import LOW_CONFIDENCE, NO_MEANINGFUL_CHANGE

ORIGINAL = "function a() {\n  return b;\n}"


class TestMeaningfulChange:

    @pytest.mark.parametrize("candidate", [
        ORIGINAL,
        "function a() {\n    return b;\n}",
        "function a(){\nreturn b;\n}\n\n",
        "function  a()  {\n\n  return  b;\n}",
    ])
    def test_whitespace_only_is_not_meaningful(self, candidate):
        assert not is_meaningful_change(ORIGINAL, candidate)

    def test_content_change_is_meaningful(self):
        assert is_meaningful_change(ORIGINAL, "function a() {\n  return b ?? null;\n}")

    def test_added_line_is_meaningful(self):
        assert is_meaningful_change(ORIGINAL, "function a() {\n  if (!b) return null;\n  return b;\n}")

    def test_removed_line_is_meaningful(self):
        assert is_meaningful_change(ORIGINAL, "function a() {\n}")


class TestChangeGate:

    def test_accepts_meaningful_confident_change(self):
        decision = ChangeGate(0.8).decide(ORIGINAL, "function a() {\n  return b || 0;\n}", 0.85, "a.js")
        assert decision.accepted
        assert decision.reason == ""
        assert "+  return b || 0;" in decision.diff

    def test_threshold_is_inclusive(self):
        decision = ChangeGate(0.6).decide(ORIGINAL, "x()", 0.6)
        assert decision.accepted

    def test_low_confidence(self):
        decision = ChangeGate(0.8).decide(ORIGINAL, "x()", 0.5)
        assert not decision.accepted
        assert decision.reason == LOW_CONFIDENCE

    def test_no_meaningful_change_checked_before_confidence(self):
        decision = ChangeGate(0.8).decide(ORIGINAL, ORIGINAL, 0.1)
        assert not decision.accepted
        assert decision.reason == NO_MEANINGFUL_CHANGE


def test_compute_diff_headers():
    diff = compute_diff("a\nb", "a\nc", "src/x.js")
    assert diff.splitlines()[:2] == ["--- a/src/x.js", "+++ b/src/x.js"]
    assert "-b" in diff.splitlines()
    assert "+c" in diff.splitlines()
