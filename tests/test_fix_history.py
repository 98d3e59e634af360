"""
Fix History Tests
=================
Recency-ordered eviction and pattern digests.
"""
from healer.models.error_location import ErrorLocation
from healer.services.fix_history import FixHistoryEntry, InMemoryFixHistory
from healer.utils.pattern_digest import compute_pattern_digest, extract_line_context


def _entry(code="const a = 1;"):
    return FixHistoryEntry(code=code, explanation="x", confidence=0.8)


class TestInMemoryFixHistory:

    def test_set_and_get(self):
        history = InMemoryFixHistory()
        history.set("k", _entry("fix()"))
        assert history.get("k").code == "fix()"
        assert history.get("missing") is None

    def test_evicts_least_recently_used(self):
        history = InMemoryFixHistory(max_entries=3)
        for key in ("a", "b", "c"):
            history.set(key, _entry())
        history.get("a")
        history.set("d", _entry())
        assert len(history) == 3
        assert history.get("b") is None
        assert history.keys() == ["c", "a", "d"]

    def test_set_refreshes_recency(self):
        history = InMemoryFixHistory(max_entries=2)
        history.set("a", _entry())
        history.set("b", _entry())
        history.set("a", _entry("newer()"))
        history.set("c", _entry())
        assert history.keys() == ["a", "c"]
        assert history.get("a").code == "newer()"

    def test_prune_to_size(self):
        history = InMemoryFixHistory()
        for i in range(10):
            history.set(str(i), _entry())
        history.prune_to_size(4)
        assert history.keys() == ["6", "7", "8", "9"]
        history.prune_to_size(0)
        assert len(history) == 0

    def test_empty_key_ignored(self):
        history = InMemoryFixHistory()
        history.set("", _entry())
        assert len(history) == 0


class TestPatternDigest:

    def test_stable_and_short(self):
        location = ErrorLocation(file="src/a.js", line=3, error_type="TypeError", error_message="x is null")
        first = compute_pattern_digest(location, "ctx")
        assert first == compute_pattern_digest(location, "ctx")
        assert len(first) == 16

    def test_message_punctuation_and_case_ignored(self):
        a = ErrorLocation(file="src/a.js", error_type="TypeError", error_message="X is NULL!")
        b = ErrorLocation(file="lib/b.js", error_type="TypeError", error_message="x is null")
        assert compute_pattern_digest(a) == compute_pattern_digest(b)

    def test_extension_matters(self):
        a = ErrorLocation(file="a.js", error_type="TypeError", error_message="m")
        b = ErrorLocation(file="a.py", error_type="TypeError", error_message="m")
        assert compute_pattern_digest(a) != compute_pattern_digest(b)

    def test_line_context(self, tmp_path):
        path = tmp_path / "a.js"
        path.write_text("L1\nL2\nL3\nL4\nL5\nL6\n", encoding="utf-8")
        assert extract_line_context(str(path), 4) == "l2\nl3\nl4\nl5\nl6"
        assert extract_line_context(str(tmp_path / "missing.js"), 4) == ""
        assert extract_line_context(str(path), None) == ""
