"""
Orchestrator Tests
==================
End-to-end handling of one event against a local repository.
The model is mocked; working copies live under tmp_path.
"""
import asyncio
import os
from unittest.mock import AsyncMock

import pytest

from healer.agents.fix_agent import FixAgent
from healer.agents.orchestrator import Orchestrator
from healer.core.config import STANDARD_MODE
from healer.llm.client import LLMError

SOURCE = "".join(f"const v{i} = {i};\n" for i in range(1, 51))

FENCED = (
    "## Root Cause Analysis\nobj was undefined\n"
    "## Solution Approach\nguard it\n"
    "## Implementation\n```js\nconst v42 = obj ? obj.x : null;\n```\n"
    "## Safety Considerations\nnone"
)


def _event(filename="src/foo.js", line=42, error_type="Error", value="boom"):
    return {
        "exception": {"values": [{
            "type": error_type,
            "value": value,
            "stacktrace": {"frames": [{"filename": filename, "lineno": line}]},
        }]}
    }


@pytest.fixture
def repo(tmp_path):
    root = tmp_path / "repo"
    (root / "src").mkdir(parents=True)
    (root / "src" / "foo.js").write_text(SOURCE, encoding="utf-8")
    return root


@pytest.fixture
def client():
    return AsyncMock()


@pytest.fixture
def orchestrator(tmp_path, client):
    agent = FixAgent(mode=STANDARD_MODE, client=client)
    return Orchestrator(fix_agent=agent, workspace_root=str(tmp_path / "ws"))


def _run(orchestrator, payload, repo):
    return asyncio.run(orchestrator.handle_event(payload, str(repo)))


class TestHandleEvent:

    def test_applies_fix_in_working_copy_only(self, orchestrator, client, repo):
        client.complete.return_value = FENCED
        outcome = _run(orchestrator, _event(), repo)

        assert outcome.state == "applied"
        assert outcome.apply_result.success
        assert (outcome.apply_result.location.start, outcome.apply_result.location.end) == (40, 44)
        patched = open(os.path.join(outcome.working_copy, "src", "foo.js"), encoding="utf-8").read()
        assert "obj ? obj.x : null" in patched
        # Source repository is never touched
        assert (repo / "src" / "foo.js").read_text(encoding="utf-8") == SOURCE
        assert outcome.summary.startswith(":white_check_mark:")

    def test_unresolved_payload(self, orchestrator, client, repo):
        outcome = _run(orchestrator, {"message": "something broke"}, repo)
        assert outcome.state == "location_failed"
        assert "Manual intervention is required" in outcome.summary
        assert outcome.working_copy == ""
        client.complete.assert_not_called()

    def test_missing_target_file(self, orchestrator, client, repo):
        outcome = _run(orchestrator, _event(filename="src/missing.js"), repo)
        assert outcome.state == "location_failed"
        assert "file not found" in outcome.summary
        assert not os.path.exists(outcome.working_copy)
        client.complete.assert_not_called()

    def test_alternative_target_resolved(self, orchestrator, client, repo):
        client.complete.return_value = FENCED
        outcome = _run(orchestrator, _event(filename="lib/foo.js"), repo)
        assert outcome.location.file == "src/foo.js"
        assert outcome.state == "applied"

    def test_model_failure(self, orchestrator, client, repo):
        client.complete.side_effect = LLMError("openai returned HTTP 500")
        outcome = _run(orchestrator, _event(), repo)
        assert outcome.state == "analysis_failed"
        assert "openai returned HTTP 500" in outcome.summary
        assert not os.path.exists(outcome.working_copy)

    def test_low_confidence_rejected(self, orchestrator, client, repo):
        client.complete.return_value = "const v42 = compute(42);"
        outcome = _run(orchestrator, _event(), repo)
        assert outcome.state == "rejected"
        assert outcome.apply_result.reason == "low confidence"
        assert len(outcome.attempts) == 1

    def test_keep_working_copy_on_failure(self, orchestrator, client, repo):
        client.complete.return_value = "const v42 = compute(42);"
        outcome = asyncio.run(orchestrator.handle_event(_event(), str(repo), discard_on_failure=False))
        assert outcome.state == "rejected"
        assert os.path.isdir(outcome.working_copy)

    def test_workspace_failure(self, orchestrator, tmp_path):
        outcome = asyncio.run(orchestrator.handle_event(_event(), str(tmp_path / "does-not-exist")))
        assert outcome.state == "workspace_failed"
        assert outcome.location.file == "src/foo.js"
