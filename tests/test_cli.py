"""
Command-line entry point tests.
"""

import pytest

from maildrain import cli
from maildrain.engine import DuplicateHeadAnomaly
from maildrain.models import DrainOutcome, TerminatedBy


@pytest.fixture
def calls(monkeypatch):
    """Replace the invocation with a recorder returning a preset result."""
    recorded = {"result": TerminatedBy.EMPTY, "kwargs": None}

    async def fake_run_invocation(settings, **kwargs):
        recorded["kwargs"] = kwargs
        result = recorded["result"]
        if isinstance(result, Exception):
            raise result
        return DrainOutcome(resource_id="999999", items_processed=3, terminated_by=result)

    monkeypatch.setattr(cli, "run_invocation", fake_run_invocation)
    return recorded


def test_drain_prints_outcome(calls, capsys):
    assert cli.main(["drain", "--budget-seconds", "90"]) == 0

    assert calls["kwargs"] == {"budget_seconds": 90.0, "single_item_debug": None}
    assert '"items_processed":3' in capsys.readouterr().out


def test_debug_single_flag(calls):
    calls["result"] = TerminatedBy.SINGLE_ITEM_DEBUG

    assert cli.main(["drain", "--debug-single"]) == 0
    assert calls["kwargs"]["single_item_debug"] is True


def test_fatal_error_exit_code(calls):
    calls["result"] = DuplicateHeadAnomaly(("2019-01-17 09:13:25", "A", "00:00:05"))

    assert cli.main(["drain"]) == 1


def test_configuration_error_exit_code(calls, capsys):
    calls["result"] = ValueError("voipms_mailbox is not configured")

    assert cli.main(["drain"]) == 2
    assert "voipms_mailbox" in capsys.readouterr().err


def test_command_required():
    with pytest.raises(SystemExit):
        cli.main([])
