"""Tests for the Runner.

Verifies:
1. Run-all keeps registration order and carries on after failures.
2. Unknown names are rejected before anything runs.
3. An interrupt, while running or at a prompt, stops the run and keeps the
   partial result.
4. The interactive loop: numbers, names, toggles, invalid input, quit.
5. The report is appended to the run log and records the mode of each result.
"""

from unittest.mock import MagicMock

import pytest

from power_cleaner.actions.registry import ActionRegistry
from power_cleaner.connector.local import CommandResult
from power_cleaner.engine.gate import ExecutionGate
from power_cleaner.engine.runner import Runner
from power_cleaner.exceptions import ActionNotFound
from power_cleaner.model.action import Action, ExecutionMode, Outcome
from power_cleaner.model.command import cmd
from power_cleaner.runlog import configure_logging


def _ok():
    return CommandResult(command="x", stdout="", stderr="", exit_code=0)


def _fail():
    return CommandResult(command="x", stdout="", stderr="", exit_code=1)


@pytest.fixture
def registry(make_action):
    return ActionRegistry(
        [
            make_action("first", commands=[cmd("true")]),
            make_action("second", commands=[cmd("false")]),
            make_action("third", commands=[cmd("echo", "3")]),
        ]
    )


@pytest.fixture
def runner(registry, mock_connector, make_env, run_config):
    gate = ExecutionGate(mock_connector, make_env(), run_config)
    return Runner(registry, gate, run_config)


def _scripted(*answers):
    remaining = list(answers)

    def prompt(menu):
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return prompt


def test_run_all_in_order_and_continues_after_failure(runner, mock_connector):
    mock_connector.run.side_effect = [_ok(), _fail(), _ok()]

    report = runner.run_all()

    assert [r.action.name for r in report.results] == ["first", "second", "third"]
    assert [r.outcome for r in report.results] == [Outcome.SUCCEEDED, Outcome.FAILED, Outcome.SUCCEEDED]
    assert report.succeeded == 2
    assert report.failed == 1
    assert report.interrupted is False


def test_run_all_dry_run_runs_nothing(runner, mock_connector):
    report = runner.run_all(mode=ExecutionMode.DRY_RUN)

    assert report.mode is ExecutionMode.DRY_RUN
    assert all(r.outcome is Outcome.SUCCEEDED for r in report.results)
    mock_connector.run.assert_not_called()


def test_run_one(runner):
    result = runner.run_one("third")
    assert result.action.name == "third"
    assert result.outcome is Outcome.SUCCEEDED


def test_run_one_unknown(runner):
    with pytest.raises(ActionNotFound):
        runner.run_one("nope")


def test_run_selected_rejects_unknown_before_running(runner, mock_connector):
    with pytest.raises(ActionNotFound):
        runner.run_selected(["first", "nope"])
    mock_connector.run.assert_not_called()


def test_run_selected_keeps_given_order(runner):
    report = runner.run_selected(["third", "first"])
    assert [r.action.name for r in report.results] == ["third", "first"]


def test_interrupt_stops_run(runner, mock_connector):
    """Verify the interrupted action is recorded and later actions never start."""
    mock_connector.run.side_effect = [_ok(), KeyboardInterrupt]

    report = runner.run_all()

    assert report.interrupted is True
    assert [r.action.name for r in report.results] == ["first", "second"]
    assert report.results[-1].reason == "interrupted"
    assert mock_connector.run.call_count == 2


def test_failure_in_builder_does_not_stop_run(mock_connector, make_env, run_config, make_action):
    def broken(ctx):
        raise RuntimeError("boom")

    registry = ActionRegistry([Action(name="broken", description="broken", build=broken), make_action("after")])
    runner = Runner(registry, ExecutionGate(mock_connector, make_env(), run_config), run_config)

    report = runner.run_all()

    assert [r.outcome for r in report.results] == [Outcome.FAILED, Outcome.SUCCEEDED]


def test_freed_bytes_from_tracker(registry, mock_connector, make_env, run_config):
    tracker = MagicMock()
    tracker.freed.return_value = -200
    runner = Runner(registry, ExecutionGate(mock_connector, make_env(), run_config), run_config, tracker=tracker)

    report = runner.run_all()

    tracker.start.assert_called_once()
    assert report.freed_bytes == -200


def test_report_is_logged(runner, run_config):
    configure_logging(run_config.log_path)

    runner.run_all()

    text = run_config.log_path.read_text(encoding="utf-8")
    assert "Run finished: 3 succeeded, 0 failed, 0 skipped" in text
    assert "REPORT {" in text


def test_menu_lists_actions_and_toggles(runner):
    menu = runner.menu_text(dry_run=True, verify=False)

    assert "1) first action [first]" in menu
    assert "Toggle dry-run (now: True)" in menu
    assert "Toggle verify (now: False)" in menu


def test_interactive_by_number_and_name(runner, mock_connector):
    report = runner.run_interactive(_scripted("1", "third", "q"))

    assert [r.action.name for r in report.results] == ["first", "third"]
    assert mock_connector.run.call_count == 2


def test_interactive_dry_run_toggle(runner, mock_connector):
    notify = MagicMock()
    runner.notify = notify

    report = runner.run_interactive(_scripted("d", "1", "quit"))

    assert report.mode is ExecutionMode.DRY_RUN
    assert report.results[0].outcome is Outcome.SUCCEEDED
    mock_connector.run.assert_not_called()
    notify.assert_any_call("Dry-run: True")


def test_interactive_toggle_twice_restores_normal(runner, mock_connector):
    report = runner.run_interactive(_scripted("d", "d", "1", "q"))

    assert report.mode is ExecutionMode.NORMAL
    assert mock_connector.run.call_count == 1


def test_interactive_verify_toggle(runner, mock_connector):
    report = runner.run_interactive(_scripted("v", "a", "q"))

    assert report.mode is ExecutionMode.VERIFY
    assert len(report.results) == 3
    mock_connector.run.assert_not_called()


def test_interactive_invalid_choice(runner):
    notify = MagicMock()
    runner.notify = notify

    report = runner.run_interactive(_scripted("99", "bogus", "0"))

    assert report.results == ()
    notify.assert_any_call("Invalid choice: 99")
    notify.assert_any_call("Invalid choice: bogus")


def test_interactive_eof_quits(runner):
    report = runner.run_interactive(_scripted())
    assert report.results == ()
    assert report.interrupted is False


def test_interactive_interrupt(runner, mock_connector):
    mock_connector.run.side_effect = KeyboardInterrupt

    report = runner.run_interactive(_scripted("2", "q"))

    assert report.interrupted is True
    assert report.results[0].reason == "interrupted"


def test_interactive_respects_configured_mode(registry, mock_connector, make_env, run_config):
    config = run_config.with_mode(ExecutionMode.DRY_RUN)
    runner = Runner(registry, ExecutionGate(mock_connector, make_env(), config), config)

    report = runner.run_interactive(_scripted("a", "q"))

    assert report.mode is ExecutionMode.DRY_RUN
    mock_connector.run.assert_not_called()


def test_interrupt_at_confirmation_stops_run(mock_connector, make_env, run_config, make_action):
    """Verify Ctrl-C at a prompt records the prompted action and stops the run."""
    registry = ActionRegistry(
        [
            make_action("first", commands=[cmd("true")]),
            make_action("trash", interactive=True),
            make_action("last"),
        ]
    )
    confirm = MagicMock(side_effect=KeyboardInterrupt)
    gate = ExecutionGate(mock_connector, make_env(), run_config, confirm=confirm)

    report = Runner(registry, gate, run_config).run_all()

    assert report.interrupted is True
    assert [(r.action.name, r.outcome, r.reason) for r in report.results] == [
        ("first", Outcome.SUCCEEDED, None),
        ("trash", Outcome.FAILED, "interrupted"),
    ]
    assert mock_connector.run.call_count == 1


def test_interactive_session_records_mode_per_result(runner, mock_connector):
    report = runner.run_interactive(_scripted("1", "d", "3", "q"))

    assert report.mode is ExecutionMode.DRY_RUN
    assert [r.mode for r in report.results] == [ExecutionMode.NORMAL, ExecutionMode.DRY_RUN]
    assert report.mixed_modes is True
    assert report.to_dict()["modes"] == ["normal", "dry-run"]
    assert mock_connector.run.call_count == 1


def test_single_mode_run_is_not_mixed(runner):
    report = runner.run_all(mode=ExecutionMode.VERIFY)

    assert report.mixed_modes is False
    assert report.modes == (ExecutionMode.VERIFY,)
