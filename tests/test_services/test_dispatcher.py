"""Tests for the fleet dispatcher."""

import asyncio
import logging
import random
import time
from unittest.mock import AsyncMock, patch

import pytest

from fleetsh.errors import RemoteCommandError
from fleetsh.models import CommandRequest, ExecutionOutcome, SessionConfig, Target, TransferRequest
from fleetsh.services.dispatcher import (
    command_action,
    dispatch,
    format_failure_report,
    transfer_action,
)


def _targets(count: int) -> list[Target]:
    return [
        Target(instance_id=f"i-{n}", ip=f"10.0.0.{n}", name=f"web-{n}")
        for n in range(1, count + 1)
    ]


class Collector:
    """Emitter that remembers what was emitted."""

    def __init__(self) -> None:
        self.outcomes: list[ExecutionOutcome] = []

    def __call__(self, outcome: ExecutionOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def targets(self) -> set[Target]:
        return {outcome.target for outcome in self.outcomes}


@pytest.mark.asyncio
async def test_dispatch_empty_target_set() -> None:
    """No targets returns an empty aggregate immediately."""
    action = AsyncMock()

    failures = await dispatch([], action, emit=Collector())

    assert failures == {}
    action.assert_not_called()


@pytest.mark.asyncio
async def test_dispatch_all_succeed() -> None:
    """Every target succeeding yields no failures and emits every output."""
    targets = _targets(4)
    collector = Collector()

    async def action(target: Target) -> str:
        return f"ok from {target.ip}\n"

    failures = await dispatch(targets, action, emit=collector)

    assert failures == {}
    assert collector.targets == set(targets)
    assert all(outcome.success for outcome in collector.outcomes)


@pytest.mark.asyncio
async def test_dispatch_one_failure_isolated() -> None:
    """One failing target is the only entry and others still emit output."""
    targets = _targets(5)
    bad = targets[2]
    collector = Collector()

    async def action(target: Target) -> str:
        await asyncio.sleep(0.01)
        if target == bad:
            raise RemoteCommandError("false", exit_status=1)
        return "ok\n"

    failures = await dispatch(targets, action, emit=collector)

    assert list(failures) == [bad]
    assert isinstance(failures[bad], RemoteCommandError)
    assert collector.targets == set(targets) - {bad}


@pytest.mark.asyncio
async def test_dispatch_unexpected_exception_is_contained() -> None:
    """Non-fleet exceptions are recorded per target, not raised."""
    targets = _targets(2)

    async def action(target: Target) -> str:
        if target is targets[0]:
            raise KeyError("surprise")
        return "ok\n"

    failures = await dispatch(targets, action, emit=Collector())

    assert set(failures) == {targets[0]}


@pytest.mark.asyncio
async def test_dispatch_emit_failure_recorded_for_target() -> None:
    """An emitter error (e.g. closed stdout) fails that target only."""
    targets = _targets(3)
    collector = Collector()

    def emit(outcome: ExecutionOutcome) -> None:
        if outcome.target == targets[0]:
            raise BrokenPipeError("stdout closed")
        collector(outcome)

    async def action(target: Target) -> str:
        return "ok\n"

    failures = await dispatch(targets, action, emit=emit)

    assert set(failures) == {targets[0]}
    assert isinstance(failures[targets[0]], BrokenPipeError)
    assert collector.targets == {targets[1], targets[2]}


@pytest.mark.asyncio
async def test_dispatch_emits_as_branches_finish() -> None:
    """Outputs are emitted when each branch finishes, not at the barrier."""
    fast, slow = _targets(2)
    emitted_at: dict[Target, float] = {}

    async def action(target: Target) -> str:
        await asyncio.sleep(0.3 if target == slow else 0.0)
        return "ok\n"

    def emit(outcome: ExecutionOutcome) -> None:
        emitted_at[outcome.target] = time.monotonic()

    start = time.monotonic()
    await dispatch([slow, fast], action, emit=emit)

    assert emitted_at[fast] - start < 0.2
    assert emitted_at[slow] - start >= 0.3


@pytest.mark.asyncio
async def test_dispatch_runs_targets_in_parallel() -> None:
    """Wall-clock time tracks the slowest target, not the sum."""
    targets = _targets(8)
    delays = {target: random.uniform(0.05, 0.25) for target in targets}

    async def action(target: Target) -> str:
        await asyncio.sleep(delays[target])
        return "ok\n"

    start = time.monotonic()
    failures = await dispatch(targets, action, emit=Collector())
    elapsed = time.monotonic() - start

    assert failures == {}
    assert elapsed < max(delays.values()) + 0.15
    assert elapsed < sum(delays.values())


@pytest.mark.asyncio
async def test_dispatch_runs_each_target_once() -> None:
    """Duplicate targets are executed exactly once."""
    target = _targets(1)[0]
    action = AsyncMock(return_value="ok\n")

    await dispatch([target, target], action, emit=Collector())

    action.assert_awaited_once_with(target)


@pytest.mark.asyncio
async def test_dispatch_rejects_non_callable_action() -> None:
    """A malformed action binding is a programming error."""
    with pytest.raises(TypeError, match="action must be callable"):
        await dispatch(_targets(1), "uptime", emit=Collector())  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_dispatch_default_emitter_writes_stdout(capsys: pytest.CaptureFixture[str]) -> None:
    """Without an emitter, outputs go to stdout."""

    async def action(target: Target) -> str:
        return f"hello from {target.ip}\n"

    await dispatch(_targets(1), action)

    assert capsys.readouterr().out == "hello from 10.0.0.1\n"


@pytest.mark.asyncio
async def test_command_action_binds_executor() -> None:
    """command_action runs the command with a header."""
    config = SessionConfig()
    target = _targets(1)[0]

    with patch("fleetsh.services.dispatcher.run_command", new_callable=AsyncMock) as mock_run:
        mock_run.return_value = "out\n"
        action = command_action(config, CommandRequest(command="uptime"))

        assert await action(target) == "out\n"

    mock_run.assert_awaited_once_with(config, target, "uptime", display_header=True, audit=None)


@pytest.mark.asyncio
async def test_transfer_action_binds_executor() -> None:
    """transfer_action runs the transfer executor for each target."""
    config = SessionConfig()
    request = TransferRequest(source="a.txt", destination="/tmp/a.txt")
    target = _targets(1)[0]

    with patch("fleetsh.services.dispatcher.transfer_file", new_callable=AsyncMock) as mock_transfer:
        mock_transfer.return_value = "copied\n"
        action = transfer_action(config, request)

        assert await action(target) == "copied\n"

    mock_transfer.assert_awaited_once_with(config, target, request, audit=None)


def test_format_failure_report() -> None:
    """Report lists failures ordered by IP and ends with finish."""
    first, second = _targets(2)
    failures = {
        second: RemoteCommandError("false", exit_status=1),
        first: RuntimeError("boom"),
    }

    report = format_failure_report(failures)

    assert report.splitlines() == [
        "Failed for web-1 (10.0.0.1): boom",
        "Failed for web-2 (10.0.0.2): failed to run command 'false': exit status 1",
        "finish",
    ]


def test_format_failure_report_empty() -> None:
    """No failures still prints finish."""
    assert format_failure_report({}) == "finish\n"


@pytest.mark.asyncio
async def test_dispatch_logs_completion_counts(caplog: pytest.LogCaptureFixture) -> None:
    """Completion log counts successes from the gathered outcomes."""
    targets = _targets(3)

    async def action(target: Target) -> str:
        if target == targets[1]:
            raise RemoteCommandError("false", exit_status=1)
        return "ok\n"

    with caplog.at_level(logging.INFO, logger="fleetsh.services.dispatcher"):
        await dispatch(targets, action, emit=Collector())

    assert "Dispatch complete: 2 succeeded, 1 failed" in caplog.text
