"""Fleet dispatcher: fan one action out to every target.

One task per target, no concurrency cap. Branches are isolated: a failure is
recorded for its target and never cancels other branches. The failure map is
the only state shared between branches.
"""

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable, Iterable
from functools import partial
from typing import TYPE_CHECKING

from fleetsh.models import ExecutionOutcome, Target
from fleetsh.services.executors import run_command
from fleetsh.services.transfer import transfer_file

if TYPE_CHECKING:
    from fleetsh.models import CommandRequest, SessionConfig, TransferRequest
    from fleetsh.services.audit import AuditLog

logger = logging.getLogger(__name__)

Action = Callable[[Target], Awaitable[str]]
Emitter = Callable[[ExecutionOutcome], None]


def write_output(outcome: ExecutionOutcome) -> None:
    """Default emitter: write a finished target's output to stdout."""
    sys.stdout.write(outcome.output)
    sys.stdout.flush()


def command_action(
    config: "SessionConfig",
    request: "CommandRequest",
    audit: "AuditLog | None" = None,
) -> Action:
    """Bind the command executor into a per-target action."""
    return partial(_run_command_on, config, request, audit)


async def _run_command_on(
    config: "SessionConfig",
    request: "CommandRequest",
    audit: "AuditLog | None",
    target: Target,
) -> str:
    return await run_command(config, target, request.command, display_header=True, audit=audit)


def transfer_action(
    config: "SessionConfig",
    request: "TransferRequest",
    audit: "AuditLog | None" = None,
) -> Action:
    """Bind the transfer executor into a per-target action."""
    return partial(_transfer_to, config, request, audit)


async def _transfer_to(
    config: "SessionConfig",
    request: "TransferRequest",
    audit: "AuditLog | None",
    target: Target,
) -> str:
    return await transfer_file(config, target, request, audit=audit)


async def dispatch(
    targets: Iterable[Target],
    action: Action,
    emit: Emitter | None = None,
) -> dict[Target, Exception]:
    """Run an action on every target concurrently.

    Args:
        targets: Targets to run on, each at most once
        action: Coroutine function taking a target and returning its output
        emit: Called with each successful outcome as soon as it finishes

    Returns:
        Failures keyed by target; empty when every target succeeded

    Raises:
        TypeError: If action is not callable
    """
    if not callable(action):
        raise TypeError(f"action must be callable, got {type(action).__name__}")

    emit = emit or write_output
    unique_targets = list(dict.fromkeys(targets))
    failures: dict[Target, Exception] = {}
    lock = asyncio.Lock()

    async def execute_single(target: Target) -> ExecutionOutcome:
        """Run the action on a single target."""
        try:
            outcome = ExecutionOutcome(target=target, output=await action(target))
            emit(outcome)
        except Exception as e:
            logger.info("Target %s (%s) failed: %s", target.display_name, target.ip, e)
            async with lock:
                failures[target] = e
            return ExecutionOutcome(target=target, error=e)
        return outcome

    if not unique_targets:
        return failures

    logger.info("Dispatching to %d target(s)", len(unique_targets))
    tasks = [execute_single(t) for t in unique_targets]
    outcomes = await asyncio.gather(*tasks)

    logger.info(
        "Dispatch complete: %d succeeded, %d failed",
        sum(outcome.success for outcome in outcomes),
        len(failures),
    )
    return failures


def format_failure_report(failures: dict[Target, Exception]) -> str:
    """Summarize failed targets after a dispatch.

    Returns:
        One line per failure ordered by IP, then ``finish``
    """
    lines = [
        f"Failed for {target.display_name} ({target.ip}): {error}"
        for target, error in sorted(failures.items(), key=lambda item: item[0].ip)
    ]
    lines.append("finish")
    return "\n".join(lines) + "\n"
