"""Execution of a single step with output capture and failure gating."""

import logging
import time
import traceback
from dataclasses import dataclass
from typing import Optional

from zabbix_setup.actions import ActionResult
from zabbix_setup.errors import PreconditionError, RunAborted
from zabbix_setup.logsink import LogSink
from zabbix_setup.steps import Step, StepRegistry, StepStatus

logger = logging.getLogger("zabbix_setup")


@dataclass(frozen=True)
class StepResult:
    """What happened when a step executed."""

    index: int
    label: str
    status: StepStatus
    allow_failure: bool
    returncode: Optional[int]
    seconds: float

    @property
    def ok(self) -> bool:
        return self.status is StepStatus.SUCCESS


class StepExecutor:
    """
    Runs one step at a time against a registry and a log sink.

    Action output goes to the log sink only, never to the terminal, so the
    checklist stays intact while commands run. Actions that can write into
    the sink directly do so while they run; buffered output is appended
    once the action returns.
    """

    def __init__(self, registry: StepRegistry, sink: LogSink) -> None:
        self.registry = registry
        self.sink = sink

    def execute(self, step: Step) -> StepResult:
        """
        Execute ``step`` and record its outcome.

        Returns:
            StepResult for a success, or for a failure the step allows

        Raises:
            PreconditionError: If the step is not pending or not in the registry
            RunAborted: If the step failed and may not fail
        """
        if step.status is not StepStatus.PENDING:
            raise PreconditionError(
                f"Step {step.label!r} is {step.status.value}, expected pending"
            )
        if step.index >= len(self.registry) or self.registry[step.index] is not step:
            raise PreconditionError(f"Step {step.label!r} is not part of this run")

        self.sink.marker(step.label, step.description)
        self.registry.set_status(step.index, StepStatus.RUNNING)
        logger.debug(f"Step {step.index + 1}/{len(self.registry)} started: {step.label}")

        start = time.monotonic()
        result = self._invoke(step)
        elapsed = time.monotonic() - start

        self.sink.append(result.output)
        self.sink.end_line()
        self.sink.result(step.label, result.ok, result.returncode)

        status = StepStatus.SUCCESS if result.ok else StepStatus.FAILED
        self.registry.set_status(step.index, status)
        logger.debug(
            f"Step {step.label} finished: {status.value} "
            f"(exit {result.returncode}) in {elapsed:.2f}s"
        )

        if not result.ok and not step.allow_failure:
            raise RunAborted(step, self.sink.path)

        return StepResult(
            index=step.index,
            label=step.label,
            status=status,
            allow_failure=step.allow_failure,
            returncode=result.returncode,
            seconds=elapsed,
        )

    def _invoke(self, step: Step) -> ActionResult:
        stream = self.sink.stream()
        try:
            return step.action.run(stream)
        except Exception as e:
            logger.debug(f"Action for {step.label} raised {e!r}")
            return ActionResult(
                ok=False, output=traceback.format_exc().encode("utf-8")
            )
