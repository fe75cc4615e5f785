"""
Run driver: executes every step of a registry in order.

The run stops at the first failure of a step that is not allowed to fail.
That abort is reported exactly once, here: the checklist is left as last
drawn, the cursor moves below it, and the error line and the full log are
printed in that order.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from rich.console import Console
from rich.rule import Rule
from rich.text import Text

from zabbix_setup.errors import RunAborted
from zabbix_setup.executor import StepExecutor, StepResult
from zabbix_setup.logsink import LogSink
from zabbix_setup.steps import Step, StepRegistry, StepStatus
from zabbix_setup.theme import NordColors, print_error

logger = logging.getLogger("zabbix_setup")

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_PARTIAL = 2


@dataclass
class RunReport:
    """Summary of a finished or aborted run."""

    results: List[StepResult] = field(default_factory=list)
    aborted_step: Optional[Step] = None
    exit_code: int = EXIT_OK

    @property
    def aborted(self) -> bool:
        return self.aborted_step is not None

    @property
    def allowed_failures(self) -> List[StepResult]:
        return [r for r in self.results if r.status is StepStatus.FAILED]


class Run:
    """
    One execution session over a fixed step list.

    Args:
        registry: Steps to execute, all pending
        sink: Log receiving markers and action output
        console: Where the abort report is printed
        treat_allowed_failure_as_process_failure: Exit with EXIT_PARTIAL when
            an allowed step failed instead of EXIT_OK
    """

    def __init__(
        self,
        registry: StepRegistry,
        sink: LogSink,
        console: Console,
        treat_allowed_failure_as_process_failure: bool = False,
    ) -> None:
        self.registry = registry
        self.sink = sink
        self.console = console
        self.treat_allowed_failure_as_process_failure = (
            treat_allowed_failure_as_process_failure
        )
        self.executor = StepExecutor(registry, sink)

    def execute(self) -> RunReport:
        report = RunReport()
        self.sink.note(f"Run started: {len(self.registry)} steps")
        logger.info(f"Run started with {len(self.registry)} steps, log: {self.sink.path}")
        self.registry.render()

        try:
            for step in self.registry:
                report.results.append(self.executor.execute(step))
        except RunAborted as aborted:
            report.aborted_step = aborted.step
            report.exit_code = EXIT_ABORTED
            self.sink.note(f"Run aborted: {aborted.step.label} failed")
            logger.info(f"Run aborted at step {aborted.step.label}")
            self.report_abort(aborted)
            return report

        self._park_cursor()
        if report.allowed_failures and self.treat_allowed_failure_as_process_failure:
            report.exit_code = EXIT_PARTIAL
        self.sink.note(f"Run finished: exit code {report.exit_code}")
        logger.info(
            f"Run finished, {len(report.allowed_failures)} allowed failure(s), "
            f"exit code {report.exit_code}"
        )
        return report

    def report_abort(self, aborted: RunAborted) -> None:
        """Print the failed step and the full log below the checklist."""
        self._park_cursor()
        self.console.print()
        print_error(
            f"Error: {aborted.step.label} failed. Please check the log file "
            f"({aborted.log_path}) for details.",
            self.console,
        )
        self.console.print(
            Rule("Full installation log for review", style=NordColors.FROST_3)
        )
        self.console.print(Text(self.sink.read_text()), soft_wrap=True)

    def _park_cursor(self) -> None:
        if self.registry.view is not None:
            self.registry.view.park_cursor()
