"""Zabbix server installer driven by a live step checklist."""

__version__ = "1.0.0"

from zabbix_setup.actions import Action, ActionResult, CallableAction, ShellAction
from zabbix_setup.errors import (
    LogSinkError,
    PreconditionError,
    ResourceError,
    RunAborted,
    SetupError,
    TerminalUnavailableError,
)
from zabbix_setup.executor import StepExecutor, StepResult
from zabbix_setup.logsink import LogSink
from zabbix_setup.runner import EXIT_ABORTED, EXIT_OK, EXIT_PARTIAL, Run, RunReport
from zabbix_setup.steps import Step, StepRegistry, StepStatus

__all__ = [
    "Action",
    "ActionResult",
    "CallableAction",
    "EXIT_ABORTED",
    "EXIT_OK",
    "EXIT_PARTIAL",
    "LogSink",
    "LogSinkError",
    "PreconditionError",
    "ResourceError",
    "Run",
    "RunAborted",
    "RunReport",
    "SetupError",
    "ShellAction",
    "Step",
    "StepExecutor",
    "StepRegistry",
    "StepResult",
    "StepStatus",
    "TerminalUnavailableError",
]
