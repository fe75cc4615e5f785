"""Exception hierarchy for the Zabbix setup tool."""

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zabbix_setup.steps import Step


# ----------------------------------------------------------------
# Custom Exceptions
# ----------------------------------------------------------------
class SetupError(Exception):
    """Base exception for setup errors."""

    pass


class PreconditionError(SetupError):
    """Raised when the calling code breaks an internal invariant."""

    pass


class ResourceError(SetupError):
    """Raised when a resource the run cannot proceed without is unavailable."""

    pass


class LogSinkError(ResourceError):
    """Raised when the run log cannot be opened or written."""

    pass


class TerminalUnavailableError(ResourceError):
    """Raised when a live checklist is requested on a non-interactive output."""

    pass


class RunAborted(SetupError):
    """Raised when a step that may not fail has failed."""

    def __init__(self, step: "Step", log_path: Path) -> None:
        self.step = step
        self.log_path = log_path
        super().__init__(f"{step.label} failed")
