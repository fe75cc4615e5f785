"""
Actions: the opaque work a step performs.

An action reports whether it succeeded. Its output, stdout and stderr
combined, is either written straight into the stream it is given while it
runs or handed back as raw bytes. The step engine never interprets that
output beyond storing it in the run log.
"""

import io
import os
import subprocess
import traceback
from dataclasses import dataclass
from typing import BinaryIO, Callable, Dict, Optional, Protocol, TextIO, Union

SHELL = "/bin/bash"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one action invocation."""

    ok: bool
    output: bytes = b""
    returncode: Optional[int] = None


class Action(Protocol):
    description: str

    def run(self, stream: Optional[BinaryIO] = None) -> ActionResult: ...


# ----------------------------------------------------------------
# Shell Commands
# ----------------------------------------------------------------
class ShellAction:
    """
    Run a shell command line to completion.

    The command goes through bash so pipes and ``&&`` chains work as written.
    Standard input is closed, so a command waiting for a prompt fails instead
    of hanging on the terminal. There is no timeout.

    Given a ``stream``, the command writes into it directly, so its output is
    on disk while it runs and survives an interrupt; the result then carries
    no output of its own.
    """

    def __init__(
        self,
        command: str,
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[str] = None,
        shell: str = SHELL,
    ) -> None:
        self.command = command
        self.env = env
        self.cwd = cwd
        self.shell = shell

    @property
    def description(self) -> str:
        return self.command

    def __repr__(self) -> str:
        return f"ShellAction({self.command!r})"

    def run(self, stream: Optional[BinaryIO] = None) -> ActionResult:
        env = os.environ.copy()
        if self.env:
            env.update(self.env)
        try:
            result = subprocess.run(
                [self.shell, "-c", self.command],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE if stream is None else stream,
                stderr=subprocess.STDOUT,
                cwd=self.cwd,
                env=env,
                check=False,
            )
        except OSError as e:
            return ActionResult(
                ok=False, output=f"Error executing command: {e}\n".encode()
            )
        return ActionResult(
            ok=result.returncode == 0,
            output=result.stdout or b"",
            returncode=result.returncode,
        )


# ----------------------------------------------------------------
# Python Callables
# ----------------------------------------------------------------
class CallableAction:
    """
    Run a Python callable as a step.

    The callable receives a text stream for its output. Returning ``False``
    or raising an exception marks the action as failed; any other return
    value is success. Output is buffered and returned, never streamed.
    """

    def __init__(
        self, func: Callable[[TextIO], Union[bool, None]], description: str
    ) -> None:
        self.func = func
        self.description = description

    def __repr__(self) -> str:
        return f"CallableAction({self.description!r})"

    def run(self, stream: Optional[BinaryIO] = None) -> ActionResult:
        buffer = io.StringIO()
        try:
            outcome = self.func(buffer)
        except Exception:
            buffer.write(traceback.format_exc())
            return ActionResult(ok=False, output=buffer.getvalue().encode("utf-8"))
        return ActionResult(
            ok=outcome is not False, output=buffer.getvalue().encode("utf-8")
        )
