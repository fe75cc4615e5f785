"""
Terminal surface used by the live checklist.

The checklist only needs four primitives: write a styled line, save and
restore the cursor, move to an absolute row/column, and clear the current
line. ``RichTerminal`` provides them on top of a rich ``Console``.
"""

from typing import Protocol, Union

from rich.console import Console
from rich.control import Control
from rich.segment import ControlType
from rich.text import Text

# DEC save/restore cursor, not covered by rich.control
SAVE_CURSOR = "\x1b7"
RESTORE_CURSOR = "\x1b8"


class TerminalSurface(Protocol):
    is_interactive: bool

    def write_line(self, text: Union[str, Text]) -> None: ...

    def save_cursor(self) -> None: ...

    def restore_cursor(self) -> None: ...

    def move_to(self, row: int, column: int = 0) -> None: ...

    def clear_line(self) -> None: ...


class RichTerminal:
    """TerminalSurface backed by a rich Console."""

    def __init__(self, console: Console) -> None:
        self.console = console

    @property
    def is_interactive(self) -> bool:
        return self.console.is_terminal and not self.console.is_dumb_terminal

    def write_line(self, text: Union[str, Text]) -> None:
        """Write one line of styled text at the cursor, without a newline."""
        if isinstance(text, str):
            text = Text(text)
        self.console.print(text, end="", no_wrap=True, overflow="ellipsis", crop=True)

    def save_cursor(self) -> None:
        self._write_raw(SAVE_CURSOR)

    def restore_cursor(self) -> None:
        self._write_raw(RESTORE_CURSOR)

    def move_to(self, row: int, column: int = 0) -> None:
        """Move the cursor to a 0-based screen position."""
        self.console.control(Control.move_to(column, row))

    def clear_line(self) -> None:
        self.console.control(Control((ControlType.ERASE_IN_LINE, 2)))

    def _write_raw(self, code: str) -> None:
        self.console.file.write(code)
        self.console.file.flush()
