"""
Checklist views.

``LiveChecklistView`` redraws every row in place on each status change; the
list is short, so a full redraw is simpler than diffing and never leaves a
stale glyph behind. ``PlainChecklistView`` prints one line per transition for
outputs that cannot move the cursor (pipes, CI logs).
"""

from typing import TYPE_CHECKING, Dict, Protocol, Tuple

from rich.console import Console
from rich.text import Text

from zabbix_setup.errors import TerminalUnavailableError
from zabbix_setup.steps import Step, StepStatus
from zabbix_setup.terminal import TerminalSurface

if TYPE_CHECKING:
    from zabbix_setup.steps import StepRegistry


# glyph, theme style
STATUS_GLYPHS: Dict[StepStatus, Tuple[str, str]] = {
    StepStatus.PENDING: (" ", "pending"),
    StepStatus.RUNNING: ("➜", "warning"),
    StepStatus.SUCCESS: ("✓", "success"),
    StepStatus.FAILED: ("✗", "error"),
}


def format_row(step: Step) -> Text:
    """Build the checklist line for one step: ``[glyph] label``."""
    glyph, style = STATUS_GLYPHS[step.status]
    row = Text()
    row.append(f"[{glyph}]", style=style)
    row.append(" ")
    row.append(step.label, style=style if step.status is not StepStatus.PENDING else "")
    return row


class ChecklistView(Protocol):
    def draw(self, registry: "StepRegistry") -> None: ...

    def status_changed(self, registry: "StepRegistry", step: Step) -> None: ...

    def park_cursor(self) -> None: ...


# ----------------------------------------------------------------
# Live (in-place) Checklist
# ----------------------------------------------------------------
class LiveChecklistView:
    """
    In-place checklist occupying a fixed block of screen rows.

    Args:
        surface: Terminal primitives used for drawing
        top_row: 0-based screen row of the first step
    """

    def __init__(self, surface: TerminalSurface, top_row: int = 0) -> None:
        if not surface.is_interactive:
            raise TerminalUnavailableError(
                "The live checklist needs an interactive terminal; use --ui plain"
            )
        self.surface = surface
        self.top_row = top_row
        self._height = 0

    def bottom_row(self) -> int:
        """First screen row below the checklist."""
        return self.top_row + self._height

    def draw(self, registry: "StepRegistry") -> None:
        self._height = len(registry)
        self.surface.save_cursor()
        for step in registry:
            self.surface.move_to(self.top_row + step.index, 0)
            self.surface.clear_line()
            self.surface.write_line(format_row(step))
        self.surface.restore_cursor()

    def status_changed(self, registry: "StepRegistry", step: Step) -> None:
        self.draw(registry)

    def park_cursor(self) -> None:
        """Move the cursor to the line below the checklist."""
        self.surface.move_to(self.bottom_row(), 0)


# ----------------------------------------------------------------
# Plain (sequential) Checklist
# ----------------------------------------------------------------
class PlainChecklistView:
    """Sequential progress lines, one per status change."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def draw(self, registry: "StepRegistry") -> None:
        for step in registry:
            self.console.print(format_row(step))

    def status_changed(self, registry: "StepRegistry", step: Step) -> None:
        if step.status is StepStatus.RUNNING:
            self.console.print(Text(f"--- {step.label} ---", style="step"))
            self.console.print("  Executing...")
        elif step.status is StepStatus.SUCCESS:
            self.console.print(Text("  [OK]", style="success"))
        elif step.status is StepStatus.FAILED:
            suffix = " (allowed to fail, continuing)" if step.allow_failure else ""
            self.console.print(Text(f"  [FAILED]{suffix}", style="error"))

    def park_cursor(self) -> None:
        pass
