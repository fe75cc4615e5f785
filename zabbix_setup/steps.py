"""
Step model and the registry holding the canonical status of every step.

A registry is built once with its full, ordered step list. Statuses only move
forward (pending -> running -> success/failed) and every accepted change is
pushed to the registry's view.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

from zabbix_setup.actions import Action
from zabbix_setup.errors import PreconditionError

if TYPE_CHECKING:
    from zabbix_setup.checklist import ChecklistView


class StepStatus(str, Enum):
    """Lifecycle status of a step."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.SUCCESS, StepStatus.FAILED)


ALLOWED_TRANSITIONS = {
    StepStatus.PENDING: (StepStatus.RUNNING,),
    StepStatus.RUNNING: (StepStatus.SUCCESS, StepStatus.FAILED),
    StepStatus.SUCCESS: (),
    StepStatus.FAILED: (),
}


@dataclass
class Step:
    """
    One named unit of work with a status and failure policy.

    Attributes:
        index: Position in the run, also the display row
        label: Human-readable description shown in the checklist
        action: Work performed when the step executes
        allow_failure: Whether the run may continue past a failure
        status: Current lifecycle status, changed through the registry only
    """

    index: int
    label: str
    action: Action
    allow_failure: bool = False
    status: StepStatus = field(default=StepStatus.PENDING)

    @property
    def description(self) -> str:
        return self.action.description


class StepRegistry:
    """Ordered, fixed-size list of steps plus the view that renders them."""

    def __init__(self, steps: Sequence[Step], view: Optional["ChecklistView"] = None):
        if not steps:
            raise PreconditionError("A run needs at least one step")
        for position, step in enumerate(steps):
            if step.index != position:
                raise PreconditionError(
                    f"Step {step.label!r} has index {step.index}, expected {position}"
                )
            if step.status is not StepStatus.PENDING:
                raise PreconditionError(f"Step {step.label!r} is not pending")
        self._steps: Tuple[Step, ...] = tuple(steps)
        self.view = view

    @classmethod
    def initialize(
        cls,
        labels: Sequence[str],
        allow_failure_flags: Sequence[bool],
        actions: Sequence[Action],
        view: Optional["ChecklistView"] = None,
    ) -> "StepRegistry":
        """
        Build a registry of pending steps from parallel sequences.

        Raises:
            PreconditionError: If the sequences are empty or differ in length
        """
        if not labels:
            raise PreconditionError("A run needs at least one step")
        if not (len(labels) == len(allow_failure_flags) == len(actions)):
            raise PreconditionError(
                "labels, allow_failure_flags and actions differ in length: "
                f"{len(labels)}, {len(allow_failure_flags)}, {len(actions)}"
            )
        steps = [
            Step(index=i, label=label, action=action, allow_failure=bool(allowed))
            for i, (label, allowed, action) in enumerate(
                zip(labels, allow_failure_flags, actions)
            )
        ]
        return cls(steps, view)

    @property
    def steps(self) -> Tuple[Step, ...]:
        return self._steps

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self):
        return iter(self._steps)

    def __getitem__(self, index: int) -> Step:
        return self._steps[index]

    def statuses(self) -> Tuple[StepStatus, ...]:
        return tuple(step.status for step in self._steps)

    def running(self) -> Optional[Step]:
        return next(
            (step for step in self._steps if step.status is StepStatus.RUNNING), None
        )

    def set_status(self, index: int, new_status: StepStatus) -> None:
        """
        Move a step forward in its lifecycle and re-render.

        Raises:
            PreconditionError: On an out-of-range index, a backward or
                skipping transition, or a second running step
        """
        if not isinstance(index, int) or not 0 <= index < len(self._steps):
            raise PreconditionError(
                f"Step index {index!r} out of range 0..{len(self._steps) - 1}"
            )
        step = self._steps[index]
        try:
            new_status = StepStatus(new_status)
        except ValueError as e:
            raise PreconditionError(f"Unknown step status {new_status!r}") from e
        if new_status not in ALLOWED_TRANSITIONS[step.status]:
            raise PreconditionError(
                f"Illegal transition for {step.label!r}: "
                f"{step.status.value} -> {new_status.value}"
            )
        if new_status is StepStatus.RUNNING:
            current = self.running()
            if current is not None:
                raise PreconditionError(
                    f"Cannot start {step.label!r} while {current.label!r} is running"
                )

        step.status = new_status
        if self.view is not None:
            self.view.status_changed(self, step)

    def render(self) -> None:
        """Redraw the whole checklist."""
        if self.view is not None:
            self.view.draw(self)
