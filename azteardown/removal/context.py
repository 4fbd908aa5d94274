"""Execution context threaded through every removal recipe step.

The context carries the DryRun/Confirm mode: in dry-run mode mutations are
recorded as planned actions instead of being performed, and outside force
mode each mutation asks for confirmation first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, TypeVar

from ..models.retry_policy import RetryPolicy
from ..utils.clock import SystemClock
from ..utils.polling import poll_until

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ActionStatus(Enum):
    """Outcome of a recipe action."""

    PERFORMED = "performed"
    PLANNED = "planned"
    DECLINED = "declined"


@dataclass
class PlannedAction:
    """Single step of a recipe as reported back to the caller.

    Attributes:
        action: Verb describing the step (e.g. "Remove", "Disable soft-delete")
        target: What the step acts on
        status: Whether it was performed, only planned (dry-run) or declined
    """

    action: str
    target: str
    status: ActionStatus

    def __str__(self) -> str:
        return f"[{self.status.value}] {self.action}: {self.target}"


@dataclass
class RemovalContext:
    """Mode, collaborators and action report for one removal.

    Attributes:
        service: Remote resource service
        clock: Clock used for waits and polls
        dry_run: Report intended actions without performing them
        force: Suppress interactive confirmation
        confirm: Callback asked before each mutation when not forced (optional)
        retry_policy: Override for every poll loop, e.g. for fast tests (optional)
        actions: Actions performed, planned or declined so far
        step: Name of the step currently executing
    """

    service: Any
    clock: SystemClock = field(default_factory=SystemClock)
    dry_run: bool = False
    force: bool = False
    confirm: Optional[Callable[[str], bool]] = None
    retry_policy: Optional[RetryPolicy] = None
    actions: List[PlannedAction] = field(default_factory=list)
    step: str = "start"

    def perform(self, action: str, target: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> Optional[T]:
        """Run a mutating step honouring dry-run and confirmation.

        Args:
            action: Verb describing the step
            target: What the step acts on
            func: Callable performing the mutation
            *args: Positional arguments for ``func``
            **kwargs: Keyword arguments for ``func``

        Returns:
            Result of ``func``, or None when the step was only planned or declined
        """
        self.step = f"{action} {target}"

        if self.dry_run:
            logger.info(f"What if: {action} {target}")
            self.actions.append(PlannedAction(action, target, ActionStatus.PLANNED))
            return None

        if not self.force and self.confirm is not None:
            if not self.confirm(f"{action} {target}?"):
                logger.info(f"Declined: {action} {target}")
                self.actions.append(PlannedAction(action, target, ActionStatus.DECLINED))
                return None

        logger.info(f"{action} {target}")
        result = func(*args, **kwargs)
        self.actions.append(PlannedAction(action, target, ActionStatus.PERFORMED))
        return result

    def wait(self, seconds: float, reason: str) -> None:
        """Block for a fixed cool-down period.

        Args:
            seconds: Seconds to wait (non-positive values return immediately)
            reason: Why the wait is required
        """
        if seconds <= 0:
            return

        self.step = f"Wait {seconds:.0f}s: {reason}"
        if self.dry_run:
            self.actions.append(PlannedAction(f"Wait {seconds:.0f}s", reason, ActionStatus.PLANNED))
            return

        logger.info(f"Waiting {seconds:.0f}s: {reason}")
        self.clock.sleep(seconds)
        self.actions.append(PlannedAction(f"Wait {seconds:.0f}s", reason, ActionStatus.PERFORMED))

    def poll(self, check: Callable[[], Optional[T]], policy: RetryPolicy, description: str) -> Optional[T]:
        """Poll the provider until ``check`` returns a truthy value.

        In dry-run mode nothing was mutated, so the wait is only reported.

        Raises:
            PollTimeoutError: If the retry budget is exhausted
        """
        self.step = f"Wait for {description}"
        if self.dry_run:
            self.actions.append(PlannedAction("Wait for", description, ActionStatus.PLANNED))
            return None

        return poll_until(check, self.retry_policy or policy, self.clock, description=description)

    @property
    def performed(self) -> List[PlannedAction]:
        """Actions that were actually performed."""
        return [a for a in self.actions if a.status == ActionStatus.PERFORMED]

    @property
    def declined(self) -> List[PlannedAction]:
        """Actions the confirmation callback refused."""
        return [a for a in self.actions if a.status == ActionStatus.DECLINED]
