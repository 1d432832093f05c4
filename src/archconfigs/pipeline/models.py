# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/pipeline/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..config.models import RunContext


class ProbeState(str, Enum):
    ABSENT = "absent"
    PRESENT_CORRECT = "present-correct"
    PRESENT_INCORRECT = "present-incorrect"


@dataclass(frozen=True)
class ProbeResult:
    """
    Classification of one resource. `detail` is informational for every
    state and required for PRESENT_INCORRECT.
    """
    state: ProbeState
    detail: Optional[str] = None

    @classmethod
    def absent(cls, detail: Optional[str] = None) -> "ProbeResult":
        return cls(ProbeState.ABSENT, detail)

    @classmethod
    def correct(cls, detail: Optional[str] = None) -> "ProbeResult":
        return cls(ProbeState.PRESENT_CORRECT, detail)

    @classmethod
    def incorrect(cls, detail: str) -> "ProbeResult":
        return cls(ProbeState.PRESENT_INCORRECT, detail)

    @property
    def is_correct(self) -> bool:
        return self.state is ProbeState.PRESENT_CORRECT

    def __str__(self) -> str:
        return f"{self.state.value} ({self.detail})" if self.detail else self.state.value


class ActionTaken(str, Enum):
    SKIPPED = "skipped"
    MODIFIED = "modified"
    CREATED = "created"
    PLANNED = "planned"     # dry-run: apply would have run
    WARNED = "warned"       # optional step, collaborator failed


ProbeFn = Callable[["RunContext"], ProbeResult]
ApplyFn = Callable[["RunContext", ProbeResult], ActionTaken]


@dataclass
class Step:
    id: str
    probe: ProbeFn
    apply: ApplyFn
    description: str = ""
    depends_on: List[str] = field(default_factory=list)
    skip_when_satisfied: bool = True
    destructive: bool = False
    optional: bool = False


@dataclass
class StepOutcome:
    step_id: str
    action: ActionTaken
    detail: Optional[str] = None
    duration_ms: int = 0


@dataclass
class RunReport:
    """Append-only record of per-step outcomes, in execution order."""
    outcomes: List[StepOutcome] = field(default_factory=list)

    def add(self, outcome: StepOutcome) -> None:
        self.outcomes.append(outcome)

    def count(self, action: ActionTaken) -> int:
        return sum(1 for o in self.outcomes if o.action is action)

    def step_ids(self) -> List[str]:
        return [o.step_id for o in self.outcomes]

    def summary(self) -> str:
        return (
            f"CREATED={self.count(ActionTaken.CREATED)} "
            f"MODIFIED={self.count(ActionTaken.MODIFIED)} "
            f"SKIPPED={self.count(ActionTaken.SKIPPED)} "
            f"WARNED={self.count(ActionTaken.WARNED)}"
        )
