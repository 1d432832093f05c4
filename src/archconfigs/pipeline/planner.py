# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/pipeline/planner.py
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set

from .models import Step

from ..observers.dispatcher import EventBus
from ..observers.events import PlanComputed, PlanFailed, new_ctx


class DuplicateStepError(ValueError):
    pass


class UnknownDependencyError(ValueError):
    pass


class DependencyOrderError(ValueError):
    pass


def _validate_dependencies(steps: Sequence[Step]) -> None:
    names: Set[str] = set()
    for s in steps:
        if s.id in names:
            raise DuplicateStepError(f"Step '{s.id}' is defined more than once")
        names.add(s.id)
    for s in steps:
        for d in s.depends_on:
            if d not in names:
                raise UnknownDependencyError(
                    f"Step '{s.id}' depends on unknown step '{d}'"
                )


def plan(
    steps: Sequence[Step],
    bus: Optional[EventBus] = None,
    run_ctx: Optional[dict] = None,
) -> List[Step]:
    """
    Check that the fixed step order already satisfies every dependency.
    The order is never rearranged: a step listed before one of its
    dependencies is a definition error, not something to sort out.
    Emits PlanComputed / PlanFailed if an EventBus is provided.
    """
    ctx = run_ctx or new_ctx(pipeline="-")
    try:
        _validate_dependencies(steps)

        position: Dict[str, int] = {s.id: i for i, s in enumerate(steps)}
        for i, s in enumerate(steps):
            for d in s.depends_on:
                if position[d] >= i:
                    raise DependencyOrderError(
                        f"Step '{s.id}' runs before its dependency '{d}'"
                    )

        order = list(steps)
        if bus:
            bus.emit(PlanComputed(order=[s.id for s in order], **ctx))
        return order

    except Exception as e:
        if bus:
            bus.emit(PlanFailed(error=str(e), **ctx))
        raise
