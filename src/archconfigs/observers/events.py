# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str                 # ISO timestamp
    run_id: str             # correlates all events in a single invocation
    pipeline: str           # preinstall/postinstall/hyprland/paru
    root: Optional[str]     # filesystem root the pipeline operates on

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def now_ts() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def new_ctx(pipeline: str, root: Optional[str] = None, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": now_ts(),
        "run_id": run_id or str(uuid.uuid4()),
        "pipeline": pipeline,
        "root": root,
    }


# ---------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PlanComputed(BaseEvent):
    order: List[str]

@dataclass(frozen=True)
class PlanFailed(BaseEvent):
    error: str


# ---------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PreconditionsPassed(BaseEvent):
    checked: int

@dataclass(frozen=True)
class PreconditionFailed(BaseEvent):
    name: str
    severity: str     # "fatal" | "advisory"
    message: str


# ---------------------------------------------------------------------
# Step lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StepStarted(BaseEvent):
    name: str
    description: str

@dataclass(frozen=True)
class StepProbed(BaseEvent):
    name: str
    state: str        # "absent" | "present-correct" | "present-incorrect"
    detail: Optional[str] = None

@dataclass(frozen=True)
class StepApplied(BaseEvent):
    name: str
    action: str       # "created" | "modified" | "planned"
    duration_ms: int

@dataclass(frozen=True)
class StepSkipped(BaseEvent):
    name: str

@dataclass(frozen=True)
class StepWarned(BaseEvent):
    name: str
    error: str

@dataclass(frozen=True)
class StepFailed(BaseEvent):
    name: str
    error: str


# ---------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RunSummary(BaseEvent):
    created: int
    modified: int
    skipped: int
    warned: int
    status: str       # "OK" | "FAILED"
    failed_step: Optional[str] = None
