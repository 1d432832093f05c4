# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/observers/interface.py

from __future__ import annotations
from typing import Protocol
from .events import BaseEvent


class Observer(Protocol):
    """
    Receives every precondition, plan and step event of a run.
    Exceptions raised here are logged by the EventBus and otherwise ignored.
    """

    def notify(self, event: BaseEvent) -> None: ...
