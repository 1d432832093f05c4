# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/observers/logger.py

from __future__ import annotations
import logging
from .events import BaseEvent, StepFailed, StepWarned, PlanFailed, PreconditionFailed


class LoggerObserver:
    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        msg = ", ".join(f"{k}={v}" for k, v in d.items() if k not in ("ts", "run_id", "root"))

        if isinstance(event, (StepFailed, PlanFailed)):
            self.logger.error(f"[EVENT] {etype}: {msg}")
        elif isinstance(event, (StepWarned, PreconditionFailed)):
            self.logger.warning(f"[EVENT] {etype}: {msg}")
        else:
            self.logger.debug(f"[EVENT] {etype}: {msg}")
