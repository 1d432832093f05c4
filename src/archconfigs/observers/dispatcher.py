# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/observers/dispatcher.py
from __future__ import annotations
import dataclasses
import logging
from typing import List, Optional
from .events import BaseEvent, now_ts

log = logging.getLogger("archconfigs")


class EventBus:
    def __init__(self, observers: Optional[List] = None):
        self._observers = observers or []

    def emit(self, event: BaseEvent) -> None:
        # run_ctx holds the run start time; each event gets its own
        event = dataclasses.replace(event, ts=now_ts())
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception as exc:
                # observers must not break a provisioning run
                log.debug(f"observer {ob.__class__.__name__} failed: {exc}")
