# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/observers/console.py

from .events import BaseEvent

_CONTEXT_KEYS = ("ts", "run_id", "pipeline", "root")


class ConsoleObserver:
    """Raw event stream on stdout, wired in with --debug."""

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        k = event.__class__.__name__
        data = ", ".join(f"{x}={y}" for x, y in d.items() if x not in _CONTEXT_KEYS and y is not None)
        print(f"[{d['ts']}] {k} pipeline={d['pipeline']} {{{data}}}")
