# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/observers/jsonfile.py

from __future__ import annotations
import json
from pathlib import Path

from .interface import Observer
from .events import BaseEvent


class JsonFileObserver(Observer):
    """One JSON object per event, appended to a .jsonl file per run."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def notify(self, event: BaseEvent) -> None:
        record = {"type": event.__class__.__name__, **event.dict()}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, default=str, ensure_ascii=False) + "\n")
