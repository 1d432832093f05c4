# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/system/prompt.py
from __future__ import annotations

from typing import Optional

import typer


class Prompter:
    """Operator input. Only input resolution and confirmations talk to it."""

    def ask(self, text: str, default: Optional[str] = None) -> str:
        if default is None:
            return typer.prompt(text, default="", show_default=False)
        return typer.prompt(text, default=default)

    def confirm(self, text: str, default: bool = False) -> bool:
        return typer.confirm(text, default=default)


class AnswerAll(Prompter):
    """Non-interactive: defaults for questions, a fixed answer for confirmations."""

    def __init__(self, answer: bool = True):
        self.answer = answer

    def ask(self, text: str, default: Optional[str] = None) -> str:
        return default or ""

    def confirm(self, text: str, default: bool = False) -> bool:
        return self.answer
