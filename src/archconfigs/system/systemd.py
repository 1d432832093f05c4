# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/system/systemd.py
from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from .commands import CommandRunner


class SystemdClient:
    """
    systemctl enable / is-enabled. Enabling is idempotent on systemd's side.
    When the pipeline targets a root other than '/', --root is passed so
    the unit symlinks land in that tree.
    """

    def __init__(self, runner: CommandRunner, root: Path = Path("/")):
        self.runner = runner
        self.root = root

    def _base(self, user_scope: bool) -> List[str]:
        cmd = ["systemctl"]
        if str(self.root) != "/":
            cmd.append(f"--root={self.root}")
        if user_scope:
            cmd.append("--global")
        return cmd

    def is_enabled(self, unit: str, *, user_scope: bool = False) -> bool:
        # a missing systemctl shows up as rc=127 -> not enabled
        return self.runner.succeeds(self._base(user_scope) + ["is-enabled", "--quiet", unit])

    def missing(self, units: Sequence[str], *, user_scope: bool = False) -> List[str]:
        return [u for u in units if not self.is_enabled(u, user_scope=user_scope)]

    def enable(self, units: Sequence[str], *, user_scope: bool = False) -> None:
        if units:
            self.runner.run(self._base(user_scope) + ["enable", *units])
