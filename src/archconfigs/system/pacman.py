# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/system/pacman.py
from __future__ import annotations

import logging
from typing import List, Sequence

from .commands import CommandRunner

log = logging.getLogger("archconfigs")


class PacmanClient:
    def __init__(self, runner: CommandRunner, *, sudo: bool = False):
        self.runner = runner
        self.sudo = sudo

    def _cmd(self, *args: str) -> List[str]:
        return (["sudo"] if self.sudo else []) + list(args)

    def missing(self, packages: Sequence[str]) -> List[str]:
        """Packages not satisfied locally, via `pacman -T` (prints unmet deps, rc=127)."""
        if not packages:
            return []
        cp = self.runner.run(["pacman", "-T", *packages], check=False)
        if cp.returncode == 0:
            return []
        reported = {line.strip() for line in cp.stdout.splitlines() if line.strip()}
        if not reported:
            # pacman itself is unavailable
            return list(packages)
        return [p for p in packages if p in reported]

    def install(self, packages: Sequence[str]) -> None:
        log.info(f"Installing {len(packages)} package(s): {' '.join(packages)}")
        self.runner.run(self._cmd("pacman", "-S", "--needed", "--noconfirm", *packages))

    def sync_databases(self) -> None:
        self.runner.run(self._cmd("pacman", "-Sy", "--noconfirm"))

    def key_known(self, key: str) -> bool:
        return self.runner.succeeds(["pacman-key", "--list-keys", key])

    def receive_key(self, key: str) -> None:
        self.runner.run(["pacman-key", "--recv-keys", key])

    def locally_sign_key(self, key: str) -> None:
        self.runner.run(["pacman-key", "--lsign-key", key])
