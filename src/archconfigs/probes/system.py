# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/probes/system.py

"""
Read-only probes for system objects. None of these raise when the
resource, its parent directory, or its managing tool is missing: that is
simply `Absent`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from ..pipeline.models import ProbeResult
from ..system import files
from ..system.bootloader import BootEntryStore
from ..system.pacman import PacmanClient
from ..system.systemd import SystemdClient
from ..system.zfs import ZfsClient


def probe_exists(path: Path) -> ProbeResult:
    return ProbeResult.correct() if path.exists() else ProbeResult.absent(f"{path} missing")


def probe_file(path: Path, content: str, mode: Optional[int] = None) -> ProbeResult:
    current = files.read_text(path)
    if current is None:
        return ProbeResult.absent(f"{path} missing")
    if current != content:
        return ProbeResult.incorrect(f"{path} content differs")
    if mode is not None and files.file_mode(path) != mode:
        return ProbeResult.incorrect(f"{path} mode is {oct(files.file_mode(path) or 0)}, want {oct(mode)}")
    return ProbeResult.correct()


def probe_nonempty(path: Path) -> ProbeResult:
    current = files.read_text(path)
    if current is None:
        return ProbeResult.absent(f"{path} missing")
    if not current.strip():
        return ProbeResult.incorrect(f"{path} is empty")
    return ProbeResult.correct()


def probe_units(systemd: SystemdClient, units: Sequence[str], *, user_scope: bool = False) -> ProbeResult:
    missing = systemd.missing(units, user_scope=user_scope)
    if not missing:
        return ProbeResult.correct()
    if len(missing) == len(units):
        return ProbeResult.absent(f"not enabled: {' '.join(missing)}")
    return ProbeResult.incorrect(f"not enabled: {' '.join(missing)}")


def probe_packages(pacman: PacmanClient, packages: Sequence[str]) -> ProbeResult:
    missing = pacman.missing(packages)
    if not missing:
        return ProbeResult.correct()
    if len(missing) == len(packages):
        return ProbeResult.absent(f"{len(missing)} package(s) missing")
    return ProbeResult.incorrect(f"missing: {' '.join(missing)}")


def probe_datasets(zfs: ZfsClient, names: Sequence[str]) -> ProbeResult:
    missing = [n for n in names if not zfs.dataset_exists(n)]
    if not missing:
        return ProbeResult.correct()
    if len(missing) == len(names):
        return ProbeResult.absent("no datasets")
    return ProbeResult.incorrect(f"missing: {' '.join(missing)}")


def probe_initramfs(store: BootEntryStore, inputs: Sequence[Path]) -> ProbeResult:
    """
    Images must exist and be newer than every input that feeds them
    (mkinitcpio.conf, /etc/hostid, modprobe.d snippets ...).
    """
    images = store.initramfs_images()
    if not images:
        return ProbeResult.absent("no initramfs images in /boot")
    newest_input = max((p.stat().st_mtime for p in inputs if p.exists()), default=0.0)
    stale = [p.name for p in images if p.stat().st_mtime < newest_input]
    if stale:
        return ProbeResult.incorrect(f"older than their inputs: {' '.join(stale)}")
    return ProbeResult.correct()
