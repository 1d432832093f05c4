# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/system/disk.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from .commands import CommandRunner
from ..config.models import DiskSpec
from ..pipeline.errors import StepError

log = logging.getLogger("archconfigs")


@dataclass(frozen=True)
class Partition:
    path: str
    partlabel: Optional[str]
    fstype: Optional[str]


class DiskClient:
    """
    Partitioning and formatting. Everything that writes here is destructive;
    steps using it must be flagged destructive.
    """

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def partitions(self, disk: str) -> List[Partition]:
        cp = self.runner.run(["lsblk", "-J", "-o", "NAME,PATH,PARTLABEL,FSTYPE", disk], check=False)
        if cp.returncode != 0 or not cp.stdout.strip():
            return []
        try:
            data = json.loads(cp.stdout)
        except ValueError as e:
            raise StepError(f"lsblk printed unparseable JSON for {disk}: {e}") from e
        parts: List[Partition] = []
        for dev in data.get("blockdevices", []):
            for child in dev.get("children", []) or []:
                parts.append(
                    Partition(
                        path=child.get("path") or f"/dev/{child.get('name')}",
                        partlabel=child.get("partlabel"),
                        fstype=child.get("fstype"),
                    )
                )
        return parts

    def mounted_source(self, target: str) -> Optional[str]:
        cp = self.runner.run(["findmnt", "-n", "-o", "SOURCE", target], check=False)
        if cp.returncode != 0:
            return None
        return cp.stdout.strip() or None

    def wipe(self, disk: str) -> None:
        self.runner.run(["wipefs", "-af", disk])

    def partition(self, disk: str, spec: DiskSpec) -> None:
        log.info(f"Partitioning {disk}...")
        self.runner.run(["parted", "-s", disk, "mklabel", "gpt"])
        self.runner.run(["parted", "-s", disk, "mkpart", spec.efi_label, "fat32", spec.efi_start, spec.efi_end])
        self.runner.run(["parted", "-s", disk, "set", "1", "esp", "on"])
        self.runner.run(["parted", "-s", disk, "mkpart", spec.zfs_label, spec.efi_end, "100%"])
        # let udev publish the new PARTLABELs before anyone queries lsblk
        self.runner.run(["udevadm", "settle"], check=False)

    def format_efi(self, partition: str, label: str) -> None:
        self.runner.run(["mkfs.fat", "-F32", "-n", label, partition])

    def mount(self, source: str, target: str) -> None:
        self.runner.run(["mount", source, target])

    def mkswap(self, device: str) -> None:
        self.runner.run(["mkswap", "-f", device])
