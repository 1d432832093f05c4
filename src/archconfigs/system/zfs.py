# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/system/zfs.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .commands import CommandRunner

log = logging.getLogger("archconfigs")


def _opts(flag: str, props: Dict[str, str]) -> List[str]:
    out: List[str] = []
    for k, v in props.items():
        out += [flag, f"{k}={v}"]
    return out


class ZfsClient:
    """Thin wrapper over zpool/zfs. Every method is one fixed argument template."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    # ------------------ queries ------------------

    def available(self) -> bool:
        return self.runner.which("zpool") is not None

    def pool_exists(self, pool: str) -> bool:
        return self.runner.succeeds(["zpool", "list", "-H", "-o", "name", pool])

    def list_pools(self) -> List[str]:
        cp = self.runner.run(["zpool", "list", "-H", "-o", "name"], check=False)
        if cp.returncode != 0:
            return []
        return [line.strip() for line in cp.stdout.splitlines() if line.strip()]

    def pool_property(self, pool: Optional[str], prop: str) -> Optional[str]:
        """Value of *prop*; '-' and errors map to None. pool=None queries all imported pools."""
        cmd = ["zpool", "get", "-H", "-o", "value", prop]
        if pool:
            cmd.append(pool)
        cp = self.runner.run(cmd, check=False)
        if cp.returncode != 0:
            return None
        for line in cp.stdout.splitlines():
            value = line.strip()
            if value and value != "-":
                return value
        return None

    def pool_devices(self, pool: str) -> List[str]:
        cp = self.runner.run(["zpool", "list", "-v", "-H", "-P", pool], check=False)
        if cp.returncode != 0:
            return []
        devices = []
        for line in cp.stdout.splitlines():
            for field in line.split("\t"):
                if field.strip().startswith("/"):
                    devices.append(field.strip())
        return devices

    def dataset_exists(self, name: str) -> bool:
        return self.runner.succeeds(["zfs", "list", "-H", "-o", "name", name])

    # ------------------ mutations ------------------

    def create_pool(self, pool: str, device: str, options: Dict[str, str], fs_options: Dict[str, str]) -> None:
        log.info(f"Creating ZFS pool '{pool}' on {device}...")
        self.runner.run(["zpool", "create", "-f", *_opts("-o", options), *_opts("-O", fs_options), pool, device])

    def destroy_pool(self, pool: str) -> None:
        log.warning(f"Destroying ZFS pool '{pool}'")
        self.runner.run(["zpool", "destroy", "-f", pool])

    def set_pool_property(self, pool: str, prop: str, value: str) -> None:
        self.runner.run(["zpool", "set", f"{prop}={value}", pool])

    def create_dataset(self, name: str, properties: Dict[str, str]) -> None:
        self.runner.run(["zfs", "create", *_opts("-o", properties), name])

    def create_volume(self, name: str, size: str, properties: Dict[str, str]) -> None:
        self.runner.run(["zfs", "create", "-V", size, *_opts("-o", properties), name])

    def export_pool(self, pool: str) -> None:
        self.runner.run(["zpool", "export", pool])

    def import_pool(self, pool: str, altroot: str, search_dir: str = "/dev/disk/by-id") -> None:
        self.runner.run(["zpool", "import", "-d", search_dir, "-R", altroot, "-N", pool])

    def mount(self, dataset: str) -> None:
        self.runner.run(["zfs", "mount", dataset])

    def mount_all(self) -> None:
        self.runner.run(["zfs", "mount", "-a"])

    def generate_hostid(self, output: str = "/etc/hostid") -> None:
        self.runner.run(["zgenhostid", "-f", "-o", output])
