# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/steps/preinstall.py

"""
archiso stage: ZFS support on the live system, the archzfs repository,
disk layout, pool, datasets and mounts under the install root.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

from .common import Toolkit, created_or_modified, ssh_keys
from ..config.models import Profile, RunContext
from ..pipeline.errors import CollaboratorError, CommandError
from ..pipeline.models import ActionTaken, ProbeResult, ProbeState, Step
from ..pipeline.preconditions import (
    Requirement,
    booted_from_archiso,
    running_as_root,
    tool_available,
    uefi_firmware,
)
from ..probes import system as probes
from ..probes.text import apply_settings, classify_settings
from ..system import files
from ..system.commands import CommandRunner
from ..system.hostinfo import HostInfo

log = logging.getLogger("archconfigs")

NAME = "preinstall"
REQUIRED_TOOLS = ["parted", "wipefs", "mkfs.fat", "lsblk", "pacman-key"]


def requirements(profile: Profile, host: HostInfo, runner: CommandRunner) -> List[Requirement]:
    reqs = [running_as_root(host), uefi_firmware(host)]
    reqs += [tool_available(runner, t) for t in REQUIRED_TOOLS]
    reqs.append(booted_from_archiso(host))
    return reqs


def _repo_settings(ctx: RunContext):
    repo = ctx.profile.archzfs
    return {"archzfs": {"Server": repo.server, "SigLevel": repo.sig_level}}


def build_steps(ctx: RunContext, kit: Toolkit) -> List[Step]:
    profile = ctx.profile
    pool = ctx.pool_name
    pacman_conf = ctx.path("/etc/pacman.conf")

    # ------------------ ZFS on the live system ------------------

    def zfs_modules_probe(c: RunContext) -> ProbeResult:
        if kit.zfs.available():
            return ProbeResult.correct("zpool available")
        return ProbeResult.absent("zpool not found")

    def zfs_modules_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        url = profile.archzfs.archiso_init_url
        log.info(f"Installing ZFS modules via {url}...")
        script = kit.keys.script(url)
        kit.runner.run(["bash", "-s"], input=script)
        return ActionTaken.CREATED

    # ------------------ archzfs repository ------------------

    def repo_probe(c: RunContext) -> ProbeResult:
        text = files.read_text(pacman_conf)
        if text is None or "[archzfs]" not in [line.strip() for line in text.splitlines()]:
            return ProbeResult.absent("no [archzfs] section")
        return classify_settings(text, _repo_settings(c))

    def repo_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        text = files.read_text(pacman_conf) or ""
        if result.state is ProbeState.ABSENT:
            block = kit.renderer.render(
                "archzfs-repo.conf.j2",
                {"server": profile.archzfs.server, "sig_level": profile.archzfs.sig_level},
            )
            sep = "" if not text or text.endswith("\n") else "\n"
            files.write_text(pacman_conf, text + sep + block)
        else:
            files.write_text(pacman_conf, apply_settings(text, _repo_settings(c)))
        return created_or_modified(result)

    def key_probe(c: RunContext) -> ProbeResult:
        key = profile.archzfs.key
        return ProbeResult.correct() if kit.pacman.key_known(key) else ProbeResult.absent(f"key {key[-16:]} not in keyring")

    def key_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        key = profile.archzfs.key
        try:
            kit.pacman.receive_key(key)
            kit.pacman.locally_sign_key(key)
        except CommandError as e:
            raise CollaboratorError(f"could not import archzfs key {key[-16:]}: {e}") from e
        return ActionTaken.CREATED

    def db_probe(c: RunContext) -> ProbeResult:
        return probes.probe_exists(c.path("/var/lib/pacman/sync/archzfs.db"))

    def db_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        kit.pacman.sync_databases()
        return ActionTaken.CREATED

    # ------------------ disk ------------------

    def partition_probe(c: RunContext) -> ProbeResult:
        parts = kit.disk.partitions(c.disk)
        if not parts:
            return ProbeResult.absent(f"{c.disk} has no partitions")
        labels = {p.partlabel: p for p in parts}
        efi = labels.get(profile.disk.efi_label)
        if efi is not None and efi.fstype == "vfat" and profile.disk.zfs_label in labels:
            return ProbeResult.correct()
        layout = ", ".join(f"{p.path}:{p.partlabel or '-'}:{p.fstype or '-'}" for p in parts)
        return ProbeResult.incorrect(f"existing layout on {c.disk}: {layout}")

    def partition_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        kit.disk.wipe(c.disk)
        kit.disk.partition(c.disk, profile.disk)
        kit.disk.format_efi(c.efi_partition, profile.disk.efi_fs_label)
        return created_or_modified(result)

    def pool_probe(c: RunContext) -> ProbeResult:
        if not kit.zfs.pool_exists(pool):
            return ProbeResult.absent(f"pool {pool} not found")
        want = os.path.realpath(c.zfs_partition)
        devices = kit.zfs.pool_devices(pool)
        if any(os.path.realpath(d) == want for d in devices):
            return ProbeResult.correct()
        return ProbeResult.incorrect(f"pool {pool} is on {', '.join(devices) or 'unknown devices'}")

    def pool_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        if result.state is not ProbeState.ABSENT:
            kit.zfs.destroy_pool(pool)
        kit.zfs.create_pool(pool, c.zfs_partition, profile.pool.options, profile.pool.fs_options)
        return created_or_modified(result)

    # ------------------ datasets ------------------

    dataset_names = [ctx.dataset(d.name) for d in profile.pool.datasets]

    def datasets_probe(c: RunContext) -> ProbeResult:
        return probes.probe_datasets(kit.zfs, dataset_names)

    def datasets_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        for d in profile.pool.datasets:
            name = c.dataset(d.name)
            if kit.zfs.dataset_exists(name):
                continue
            log.info(f"Creating dataset {name}")
            kit.zfs.create_dataset(name, d.properties)
        return created_or_modified(result)

    def bootfs_probe(c: RunContext) -> ProbeResult:
        current = kit.zfs.pool_property(pool, "bootfs")
        if current is None:
            return ProbeResult.absent("bootfs unset")
        if current != c.root_dataset_name:
            return ProbeResult.incorrect(f"bootfs={current}")
        return ProbeResult.correct()

    def bootfs_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        kit.zfs.set_pool_property(pool, "bootfs", c.root_dataset_name)
        return created_or_modified(result)

    swap_name = ctx.dataset("swap")

    def swap_probe(c: RunContext) -> ProbeResult:
        if kit.zfs.dataset_exists(swap_name):
            return ProbeResult.correct()
        return ProbeResult.absent(f"{swap_name} missing")

    def swap_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        kit.zfs.create_volume(swap_name, c.swap_size or "", profile.pool.swap_properties)
        kit.disk.mkswap(f"/dev/zvol/{swap_name}")
        return ActionTaken.CREATED

    # ------------------ mounts ------------------

    def boot_target(c: RunContext) -> str:
        return str(Path(c.mount_root) / "boot")

    def mounts_probe(c: RunContext) -> ProbeResult:
        root_src = kit.disk.mounted_source(str(c.mount_root))
        boot_src = kit.disk.mounted_source(boot_target(c))
        if root_src is None and boot_src is None:
            return ProbeResult.absent(f"nothing mounted at {c.mount_root}")
        if root_src == c.root_dataset_name and boot_src == c.efi_partition:
            return ProbeResult.correct()
        return ProbeResult.incorrect(f"{c.mount_root}={root_src or '-'} boot={boot_src or '-'}")

    def mounts_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        mount_root = str(c.mount_root)
        if kit.zfs.pool_property(pool, "altroot") != mount_root:
            kit.zfs.export_pool(pool)
            kit.zfs.import_pool(pool, mount_root)
        if kit.disk.mounted_source(mount_root) != c.root_dataset_name:
            kit.zfs.mount(c.root_dataset_name)
        kit.zfs.mount_all()
        c.path(boot_target(c)).mkdir(parents=True, exist_ok=True)
        if kit.disk.mounted_source(boot_target(c)) != c.efi_partition:
            kit.disk.mount(c.efi_partition, boot_target(c))
        return created_or_modified(result)

    steps = [
        Step("zfs-modules", zfs_modules_probe, zfs_modules_apply,
             description="Set up ZFS on the live system"),
        Step("archzfs-repo", repo_probe, repo_apply,
             description="Configure the archzfs repository"),
        Step("archzfs-key", key_probe, key_apply,
             description="Import and sign the archzfs key", depends_on=["archzfs-repo"], optional=True),
        Step("package-db", db_probe, db_apply,
             description="Synchronize package databases", depends_on=["archzfs-repo", "archzfs-key"]),
        Step("partition-disk", partition_probe, partition_apply,
             description=f"Partition {ctx.disk} (EFI + ZFS)", destructive=True),
        Step("zfs-pool", pool_probe, pool_apply,
             description=f"Create ZFS pool '{pool}' on {ctx.zfs_partition}",
             depends_on=["zfs-modules", "partition-disk"], destructive=True),
        Step("zfs-datasets", datasets_probe, datasets_apply,
             description="Create ZFS datasets", depends_on=["zfs-pool"]),
        Step("pool-bootfs", bootfs_probe, bootfs_apply,
             description=f"Set bootfs={ctx.root_dataset_name}", depends_on=["zfs-datasets"]),
    ]
    if ctx.swap_size:
        steps.append(Step("swap-zvol", swap_probe, swap_apply,
                          description=f"Create {ctx.swap_size} swap zvol", depends_on=["zfs-pool"]))
    steps += [
        Step("mount-filesystems", mounts_probe, mounts_apply,
             description=f"Mount filesystems at {ctx.mount_root}",
             depends_on=["zfs-datasets", "partition-disk"]),
        ssh_keys(
            "skel-ssh-keys",
            kit,
            lambda c: c.path(Path(c.mount_root) / "etc/skel/.ssh"),
            description=f"Stage SSH keys from github.com/{ctx.github_user} in /etc/skel",
            depends_on=["mount-filesystems"],
        ),
    ]
    return steps
