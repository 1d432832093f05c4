# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/steps/postinstall.py

"""
chroot stage: make the installed system boot from ZFS.
"""

from __future__ import annotations

import logging
from typing import List

from .common import Toolkit, created_or_modified, initramfs, read_required, units_enabled
from ..config.models import Profile, RunContext
from ..pipeline.errors import CollaboratorError
from ..pipeline.models import ActionTaken, ProbeResult, Step
from ..pipeline.preconditions import Requirement, file_present, running_as_root, tool_available
from ..probes import system as probes
from ..probes.text import classify_insert_before, rewrite_insert_before
from ..probes.tokens import parse_array
from ..system import files
from ..system.bootloader import BootEntry
from ..system.commands import CommandRunner
from ..system.hostinfo import HostInfo

log = logging.getLogger("archconfigs")

NAME = "postinstall"
MKINITCPIO_CONF = "/etc/mkinitcpio.conf"
HOSTID = "/etc/hostid"


def requirements(profile: Profile, host: HostInfo, runner: CommandRunner) -> List[Requirement]:
    return [
        running_as_root(host),
        tool_available(runner, "zfs", "Install zfs-linux and zfs-utils first."),
        file_present(host.root / MKINITCPIO_CONF.lstrip("/"), f"mkinitcpio.conf not found at {MKINITCPIO_CONF}"),
    ]


def zfs_root_option(ctx: RunContext) -> str:
    return f"root=zfs={ctx.root_dataset_name}"


def entry_needs_root(entry: BootEntry, option: str) -> bool:
    return entry.has_options and option not in entry.options


def set_zfs_root(entry: BootEntry, option: str) -> None:
    """Replace any root= option in place, or append it together with rw."""
    tokens = entry.options
    if any(t.startswith("root=") for t in tokens):
        tokens = [option if t.startswith("root=") else t for t in tokens]
    else:
        tokens.append(option)
        if "rw" not in tokens:
            tokens.append("rw")
    entry.set_options(tokens)


def build_steps(ctx: RunContext, kit: Toolkit) -> List[Step]:
    profile = ctx.profile
    pool = ctx.pool_name
    store = kit.boot
    conf = ctx.path(MKINITCPIO_CONF)

    # ------------------ mkinitcpio HOOKS ------------------

    def hooks_probe(c: RunContext) -> ProbeResult:
        text = files.read_text(conf)
        if text is None:
            return ProbeResult.absent(f"{conf} missing")
        return classify_insert_before(text, "HOOKS", "zfs", "filesystems", remove=("fsck",))

    def hooks_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        text = read_required(conf)
        if parse_array(text, "HOOKS") is None:
            raise CollaboratorError(f"no HOOKS=(...) line in {conf}; add zfs before filesystems by hand")
        files.write_text(conf, rewrite_insert_before(text, "HOOKS", "zfs", "filesystems", remove=("fsck",)))
        log.info("HOOKS now: zfs before filesystems, fsck removed")
        return ActionTaken.MODIFIED

    # ------------------ hostid ------------------

    def hostid_probe(c: RunContext) -> ProbeResult:
        return probes.probe_exists(c.path(HOSTID))

    def hostid_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        kit.zfs.generate_hostid(str(c.path(HOSTID)))
        return ActionTaken.CREATED

    # ------------------ cachefile ------------------

    cachefile = profile.pool.cachefile

    def cache_probe(c: RunContext) -> ProbeResult:
        if not kit.zfs.pool_exists(pool):
            return ProbeResult.absent(f"pool {pool} not imported")
        current = kit.zfs.pool_property(pool, "cachefile")
        if current == cachefile:
            return ProbeResult.correct()
        return ProbeResult.incorrect(f"cachefile={current or '-'}")

    def cache_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        if not kit.zfs.pool_exists(pool):
            raise CollaboratorError(f"Pool {pool} not available, skipping cache configuration")
        c.path(cachefile).parent.mkdir(parents=True, exist_ok=True)
        kit.zfs.set_pool_property(pool, "cachefile", cachefile)
        return created_or_modified(result)

    # ------------------ existing boot entries ------------------

    def entries_probe(c: RunContext) -> ProbeResult:
        if not store.entries_dir.is_dir():
            return ProbeResult.correct("not applicable: no loader entries directory")
        option = zfs_root_option(c)
        pending = [e.name for e in store.entries() if entry_needs_root(e, option)]
        if pending:
            return ProbeResult.incorrect(f"without {option}: {' '.join(pending)}")
        return ProbeResult.correct()

    def entries_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        option = zfs_root_option(c)
        for entry in store.entries():
            if not entry_needs_root(entry, option):
                continue
            set_zfs_root(entry, option)
            store.save(entry)
            log.info(f"Updated {entry.name} with ZFS root")
        return ActionTaken.MODIFIED

    # ------------------ ZFS boot entries ------------------

    def kernels() -> List[str]:
        return store.installed_kernels(profile.boot.kernels)

    def zfs_entry(c: RunContext, kernel: str) -> str:
        return kit.renderer.render(
            "boot_entry.conf.j2",
            {
                "kernel": kernel,
                "microcode": store.microcode_images(profile.boot.microcode),
                "root_dataset": c.root_dataset_name,
                "zfs_options": profile.boot.zfs_options,
            },
        )

    def zfs_entries_probe(c: RunContext) -> ProbeResult:
        found = kernels()
        if not found:
            return ProbeResult.correct("not applicable: no kernels in /boot")
        missing = [k for k in found if not store.entry_path(f"{k}-zfs.conf").is_file()]
        if not missing:
            return ProbeResult.correct()
        if len(missing) == len(found):
            return ProbeResult.absent(f"no ZFS entries for {' '.join(missing)}")
        return ProbeResult.incorrect(f"no ZFS entries for {' '.join(missing)}")

    def zfs_entries_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        for kernel in kernels():
            name = f"{kernel}-zfs.conf"
            if store.entry_path(name).is_file():
                continue
            store.create(name, zfs_entry(c, kernel))
            log.info(f"Created boot entry: {name}")
        return created_or_modified(result)

    # ------------------ loader default ------------------

    def default_probe(c: RunContext) -> ProbeResult:
        if not store.loader_conf.is_file():
            return ProbeResult.correct("not applicable: no loader.conf")
        if not kernels():
            return ProbeResult.correct("not applicable: no kernels in /boot")
        current = store.default_entry()
        if current is None:
            return ProbeResult.absent("no default entry")
        return ProbeResult.correct(f"default {current}")

    def default_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        name = f"{kernels()[0]}-zfs.conf"
        store.set_default(name)
        log.info(f"Set default boot entry to {name}")
        return ActionTaken.MODIFIED

    return [
        Step("mkinitcpio-hooks", hooks_probe, hooks_apply,
             description="Configure mkinitcpio hooks for ZFS", optional=True),
        Step("hostid", hostid_probe, hostid_apply,
             description="Generate ZFS hostid"),
        units_enabled("zfs-services", kit, profile.pool.services,
                      description="Enable ZFS services"),
        Step("zfs-cachefile", cache_probe, cache_apply,
             description=f"Set cachefile={cachefile} on {pool}", optional=True),
        Step("boot-entries-root", entries_probe, entries_apply,
             description="Point existing systemd-boot entries at the ZFS root"),
        Step("zfs-boot-entries", zfs_entries_probe, zfs_entries_apply,
             description="Create ZFS systemd-boot entries"),
        Step("loader-default", default_probe, default_apply,
             description="Set default boot entry", depends_on=["zfs-boot-entries"]),
        initramfs(kit, [MKINITCPIO_CONF, HOSTID], depends_on=["mkinitcpio-hooks", "hostid"]),
    ]
