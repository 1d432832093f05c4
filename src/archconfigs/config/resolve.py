# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/config/resolve.py

"""
Input resolution. Every RunContext field comes from, in order:

    CLI option > environment variable > system detection > prompt > default

This is the only place that prompts for values; once the RunContext is
built the pipeline never asks for input again (confirmations aside).
"""

from __future__ import annotations

import getpass
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .models import Profile, RunContext
from ..pipeline.errors import FatalPrecondition
from ..system.hostinfo import HostInfo
from ..system.prompt import Prompter
from ..system.zfs import ZfsClient

log = logging.getLogger("archconfigs")

DEFAULT_POOL = "zroot"
DEFAULT_DISK = "/dev/nvme0n1"
DEFAULT_GITHUB_USER = "danielbodnar"
DEFAULT_BUILD_DIR = "/tmp/paru-build"

TRUTHY = {"1", "true", "yes", "y", "on"}


def _first(*values: Optional[str]) -> Optional[str]:
    for v in values:
        if v:
            return v
    return None


def env_flag(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() in TRUTHY


def detect_pool(zfs: ZfsClient) -> Tuple[Optional[str], Optional[str]]:
    """
    (pool, root dataset) of the system being configured: the pool owning
    the first `bootfs` found, else the first imported pool.
    """
    bootfs = zfs.pool_property(None, "bootfs")
    if bootfs:
        pool = bootfs.split("/", 1)[0]
        log.info(f"Detected ZFS pool: {pool} (bootfs={bootfs})")
        return pool, bootfs
    pools = zfs.list_pools()
    if pools:
        log.info(f"Found ZFS pool: {pools[0]}")
        return pools[0], None
    return None, None


def resolve_context(
    pipeline: str,
    *,
    profile: Profile,
    cli: Dict[str, Any],
    host: HostInfo,
    zfs: ZfsClient,
    prompter: Prompter,
    env: Optional[Mapping[str, str]] = None,
) -> RunContext:
    env = os.environ if env is None else env
    root = Path(cli.get("root") or "/")

    # ------------------ pool / root dataset ------------------
    pool = _first(cli.get("pool"), env.get("ZFS_POOL_NAME"))
    root_dataset = cli.get("root_dataset")

    if pipeline == "postinstall":
        if pool is None:
            pool, detected_root = detect_pool(zfs)
            root_dataset = root_dataset or detected_root
        elif root_dataset is None:
            bootfs = zfs.pool_property(pool, "bootfs")
            root_dataset = bootfs if bootfs and bootfs.startswith(f"{pool}/") else None
        if pool is None:
            pool = prompter.ask("Enter your ZFS pool name").strip()
            if not pool:
                raise FatalPrecondition("pool", "Pool name is required")
    pool = pool or DEFAULT_POOL

    # ------------------ target user ------------------
    user = cli.get("user")
    home: Optional[Path] = None
    if pipeline == "hyprland":
        user = _first(user, env.get("SUDO_USER"), host.first_regular_user())
    elif pipeline == "paru":
        user = _first(user, env.get("USER"), getpass.getuser())
        home = Path.home()
    if user and home is None:
        home = host.user_home(user)
    if pipeline == "hyprland" and not user:
        log.warning("No target user found; user-level steps will be skipped")

    return RunContext(
        pipeline=pipeline,
        profile=profile,
        root=root,
        pool_name=pool,
        disk=_first(cli.get("disk"), env.get("ZFS_DISK")) or DEFAULT_DISK,
        root_dataset=root_dataset,
        swap_size=_first(cli.get("swap_size"), env.get("ZFS_SWAP_SIZE")),
        github_user=_first(cli.get("github_user"), env.get("GITHUB_SSH_USER")) or DEFAULT_GITHUB_USER,
        target_user=user,
        target_home=home,
        mount_root=Path(cli.get("mount_root") or "/mnt"),
        build_dir=Path(_first(cli.get("build_dir"), env.get("PARU_BUILD_DIR")) or DEFAULT_BUILD_DIR),
        assume_yes=bool(cli.get("assume_yes")) or env_flag(env, "ARCHCONFIGS_ASSUME_YES"),
        dry_run=bool(cli.get("dry_run")),
        command_timeout=cli.get("timeout"),
        run_id=cli.get("run_id"),
    )
