# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/steps/common.py

"""
Building blocks shared by the pipeline modules: the collaborator toolkit
and step factories for the resource kinds that recur everywhere (managed
files, enabled units, installed packages, SSH keys, initramfs).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import requests

from ..config.models import RunContext
from ..pipeline.errors import CollaboratorError, StepError
from ..pipeline.models import ActionTaken, ProbeResult, ProbeState, Step
from ..probes import system as probes
from ..system import files
from ..system.bootloader import BootEntryStore
from ..system.commands import CommandRunner
from ..system.disk import DiskClient
from ..system.hostinfo import HostInfo
from ..system.keys import KeyFetcher
from ..system.pacman import PacmanClient
from ..system.systemd import SystemdClient
from ..system.zfs import ZfsClient
from ..template_renderer import TemplateRenderer

log = logging.getLogger("archconfigs")

PathFn = Callable[[RunContext], Path]


@dataclass
class Toolkit:
    """Every external collaborator a step may talk to, built once per run."""
    runner: CommandRunner
    zfs: ZfsClient
    disk: DiskClient
    systemd: SystemdClient
    pacman: PacmanClient
    boot: BootEntryStore
    keys: KeyFetcher
    host: HostInfo
    renderer: TemplateRenderer = field(default_factory=TemplateRenderer)

    @classmethod
    def for_context(
        cls,
        ctx: RunContext,
        *,
        runner: Optional[CommandRunner] = None,
        session: Optional[requests.Session] = None,
        sudo: bool = False,
    ) -> "Toolkit":
        runner = runner or CommandRunner(timeout=ctx.command_timeout, label=ctx.pipeline)
        return cls(
            runner=runner,
            zfs=ZfsClient(runner),
            disk=DiskClient(runner),
            systemd=SystemdClient(runner, ctx.root),
            pacman=PacmanClient(runner, sudo=sudo),
            boot=BootEntryStore(ctx.root),
            keys=KeyFetcher(session=session),
            host=HostInfo(ctx.root),
        )

    def template_vars(self, ctx: RunContext, **extra: str) -> Dict[str, str]:
        values = dict(ctx.template_vars())
        values["machine"] = f"Dell {ctx.profile.hardware_model}"
        values.update(extra)
        return values


def created_or_modified(result: ProbeResult) -> ActionTaken:
    return ActionTaken.CREATED if result.state is ProbeState.ABSENT else ActionTaken.MODIFIED


# ---------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------

def managed_file(
    step_id: str,
    path_fn: PathFn,
    content_fn: Callable[[RunContext], str],
    *,
    mode: Optional[int] = None,
    description: str = "",
    depends_on: Sequence[str] = (),
) -> Step:
    """A file whose whole content we own. Rewrites keep a timestamped backup."""

    def probe(ctx: RunContext) -> ProbeResult:
        return probes.probe_file(path_fn(ctx), content_fn(ctx), mode)

    def apply(ctx: RunContext, result: ProbeResult) -> ActionTaken:
        path = path_fn(ctx)
        files.write_text(path, content_fn(ctx), mode=mode)
        log.info(f"Wrote {path}")
        return created_or_modified(result)

    return Step(
        id=step_id,
        probe=probe,
        apply=apply,
        description=description or f"Install {step_id}",
        depends_on=list(depends_on),
    )


def template_file(
    step_id: str,
    kit: Toolkit,
    dest: str,
    template: str,
    *,
    mode: Optional[int] = None,
    description: str = "",
    depends_on: Sequence[str] = (),
) -> Step:
    return managed_file(
        step_id,
        lambda ctx: ctx.path(dest),
        lambda ctx: kit.renderer.render(template, kit.template_vars(ctx)),
        mode=mode,
        description=description or f"Install {dest}",
        depends_on=depends_on,
    )


# ---------------------------------------------------------------------
# Units and packages
# ---------------------------------------------------------------------

def units_enabled(
    step_id: str,
    kit: Toolkit,
    units: Sequence[str],
    *,
    user_scope: bool = False,
    description: str = "",
    depends_on: Sequence[str] = (),
) -> Step:
    def probe(ctx: RunContext) -> ProbeResult:
        return probes.probe_units(kit.systemd, units, user_scope=user_scope)

    def apply(ctx: RunContext, result: ProbeResult) -> ActionTaken:
        missing = kit.systemd.missing(units, user_scope=user_scope)
        kit.systemd.enable(missing, user_scope=user_scope)
        log.info(f"Enabled {' '.join(missing)}")
        return created_or_modified(result)

    scope = "user units" if user_scope else "services"
    return Step(
        id=step_id,
        probe=probe,
        apply=apply,
        description=description or f"Enable {scope}: {' '.join(units)}",
        depends_on=list(depends_on),
    )


def packages_installed(
    step_id: str,
    kit: Toolkit,
    packages_fn: Callable[[RunContext], Sequence[str]],
    *,
    description: str = "",
    depends_on: Sequence[str] = (),
) -> Step:
    def probe(ctx: RunContext) -> ProbeResult:
        return probes.probe_packages(kit.pacman, packages_fn(ctx))

    def apply(ctx: RunContext, result: ProbeResult) -> ActionTaken:
        kit.pacman.install(packages_fn(ctx))
        return created_or_modified(result)

    return Step(
        id=step_id,
        probe=probe,
        apply=apply,
        description=description or "Install packages",
        depends_on=list(depends_on),
    )


# ---------------------------------------------------------------------
# SSH keys
# ---------------------------------------------------------------------

def ssh_keys(
    step_id: str,
    kit: Toolkit,
    ssh_dir_fn: Callable[[RunContext], Optional[Path]],
    *,
    owner_fn: Optional[Callable[[RunContext], Optional[Tuple[int, int]]]] = None,
    description: str = "",
    depends_on: Sequence[str] = (),
) -> Step:
    """
    `authorized_keys` populated from the GitHub account's published keys,
    directory 0700 and file 0600. Optional: a failed fetch is a warning.
    """

    def probe(ctx: RunContext) -> ProbeResult:
        ssh_dir = ssh_dir_fn(ctx)
        if ssh_dir is None:
            return ProbeResult.absent("no target user")
        keyfile = ssh_dir / "authorized_keys"
        result = probes.probe_nonempty(keyfile)
        if not result.is_correct:
            return result
        if files.file_mode(ssh_dir) != 0o700 or files.file_mode(keyfile) != 0o600:
            return ProbeResult.incorrect(f"{ssh_dir} permissions too open")
        return result

    def apply(ctx: RunContext, result: ProbeResult) -> ActionTaken:
        ssh_dir = ssh_dir_fn(ctx)
        if ssh_dir is None:
            raise CollaboratorError("No target user found for SSH key installation")
        keys = kit.keys.github_keys(ctx.github_user)

        ssh_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(ssh_dir, 0o700)
        keyfile = ssh_dir / "authorized_keys"
        files.write_text(keyfile, keys, mode=0o600)

        owner = owner_fn(ctx) if owner_fn else None
        if owner:
            uid, gid = owner
            os.chown(ssh_dir, uid, gid)
            os.chown(keyfile, uid, gid)
        log.info(f"SSH keys from github.com/{ctx.github_user} -> {keyfile}")
        return created_or_modified(result)

    return Step(
        id=step_id,
        probe=probe,
        apply=apply,
        description=description or "Install SSH keys from GitHub",
        depends_on=list(depends_on),
        optional=True,
    )


# ---------------------------------------------------------------------
# initramfs
# ---------------------------------------------------------------------

def initramfs(
    kit: Toolkit,
    inputs: Sequence[str],
    *,
    step_id: str = "initramfs",
    depends_on: Sequence[str] = (),
) -> Step:
    """Regenerate all presets with `mkinitcpio -P` when an input is newer than the images."""

    def _inputs(ctx: RunContext) -> List[Path]:
        return [ctx.path(p) for p in inputs]

    def probe(ctx: RunContext) -> ProbeResult:
        return probes.probe_initramfs(kit.boot, _inputs(ctx))

    def apply(ctx: RunContext, result: ProbeResult) -> ActionTaken:
        log.info("Regenerating initramfs for all kernels...")
        kit.runner.run(["mkinitcpio", "-P"])
        return created_or_modified(result)

    return Step(
        id=step_id,
        probe=probe,
        apply=apply,
        description="Regenerate initramfs",
        depends_on=list(depends_on),
    )


def read_required(path: Path) -> str:
    text = files.read_text(path)
    if text is None:
        raise StepError(f"{path} not found")
    return text
