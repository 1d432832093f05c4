# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/steps/paru.py

"""
paru AUR helper, built from the AUR as the invoking (non-root) user.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List

from .common import Toolkit, packages_installed, template_file
from ..config.models import Profile, RunContext
from ..pipeline.models import ActionTaken, ProbeResult, Step
from ..pipeline.preconditions import (
    Requirement,
    arch_linux,
    command_succeeds,
    not_running_as_root,
    tool_available,
)
from ..system.commands import CommandRunner
from ..system.hostinfo import HostInfo

log = logging.getLogger("archconfigs")

NAME = "paru"


def requirements(profile: Profile, host: HostInfo, runner: CommandRunner) -> List[Requirement]:
    return [
        not_running_as_root(host),
        arch_linux(host),
        tool_available(runner, "sudo"),
        command_succeeds(runner, ["sudo", "-v"], "Cannot acquire sudo privileges"),
    ]


def build_steps(ctx: RunContext, kit: Toolkit) -> List[Step]:
    spec = ctx.profile.paru

    def rust_probe(c: RunContext) -> ProbeResult:
        if kit.runner.succeeds(["rustup", "show", "active-toolchain"]):
            return ProbeResult.correct()
        return ProbeResult.absent("no active Rust toolchain")

    def rust_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        log.info("Initializing Rust toolchain...")
        kit.runner.run(["rustup", "default", spec.rust_toolchain])
        return ActionTaken.CREATED

    def paru_probe(c: RunContext) -> ProbeResult:
        found = kit.runner.which("paru")
        return ProbeResult.correct(found) if found else ProbeResult.absent("paru not on PATH")

    def paru_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        build_dir = Path(c.build_dir)
        log.info(f"Building paru from AUR in {build_dir}...")
        shutil.rmtree(build_dir, ignore_errors=True)
        build_dir.parent.mkdir(parents=True, exist_ok=True)
        try:
            kit.runner.run(["git", "clone", spec.aur_url, str(build_dir)])
            kit.runner.run(["makepkg", "-si", "--noconfirm"], cwd=build_dir)
        finally:
            shutil.rmtree(build_dir, ignore_errors=True)
        version = kit.runner.run(["paru", "--version"], check=False).stdout.strip()
        if version:
            log.info(version)
        return ActionTaken.CREATED

    home = Path(ctx.target_home or Path.home())
    config = template_file("paru-config", kit, str(home / ".config/paru/paru.conf"), "paru.conf.j2",
                           description="Configure paru")

    return [
        packages_installed("build-deps", kit, lambda c: spec.build_deps,
                           description="Install build dependencies"),
        Step("rust-toolchain", rust_probe, rust_apply,
             description="Initialize Rust toolchain", depends_on=["build-deps"]),
        Step("paru-binary", paru_probe, paru_apply,
             description="Build and install paru", depends_on=["build-deps", "rust-toolchain"]),
        config,
    ]
