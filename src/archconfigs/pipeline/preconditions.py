# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/pipeline/preconditions.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence

from .errors import AdvisoryDeclined, FatalPrecondition
from ..observers.dispatcher import EventBus
from ..observers.events import PreconditionFailed, PreconditionsPassed, new_ctx
from ..system.commands import CommandRunner
from ..system.hostinfo import HostInfo

log = logging.getLogger("archconfigs")


class Severity(str, Enum):
    FATAL = "fatal"          # abort before anything is touched
    ADVISORY = "advisory"    # warn, ask the operator whether to go on


@dataclass
class Requirement:
    name: str
    check: Callable[[], bool]
    message: str
    severity: Severity = Severity.FATAL


def check_all(
    requirements: Sequence[Requirement],
    *,
    confirm: Callable[[str], bool],
    assume_yes: bool = False,
    bus: Optional[EventBus] = None,
    run_ctx: Optional[dict] = None,
) -> None:
    """
    Every fatal requirement is evaluated before any advisory one, so an
    operator is never asked to confirm a run that would fail anyway.

    Raises FatalPrecondition on the first unmet fatal requirement and
    AdvisoryDeclined when the operator refuses to continue past a warning.
    """
    bus = bus or EventBus()
    ctx = run_ctx or new_ctx(pipeline="-")

    fatal = [r for r in requirements if r.severity is Severity.FATAL]
    advisory = [r for r in requirements if r.severity is Severity.ADVISORY]

    for req in fatal:
        if not req.check():
            bus.emit(PreconditionFailed(name=req.name, severity=req.severity.value, message=req.message, **ctx))
            raise FatalPrecondition(req.name, req.message)
        log.debug(f"precondition ok: {req.name}")

    for req in advisory:
        if req.check():
            log.debug(f"precondition ok: {req.name}")
            continue
        log.warning(req.message)
        bus.emit(PreconditionFailed(name=req.name, severity=req.severity.value, message=req.message, **ctx))
        if assume_yes:
            log.warning("Continuing anyway (--yes)")
            continue
        if not confirm("Continue anyway?"):
            raise AdvisoryDeclined(req.message)

    bus.emit(PreconditionsPassed(checked=len(requirements), **ctx))


# ---------------------------------------------------------------------
# Ready-made requirements
# ---------------------------------------------------------------------

def running_as_root(host: HostInfo) -> Requirement:
    return Requirement("root", lambda: host.euid() == 0, "This command must be run as root")


def not_running_as_root(host: HostInfo) -> Requirement:
    return Requirement(
        "not-root",
        lambda: host.euid() != 0,
        "This command must NOT be run as root. Run as your regular user.",
    )


def tool_available(runner: CommandRunner, tool: str, hint: str = "") -> Requirement:
    message = f"{tool} is required but not installed" + (f". {hint}" if hint else "")
    return Requirement(f"tool:{tool}", lambda: runner.which(tool) is not None, message)


def uefi_firmware(host: HostInfo) -> Requirement:
    return Requirement("uefi", host.is_uefi, "UEFI mode required")


def file_present(path: Path, message: str) -> Requirement:
    return Requirement(f"file:{path}", path.is_file, message)


def arch_linux(host: HostInfo) -> Requirement:
    return Requirement("arch-linux", host.is_arch, "This command is designed for Arch Linux")


def command_succeeds(runner: CommandRunner, cmd: Sequence[str], message: str) -> Requirement:
    return Requirement(f"cmd:{' '.join(cmd)}", lambda: runner.succeeds(cmd), message)


def booted_from_archiso(host: HostInfo) -> Requirement:
    return Requirement(
        "archiso",
        host.is_archiso,
        "Not running from archiso - proceed with caution",
        Severity.ADVISORY,
    )


def hardware_model(host: HostInfo, expected: str) -> Requirement:
    def _check() -> bool:
        return expected in host.product_name()

    return Requirement(
        "hardware-model",
        _check,
        f"This command is designed for Dell {expected}; detected: {host.product_name()}",
        Severity.ADVISORY,
    )
