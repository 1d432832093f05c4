# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/steps/hyprland.py

"""
Hardware enablement for the XPS 15 9500 under Hyprland: NVIDIA PRIME
offload, touchpad, audio, power, Bluetooth, firmware updates, sensors.
"""

from __future__ import annotations

import logging
from typing import List

from .common import (
    Toolkit,
    created_or_modified,
    initramfs,
    packages_installed,
    ssh_keys,
    template_file,
    units_enabled,
)
from ..config.models import Profile, RunContext
from ..pipeline.errors import CollaboratorError
from ..pipeline.models import ActionTaken, ProbeResult, Step
from ..pipeline.preconditions import Requirement, hardware_model, running_as_root, tool_available
from ..probes import system as probes
from ..probes.text import apply_settings, classify_prefix, classify_settings, rewrite_prefix
from ..system import files
from ..system.commands import CommandRunner
from ..system.hostinfo import HostInfo

log = logging.getLogger("archconfigs")

NAME = "hyprland"
MKINITCPIO_CONF = "/etc/mkinitcpio.conf"
NVIDIA_MODPROBE = "/etc/modprobe.d/nvidia.conf"
AUDIO_MODPROBE = "/etc/modprobe.d/audio.conf"
POWERTOP_UNIT = "/etc/systemd/system/powertop.service"
BLUETOOTH_CONF = "/etc/bluetooth/main.conf"


def requirements(profile: Profile, host: HostInfo, runner: CommandRunner) -> List[Requirement]:
    return [
        running_as_root(host),
        tool_available(runner, "pacman"),
        hardware_model(host, profile.hardware_model),
    ]


def build_steps(ctx: RunContext, kit: Toolkit) -> List[Step]:
    hypr = ctx.profile.hyprland
    conf = ctx.path(MKINITCPIO_CONF)

    # ------------------ NVIDIA modules in the initramfs ------------------

    def modules_probe(c: RunContext) -> ProbeResult:
        text = files.read_text(conf)
        if text is None:
            return ProbeResult.absent(f"{conf} missing")
        return classify_prefix(text, "MODULES", hypr.nvidia_modules)

    def modules_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        text = files.read_text(conf) or ""
        files.write_text(conf, rewrite_prefix(text, "MODULES", hypr.nvidia_modules))
        log.info(f"MODULES now start with {' '.join(hypr.nvidia_modules)}")
        return created_or_modified(result)

    # ------------------ kernel parameters ------------------

    def params_probe(c: RunContext) -> ProbeResult:
        entries = [e for e in kit.boot.entries() if e.has_options]
        if not entries:
            return ProbeResult.correct("not applicable: no loader entries")
        pending = [e.name for e in entries if any(p not in e.options for p in hypr.nvidia_kernel_params)]
        if pending:
            return ProbeResult.incorrect(f"missing NVIDIA parameters: {' '.join(pending)}")
        return ProbeResult.correct()

    def params_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        for entry in kit.boot.entries():
            if not entry.has_options:
                continue
            tokens = entry.options
            missing = [p for p in hypr.nvidia_kernel_params if p not in tokens]
            if not missing:
                continue
            entry.set_options(tokens + missing)
            kit.boot.save(entry)
            log.info(f"Updated {entry.name} with NVIDIA kernel parameters")
        return ActionTaken.MODIFIED

    # ------------------ touchpad firmware ------------------

    def firmware_probe(c: RunContext) -> ProbeResult:
        return ProbeResult.absent("touchpad firmware not queried")

    def firmware_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        if kit.runner.which("fwupdmgr") is None:
            raise CollaboratorError("fwupd not installed - skipping firmware check")
        kit.runner.run(["fwupdmgr", "refresh", "--force"], check=False)

        devices = kit.runner.run(["fwupdmgr", "get-devices"], check=False).stdout
        if "touchpad" in devices.lower():
            log.info("Touchpad detected in fwupd device list")
            updates = kit.runner.run(["fwupdmgr", "get-updates"], check=False).stdout
            hits = [line.strip() for line in updates.splitlines() if "touchpad" in line.lower()]
            if hits:
                log.warning(f"Touchpad firmware update available: {'; '.join(hits)}")
        return ActionTaken.SKIPPED

    # ------------------ powertop ------------------

    powertop_file = template_file("powertop-unit", kit, POWERTOP_UNIT, "powertop.service.j2")

    def powertop_probe(c: RunContext) -> ProbeResult:
        result = powertop_file.probe(c)
        if not result.is_correct:
            return result
        return probes.probe_units(kit.systemd, ["powertop.service"])

    def powertop_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        if not powertop_file.probe(c).is_correct:
            powertop_file.apply(c, result)
        kit.systemd.enable(["powertop.service"])
        return created_or_modified(result)

    # ------------------ bluetooth ------------------

    bt_conf = ctx.path(BLUETOOTH_CONF)

    def bluetooth_probe(c: RunContext) -> ProbeResult:
        return classify_settings(files.read_text(bt_conf), hypr.bluetooth_settings)

    def bluetooth_apply(c: RunContext, result: ProbeResult) -> ActionTaken:
        files.write_text(bt_conf, apply_settings(files.read_text(bt_conf), hypr.bluetooth_settings))
        return created_or_modified(result)

    # ------------------ target user ------------------

    def user_ssh_dir(c: RunContext):
        return c.path(c.target_home / ".ssh") if c.target_home else None

    def user_owner(c: RunContext):
        return kit.host.user_ids(c.target_user) if c.target_user and str(c.root) == "/" else None

    return [
        packages_installed("driver-packages", kit, lambda c: hypr.packages,
                           description="Install driver packages"),
        Step("nvidia-modules", modules_probe, modules_apply,
             description="Add NVIDIA modules to mkinitcpio (Intel iGPU first)",
             depends_on=["driver-packages"]),
        template_file("nvidia-modprobe", kit, NVIDIA_MODPROBE, "nvidia-modprobe.conf.j2",
                      description="Enable NVIDIA DRM modesetting"),
        Step("boot-kernel-params", params_probe, params_apply,
             description="Add NVIDIA kernel parameters to systemd-boot entries"),
        units_enabled("nvidia-power-services", kit, hypr.nvidia_services,
                      description="Enable NVIDIA suspend/hibernate/resume",
                      depends_on=["driver-packages"]),
        template_file("nvidia-pm-udev", kit, "/etc/udev/rules.d/80-nvidia-pm.rules", "80-nvidia-pm.rules.j2",
                      description="Install NVIDIA runtime power management rules"),
        template_file("hypr-nvidia-env", kit, "/etc/hypr/nvidia.conf", "hypr-nvidia.conf.j2",
                      description="Install Hyprland NVIDIA environment"),
        template_file("hypr-nvidia-readme", kit, "/etc/skel/.config/hypr/README-nvidia.md", "README-nvidia.md.j2",
                      description="Install NVIDIA README for new users"),
        template_file("touchpad-xorg", kit, "/etc/X11/xorg.conf.d/30-touchpad.conf", "30-touchpad.conf.j2",
                      description="Configure touchpad for XWayland"),
        template_file("touchpad-i2c-udev", kit, "/etc/udev/rules.d/99-i2c-touchpad.rules", "99-i2c-touchpad.rules.j2",
                      description="Disable i2c power management for the touchpad"),
        template_file("touchpad-firmware-helper", kit, "/usr/local/bin/update-touchpad-firmware",
                      "update-touchpad-firmware.j2", mode=0o755,
                      description="Install update-touchpad-firmware helper"),
        Step("touchpad-firmware-check", firmware_probe, firmware_apply,
             description="Check touchpad firmware via fwupd",
             depends_on=["driver-packages"], skip_when_satisfied=False, optional=True),
        template_file("audio-modprobe", kit, AUDIO_MODPROBE, "audio-modprobe.conf.j2",
                      description="Configure audio (Intel HDA + SOF)"),
        units_enabled("audio-user-services", kit, hypr.audio_user_units, user_scope=True,
                      description="Enable PipeWire for all users", depends_on=["driver-packages"]),
        units_enabled("power-services", kit, hypr.power_services,
                      description="Enable power management services", depends_on=["driver-packages"]),
        Step("powertop-unit", powertop_probe, powertop_apply,
             description="Install and enable powertop auto-tune", depends_on=["driver-packages"]),
        units_enabled("bluetooth-service", kit, ["bluetooth.service"],
                      description="Enable Bluetooth", depends_on=["driver-packages"]),
        Step("bluetooth-settings", bluetooth_probe, bluetooth_apply,
             description="Configure Bluetooth reconnection", depends_on=["bluetooth-service"]),
        units_enabled("fwupd-timer", kit, hypr.fwupd_units,
                      description="Enable firmware metadata refresh", depends_on=["driver-packages"]),
        template_file("fwupd-testing-remote", kit, "/etc/fwupd/remotes.d/lvfs-testing.conf", "lvfs-testing.conf.j2",
                      description="Enable LVFS testing remote"),
        units_enabled("sensor-service", kit, hypr.sensor_services,
                      description="Enable accelerometer/ambient light sensors", depends_on=["driver-packages"]),
        ssh_keys("user-ssh-keys", kit, user_ssh_dir, owner_fn=user_owner,
                 description=f"Install SSH keys from github.com/{ctx.github_user} for {ctx.target_user or 'target user'}"),
        initramfs(kit, [MKINITCPIO_CONF, NVIDIA_MODPROBE, AUDIO_MODPROBE],
                  depends_on=["nvidia-modules", "nvidia-modprobe", "audio-modprobe"]),
    ]
