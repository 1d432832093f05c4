# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/pipeline/report.py
from __future__ import annotations

from typing import Dict, Mapping

from .models import RunReport
from ..config.models import RunContext

PREINSTALL = """\
Next steps:
  1. Run archinstall with your ZFS config:
       archinstall --config user_configuration_zfs.json
  2. Or continue manually:
       pacstrap -K {mount_root} base linux linux-zen linux-firmware
       pacstrap -K {mount_root} zfs-linux zfs-linux-zen zfs-utils
       genfstab -U {mount_root} >> {mount_root}/etc/fstab
       arch-chroot {mount_root}
  3. Inside the chroot, finish ZFS boot configuration:
       archconfigs postinstall --pool {pool}
  4. SSH keys for {github_user} were staged in {mount_root}/etc/skel/.ssh
"""

POSTINSTALL = """\
Pool: {pool}
Root dataset: {root_dataset}

Next steps:
  1. Set root password: passwd
  2. Create user: useradd -m -G wheel <username>
  3. Exit chroot: exit
  4. Unmount and export:
       umount -Rl {mount_root}
       zpool export {pool}
  5. Reboot!
"""

HYPRLAND = """\
REQUIRED: reboot for all changes to take effect.

BIOS settings (F2 at boot):
  - SATA Mode: AHCI (not RAID)
  - Fastboot: Thorough
  - Secure Boot: Disabled (or configured for Linux)

Hyprland: add to ~{user}/.config/hypr/hyprland.conf
  source = /etc/hypr/nvidia.conf

Useful commands:
  prime-run <app>            run an app on the NVIDIA GPU
  nvidia-smi                 NVIDIA GPU status
  powerprofilesctl           switch power profiles
  fwupdmgr get-updates       check for firmware updates
  update-touchpad-firmware   check/update touchpad firmware

Known limitations: fingerprint reader unsupported; deep sleep (S3) may
misbehave, s2idle works.
"""

PARU = """\
paru is installed (built in {build_dir}).

  paru <package>     search and install (AUR + official)
  paru -Syu          update everything, AUR included
  paru -Sua          update only AUR packages
  paru -c            clean unneeded dependencies

Configuration: ~/.config/paru/paru.conf
"""

FOLLOW_UP: Dict[str, str] = {
    "preinstall": PREINSTALL,
    "postinstall": POSTINSTALL,
    "hyprland": HYPRLAND,
    "paru": PARU,
}


def substitute(template: str, values: Mapping[str, str]) -> str:
    """Fill {name} markers. An unknown marker is a template bug and raises KeyError."""
    return template.format_map(dict(values))


def render(report: RunReport, ctx: RunContext, template: str) -> str:
    """
    Build the end-of-run text: one line per visited step in execution
    order, the action counts, then the pipeline's follow-up instructions
    with run parameters substituted.
    """
    lines = [f"{ctx.pipeline} complete: {report.summary()}", ""]
    width = max((len(o.step_id) for o in report.outcomes), default=0)
    for o in report.outcomes:
        line = f"  {o.action.value:<9} {o.step_id.ljust(width)}"
        if o.detail:
            line += f"  ({o.detail})"
        lines.append(line.rstrip())
    lines.append("")
    lines.append(substitute(template, ctx.template_vars()).rstrip())
    return "\n".join(lines) + "\n"
