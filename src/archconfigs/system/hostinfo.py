# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/system/hostinfo.py
from __future__ import annotations

import os
import pwd
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from . import files

ARCHISO_KERNEL = "run/archiso/bootmnt/arch/boot/x86_64/vmlinuz-linux"


@dataclass
class HostInfo:
    """Identity and firmware facts about the machine the pipeline runs on."""
    root: Path = Path("/")

    def euid(self) -> int:
        return os.geteuid()

    def product_name(self) -> str:
        text = files.read_text(self.root / "sys/class/dmi/id/product_name")
        return text.strip() if text else "unknown"

    def is_uefi(self) -> bool:
        return (self.root / "sys/firmware/efi/efivars").is_dir()

    def is_archiso(self) -> bool:
        return (self.root / ARCHISO_KERNEL).is_file()

    def is_arch(self) -> bool:
        return (self.root / "etc/arch-release").is_file()

    def user_home(self, user: str) -> Optional[Path]:
        try:
            return Path(pwd.getpwnam(user).pw_dir)
        except KeyError:
            return None

    def user_ids(self, user: str) -> Optional[Tuple[int, int]]:
        try:
            entry = pwd.getpwnam(user)
        except KeyError:
            return None
        return entry.pw_uid, entry.pw_gid

    def first_regular_user(self) -> Optional[str]:
        try:
            return pwd.getpwuid(1000).pw_name
        except KeyError:
            return None
