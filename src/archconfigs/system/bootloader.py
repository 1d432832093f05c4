# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/system/bootloader.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from . import files


@dataclass
class BootEntry:
    """
    One systemd-boot entry (`loader/entries/<name>.conf`).
    Lines are kept as written; only the `options` line is ever edited.
    """
    path: Path
    lines: List[str] = field(default_factory=list)

    @classmethod
    def parse(cls, path: Path, text: str) -> "BootEntry":
        return cls(path=path, lines=text.splitlines())

    @property
    def name(self) -> str:
        return self.path.name

    def _options_index(self) -> Optional[int]:
        for i, line in enumerate(self.lines):
            if line.split(maxsplit=1)[:1] == ["options"]:
                return i
        return None

    @property
    def has_options(self) -> bool:
        return self._options_index() is not None

    @property
    def options(self) -> List[str]:
        idx = self._options_index()
        if idx is None:
            return []
        return self.lines[idx].split()[1:]

    def set_options(self, tokens: Sequence[str]) -> None:
        line = " ".join(["options", *tokens])
        idx = self._options_index()
        if idx is None:
            self.lines.append(line)
        else:
            self.lines[idx] = line

    def render(self) -> str:
        return "\n".join(self.lines) + "\n"


class BootEntryStore:
    """The systemd-boot ESP layout below <root>/boot."""

    def __init__(self, root: Path):
        self.boot = root / "boot"
        self.entries_dir = self.boot / "loader" / "entries"
        self.loader_conf = self.boot / "loader" / "loader.conf"

    def entries(self) -> List[BootEntry]:
        if not self.entries_dir.is_dir():
            return []
        return [
            BootEntry.parse(p, p.read_text(encoding="utf-8"))
            for p in sorted(self.entries_dir.glob("*.conf"))
            if p.is_file()
        ]

    def entry_path(self, name: str) -> Path:
        return self.entries_dir / name

    def save(self, entry: BootEntry) -> None:
        files.write_text(entry.path, entry.render())

    def create(self, name: str, content: str) -> Path:
        path = self.entry_path(name)
        files.write_text(path, content, mode=0o644)
        return path

    def installed_kernels(self, kernels: Sequence[str]) -> List[str]:
        return [k for k in kernels if (self.boot / f"vmlinuz-{k}").is_file()]

    def microcode_images(self, names: Sequence[str]) -> List[str]:
        return [f"{m}.img" for m in names if (self.boot / f"{m}.img").is_file()]

    def initramfs_images(self) -> List[Path]:
        if not self.boot.is_dir():
            return []
        return sorted(p for p in self.boot.glob("initramfs-*.img") if p.is_file())

    def default_entry(self) -> Optional[str]:
        text = files.read_text(self.loader_conf)
        if text is None:
            return None
        for line in text.splitlines():
            parts = line.split(maxsplit=1)
            if parts and parts[0] == "default":
                return parts[1].strip() if len(parts) > 1 else ""
        return None

    def set_default(self, name: str) -> None:
        text = files.read_text(self.loader_conf) or ""
        if text and not text.endswith("\n"):
            text += "\n"
        files.write_text(self.loader_conf, f"{text}default {name}\n")
