# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/system/files.py
from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..pipeline.errors import StepError

log = logging.getLogger("archconfigs")


def read_text(path: Path) -> Optional[str]:
    """File contents, or None when the file (or any parent) is missing."""
    try:
        return path.read_text(encoding="utf-8")
    except (FileNotFoundError, NotADirectoryError):
        return None
    except UnicodeDecodeError as e:
        raise StepError(f"cannot decode {path} as UTF-8: {e}") from e


def backup_path(path: Path, now: Optional[datetime] = None) -> Path:
    stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    candidate = path.with_name(f"{path.name}.backup.{stamp}")
    n = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.name}.backup.{stamp}.{n}")
        n += 1
    return candidate


def backup(path: Path) -> Optional[Path]:
    """Copy *path* next to itself with a timestamp suffix. No-op if it does not exist."""
    if not path.exists():
        return None
    dest = backup_path(path)
    shutil.copy2(path, dest)
    log.info(f"Backed up {path} -> {dest.name}")
    return dest


def write_text(path: Path, content: str, *, mode: Optional[int] = None, keep_backup: bool = True) -> Optional[Path]:
    """
    Replace *path* with *content*. An existing file is backed up first.
    The write goes through a temp file + rename so a crash never leaves a
    truncated config behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    saved = backup(path) if keep_backup else None

    tmp = path.with_name(f".{path.name}.archconfigs-tmp")
    tmp.write_text(content, encoding="utf-8")
    if mode is not None:
        os.chmod(tmp, mode)
    elif path.exists():
        shutil.copymode(path, tmp)
    os.replace(tmp, path)
    return saved


def file_mode(path: Path) -> Optional[int]:
    try:
        return path.stat().st_mode & 0o7777
    except FileNotFoundError:
        return None
