# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/system/commands.py

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

from ..pipeline.errors import CommandError, StepError

Cmd = Sequence[Union[str, Path]]

log = logging.getLogger("archconfigs")


@dataclass
class CommandRunner:
    """
    Blocking subprocess wrapper used by every collaborator.

    Output is always captured and written to the run log. A non-zero exit
    raises CommandError carrying the tool's stderr verbatim, unless
    check=False, in which case the caller inspects the returncode.
    """
    timeout: Optional[float] = None
    label: Optional[str] = None

    def run(
        self,
        cmd: Cmd,
        *,
        check: bool = True,
        input: Optional[str] = None,
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        label = self.label or "cmd"
        argv = [str(c) for c in cmd]
        cmd_str = " ".join(argv)

        log.debug(f"[{label}] $ {cmd_str}")
        start = time.time()

        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                input=input,
                cwd=str(cwd) if cwd else None,
                env=env,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            log.debug(f"[{label}] {argv[0]}: command not found")
            if check:
                raise CommandError(argv, 127, f"{argv[0]}: command not found")
            return subprocess.CompletedProcess(argv, 127, "", f"{argv[0]}: command not found")
        except subprocess.TimeoutExpired:
            raise StepError(f"[{label}] {cmd_str} timed out after {self.timeout}s")

        duration = time.time() - start

        if result.stdout:
            log.debug(f"[{label}][stdout]\n{result.stdout.rstrip()}")
        if result.stderr:
            log.debug(f"[{label}][stderr]\n{result.stderr.rstrip()}")
        log.debug(f"[{label}][exit {result.returncode}] ({duration:.2f}s)")

        if check and result.returncode != 0:
            raise CommandError(argv, result.returncode, result.stderr, result.stdout)

        return result

    def succeeds(self, cmd: Cmd) -> bool:
        return self.run(cmd, check=False).returncode == 0

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)
