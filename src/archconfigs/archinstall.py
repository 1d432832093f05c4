# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/archinstall.py

"""
Helpers for the archinstall JSON configuration files kept in the
repository's `archinstall/` directory.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

REQUIRED_FILES = ["user_configuration.json", "user_credentials.json"]
RAW_BASE = "https://raw.githubusercontent.com"


@dataclass
class ValidationReport:
    present: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    valid: List[Path] = field(default_factory=list)
    invalid: List[Tuple[Path, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.invalid

    def lines(self) -> List[str]:
        out = ["=== Checking required files ==="]
        out += [f"✓ {name} exists" for name in self.present]
        out += [f"✗ {name} missing" for name in self.missing]
        out += ["", "=== Validating JSON syntax ==="]
        out += [f"✓ {p} - Valid JSON syntax" for p in self.valid]
        out += [f"✗ {p} - Invalid JSON syntax ({err})" for p, err in self.invalid]
        out.append("")
        if self.ok:
            out.append("All configurations are valid!")
        else:
            out.append("Some configurations have errors. Please fix them before use.")
        return out


def validate_configs(config_dir: Path) -> ValidationReport:
    report = ValidationReport()
    for name in REQUIRED_FILES:
        (report.present if (config_dir / name).is_file() else report.missing).append(name)

    for path in sorted(config_dir.glob("*.json")):
        try:
            json.loads(path.read_text(encoding="utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            report.invalid.append((path, str(e)))
        else:
            report.valid.append(path)
    return report


def base_url(user: str, repo: str = "archconfigs", branch: str = "main") -> str:
    return f"{RAW_BASE}/{user}/{repo}/{branch}/archinstall"


def config_urls(user: str, repo: str = "archconfigs", branch: str = "main") -> str:
    base = base_url(user, repo, branch)
    return "\n".join([
        "=== Archinstall Configuration URLs ===",
        "",
        "User Configuration:",
        f"  {base}/user_configuration.json",
        "",
        "User Credentials:",
        f"  {base}/user_credentials.json",
        "",
        "Disk Layout:",
        f"  {base}/user_disk_layout.json",
        "",
        "=== Usage with archinstall ===",
        "",
        "Boot into Arch Linux ISO and run:",
        "",
        f"  archinstall --config {base}/user_configuration.json \\",
        f"              --creds {base}/user_credentials.json \\",
        f"              --disk_layouts {base}/user_disk_layout.json",
        "",
        "Or use kernel parameters for netboot:",
        "",
        f"  archinstall-config={base}/user_configuration.json",
        f"  archinstall-creds={base}/user_credentials.json",
        "",
    ])
