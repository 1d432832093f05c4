# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/config/loader.py

import logging
import os
import re
import yaml
from pathlib import Path
from typing import Optional
from .models import Profile

log = logging.getLogger("archconfigs")

DEFAULT_PROFILE = Path(__file__).resolve().parent.parent / "profiles" / "xps9500.yaml"


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def expand_env_vars(value: str) -> str:
    # only ${VAR}; bare $repo/$arch belong to pacman
    return re.sub(r"\$\{([^}^{]+)\}", lambda m: os.getenv(m.group(1), m.group(0)), value)


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = expand_env_vars(raw)
    return yaml.safe_load(expanded) or {}


def load_profile(override: Optional[str | Path] = None, *, base: Path = DEFAULT_PROFILE) -> Profile:
    """
    Load the packaged machine profile and validate it.

    An override file (``--profile`` or ``ARCHCONFIGS_PROFILE``) only needs to
    carry the keys it changes; it is deep-merged over the packaged profile
    before Pydantic validation. Lists replace lists wholesale.

    ``${ENV_VAR}`` placeholders inside either file are expanded at load time.
    """
    data = _load_yaml(base)

    if override:
        override_path = Path(override)
        if not override_path.is_file():
            raise FileNotFoundError(f"Profile override not found: {override_path}")
        log.debug("Merging profile override from %s", override_path)
        _deep_merge(data, _load_yaml(override_path))
    else:
        log.debug("No profile override, using %s", base)

    return Profile.model_validate(data)
