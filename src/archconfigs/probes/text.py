# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/probes/text.py
from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Tuple

from ..pipeline.errors import StepError
from ..pipeline.models import ProbeResult
from .tokens import (
    insert_before,
    is_before,
    parse_array,
    prepend,
    replace_array,
    starts_with,
    without,
)


# ---------------------------------------------------------------------
# Token arrays (mkinitcpio HOOKS / MODULES)
# ---------------------------------------------------------------------

def classify_insert_before(
    text: str,
    key: str,
    token: str,
    anchor: str,
    remove: Sequence[str] = (),
) -> ProbeResult:
    array = parse_array(text, key)
    if array is None:
        return ProbeResult.incorrect(f"no {key} array")

    tokens = array.tokens
    leftovers = [t for t in remove if t in tokens]
    if token not in tokens:
        return ProbeResult.absent(f"{key} lacks '{token}'")
    if not is_before(tokens, token, anchor):
        return ProbeResult.incorrect(f"'{token}' is not immediately before '{anchor}': {' '.join(tokens)}")
    if leftovers:
        return ProbeResult.incorrect(f"{key} still contains {', '.join(leftovers)}")
    return ProbeResult.correct()


def rewrite_insert_before(
    text: str,
    key: str,
    token: str,
    anchor: str,
    remove: Sequence[str] = (),
) -> str:
    array = parse_array(text, key)
    if array is None:
        raise StepError(f"No {key}=(...) line found; refusing to guess where it belongs")
    tokens = insert_before(without(array.tokens, *remove), token, anchor)
    return replace_array(text, array, tokens)


def classify_prefix(text: str, key: str, sequence: Sequence[str]) -> ProbeResult:
    array = parse_array(text, key)
    if array is None:
        return ProbeResult.absent(f"no {key} array")
    tokens = array.tokens
    if starts_with(tokens, sequence):
        return ProbeResult.correct()
    if not any(t in tokens for t in sequence):
        return ProbeResult.absent(f"{key} lacks {' '.join(sequence)}")
    return ProbeResult.incorrect(f"{key} does not start with {' '.join(sequence)}: {' '.join(tokens)}")


def rewrite_prefix(text: str, key: str, sequence: Sequence[str]) -> str:
    array = parse_array(text, key)
    if array is None:
        sep = "" if not text or text.endswith("\n") else "\n"
        return f"{text}{sep}{key}=({' '.join(sequence)})\n"
    return replace_array(text, array, prepend(array.tokens, sequence))


# ---------------------------------------------------------------------
# Sectioned key = value files (bluetooth main.conf)
# ---------------------------------------------------------------------

_SECTION = re.compile(r"^\s*\[(?P<name>[^\]]+)\]\s*$")


def _section_bounds(lines: List[str], section: str) -> Optional[Tuple[int, int]]:
    start = None
    for i, line in enumerate(lines):
        m = _SECTION.match(line)
        if not m:
            continue
        if start is not None:
            return start, i
        if m.group("name").strip() == section:
            start = i
    return (start, len(lines)) if start is not None else None


def _find_key(lines: List[str], lo: int, hi: int, key: str) -> Tuple[Optional[int], Optional[int]]:
    active = re.compile(rf"^\s*{re.escape(key)}\s*=")
    commented = re.compile(rf"^\s*#\s*{re.escape(key)}\s*=")
    a = c = None
    for i in range(lo, hi):
        if a is None and active.match(lines[i]):
            a = i
        elif c is None and commented.match(lines[i]):
            c = i
    return a, c


def _value(line: str) -> str:
    return line.split("=", 1)[1].strip()


def classify_settings(text: Optional[str], settings: Dict[str, Dict[str, str]]) -> ProbeResult:
    if text is None:
        return ProbeResult.absent("file missing")
    lines = text.splitlines()
    wrong: List[str] = []
    for section, values in settings.items():
        bounds = _section_bounds(lines, section)
        for key, want in values.items():
            if bounds is None:
                wrong.append(f"{section}.{key}")
                continue
            active, _ = _find_key(lines, bounds[0] + 1, bounds[1], key)
            if active is None or _value(lines[active]) != want:
                wrong.append(f"{section}.{key}")
    if wrong:
        return ProbeResult.incorrect("unset or different: " + ", ".join(wrong))
    return ProbeResult.correct()


def apply_settings(text: Optional[str], settings: Dict[str, Dict[str, str]]) -> str:
    """
    Set each key inside its section: an active line is rewritten, else the
    first commented-out default is uncommented, else the key is added
    right after the section header. Missing sections are appended.
    """
    lines = (text or "").splitlines()
    for section, values in settings.items():
        for key, want in values.items():
            bounds = _section_bounds(lines, section)
            if bounds is None:
                if lines and lines[-1].strip():
                    lines.append("")
                lines.append(f"[{section}]")
                bounds = (len(lines) - 1, len(lines))
            active, commented = _find_key(lines, bounds[0] + 1, bounds[1], key)
            new_line = f"{key} = {want}"
            if active is not None:
                lines[active] = new_line
            elif commented is not None:
                lines[commented] = new_line
            else:
                lines.insert(bounds[0] + 1, new_line)
    return "\n".join(lines) + "\n"
