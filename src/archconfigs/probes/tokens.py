# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/probes/tokens.py

"""
Structured view of shell-array config lines such as

    HOOKS=(base udev autodetect modconf block filesystems keyboard fsck)
    MODULES=()

mkinitcpio.conf is sourced by bash, so the old quoted form
``HOOKS="base udev ..."`` is accepted too and written back the same way.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

_ARRAY_RE = r"^(?P<indent>\s*){key}=(?:\((?P<paren>[^)]*)\)|\"(?P<quoted>[^\"]*)\")(?P<trailer>\s*(?:#.*)?)$"


@dataclass
class TokenList:
    key: str
    tokens: List[str] = field(default_factory=list)
    line_index: int = -1
    quoted: bool = False
    indent: str = ""
    trailer: str = ""

    def render(self, tokens: Optional[Sequence[str]] = None) -> str:
        body = " ".join(self.tokens if tokens is None else tokens)
        value = f'"{body}"' if self.quoted else f"({body})"
        return f"{self.indent}{self.key}={value}{self.trailer}"


def parse_array(text: str, key: str) -> Optional[TokenList]:
    """Last active `KEY=(...)` line wins, the same way bash would see it."""
    pattern = re.compile(_ARRAY_RE.format(key=re.escape(key)))
    found: Optional[TokenList] = None
    for i, line in enumerate(text.splitlines()):
        m = pattern.match(line)
        if not m:
            continue
        quoted = m.group("quoted") is not None
        body = m.group("quoted") if quoted else m.group("paren")
        found = TokenList(
            key=key,
            tokens=body.split(),
            line_index=i,
            quoted=quoted,
            indent=m.group("indent"),
            trailer=m.group("trailer") or "",
        )
    return found


def replace_array(text: str, array: TokenList, tokens: Sequence[str]) -> str:
    lines = text.splitlines()
    lines[array.line_index] = array.render(tokens)
    out = "\n".join(lines)
    return out + "\n" if text.endswith("\n") else out


# ------------------ list operations ------------------

def without(tokens: Sequence[str], *drop: str) -> List[str]:
    return [t for t in tokens if t not in drop]


def insert_before(tokens: Sequence[str], token: str, anchor: str) -> List[str]:
    """
    Place exactly one *token* immediately before the first *anchor*.
    Without an anchor the token goes last.
    """
    rest = without(tokens, token)
    if anchor in rest:
        i = rest.index(anchor)
        return rest[:i] + [token] + rest[i:]
    return rest + [token]


def is_before(tokens: Sequence[str], token: str, anchor: str) -> bool:
    if tokens.count(token) != 1:
        return False
    if anchor not in tokens:
        return True
    i = tokens.index(token)
    return i + 1 < len(tokens) and tokens[i + 1] == anchor


def prepend(tokens: Sequence[str], sequence: Sequence[str]) -> List[str]:
    """*sequence* first, in order, then everything else without duplicates of it."""
    return list(sequence) + without(tokens, *sequence)


def starts_with(tokens: Sequence[str], sequence: Sequence[str]) -> bool:
    return list(tokens[: len(sequence)]) == list(sequence) and all(
        tokens.count(t) == 1 for t in sequence
    )
