# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/system/keys.py

from __future__ import annotations

import logging
from typing import Optional

import requests

from ..pipeline.errors import CollaboratorError, StepError

log = logging.getLogger("archconfigs")


class KeyFetcher:
    """
    Remote fetches over HTTPS:
      - public SSH keys published for a GitHub account (optional, non-fatal)
      - bootstrap scripts such as archiso-zfs/init (required)
    """

    def __init__(self, *, session: Optional[requests.Session] = None, timeout: float = 30):
        self.session = session or requests.Session()
        self.timeout = timeout

    def github_keys(self, user: str) -> str:
        url = f"https://github.com/{user}.keys"
        try:
            r = self.session.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise CollaboratorError(f"Failed to fetch SSH keys from {url}: {e}") from e

        if not r.text.strip():
            raise CollaboratorError(f"No SSH keys published at {url}")
        return r.text if r.text.endswith("\n") else r.text + "\n"

    def script(self, url: str) -> str:
        try:
            r = self.session.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise StepError(f"Failed to download {url}: {e}") from e
        return r.text
