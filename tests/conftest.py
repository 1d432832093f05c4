# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

import subprocess
from typing import Callable, List, Optional, Tuple

import pytest

from archconfigs.pipeline.errors import CommandError
from archconfigs.system.commands import CommandRunner


class FakeRunner(CommandRunner):
    """
    Records every argv instead of executing it. Handlers match on an argv
    prefix; the most recently registered match wins. A handler function
    may return (rc, stdout) or None for rc=0 with no output.
    """

    def __init__(self, tools=()):
        super().__init__()
        self.calls: List[List[str]] = []
        self.handlers: List[Tuple[List[str], Callable]] = []
        self.tools = set(tools)

    def on(self, *prefix: str, rc: int = 0, stdout: str = "", fn: Optional[Callable] = None):
        def _default(argv):
            return rc, stdout
        self.handlers.insert(0, (list(prefix), fn or _default))
        return self

    def run(self, cmd, *, check=True, input=None, cwd=None, env=None):
        argv = [str(c) for c in cmd]
        self.calls.append(argv)
        rc, out = 0, ""
        for prefix, fn in self.handlers:
            if argv[: len(prefix)] == prefix:
                res = fn(argv)
                if res is not None:
                    rc, out = res
                break
        if check and rc != 0:
            raise CommandError(argv, rc, "boom", out)
        return subprocess.CompletedProcess(argv, rc, out, "" if rc == 0 else "boom")

    def which(self, name):
        return f"/usr/bin/{name}" if name in self.tools else None

    def ran(self, *prefix: str) -> bool:
        return any(c[: len(prefix)] == list(prefix) for c in self.calls)

    def find(self, word: str) -> List[List[str]]:
        return [c for c in self.calls if word in c]


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)

    def kinds(self):
        return [e.__class__.__name__ for e in self.events]


class FakeResponse:
    def __init__(self, text="", status=200):
        self.text = text
        self.status_code = status

    def raise_for_status(self):
        import requests
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, responses=None, error=None):
        self.responses = responses or {}
        self.error = error
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.responses.get(url, FakeResponse(status=404))


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def capture():
    return Capture()
