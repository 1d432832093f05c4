from pathlib import Path

import pytest

from archconfigs.config.loader import load_profile
from archconfigs.config.models import RunContext
from archconfigs.pipeline.errors import StepFailure
from archconfigs.pipeline.models import ActionTaken
from archconfigs.pipeline.runner import PipelineRunner
from archconfigs.steps import paru
from archconfigs.steps.common import Toolkit

from conftest import FakeRunner


def _no_prompt(question):
    raise AssertionError(question)


class FakeUserHost:
    def __init__(self):
        self.installed = set()
        self.toolchain = False
        self.runner = FakeRunner(tools=["sudo", "git"])
        r = self.runner
        r.on("pacman", "-T", fn=self._pacman_t)
        r.on("sudo", "pacman", "-S", fn=lambda argv: self.installed.update(argv[4:]))
        r.on("rustup", "show", fn=lambda argv: (0 if self.toolchain else 1, ""))
        r.on("rustup", "default", fn=self._rustup_default)
        r.on("makepkg", fn=lambda argv: self.runner.tools.add("paru"))
        r.on("paru", "--version", stdout="paru v2.0.4\n")

    def _pacman_t(self, argv):
        missing = [p for p in argv[2:] if p not in self.installed]
        return (127, "\n".join(missing)) if missing else (0, "")

    def _rustup_default(self, argv):
        self.toolchain = True


def _run(host: FakeUserHost, tmp_path: Path):
    ctx = RunContext(
        pipeline="paru",
        profile=load_profile(),
        target_home=tmp_path / "home",
        build_dir=tmp_path / "paru-build",
    )
    kit = Toolkit.for_context(ctx, runner=host.runner, sudo=True)
    return PipelineRunner(ctx, confirm=_no_prompt).run(paru.build_steps(ctx, kit))


def test_paru_is_built_once(tmp_path: Path):
    host = FakeUserHost()
    report = _run(host, tmp_path)

    assert report.step_ids() == ["build-deps", "rust-toolchain", "paru-binary", "paru-config"]
    assert [o.action for o in report.outcomes] == [ActionTaken.CREATED] * 4

    assert host.runner.ran("sudo", "pacman", "-S", "--needed", "--noconfirm", "base-devel", "git", "rustup")
    assert host.runner.ran("rustup", "default", "stable")
    assert host.runner.ran("git", "clone", "https://aur.archlinux.org/paru.git", str(tmp_path / "paru-build"))
    assert host.runner.ran("makepkg", "-si", "--noconfirm")
    assert not (tmp_path / "paru-build").exists()

    conf = (tmp_path / "home/.config/paru/paru.conf").read_text()
    assert f"BuildDir = {tmp_path / 'paru-build'}" in conf
    assert "CleanAfter" in conf

    second = _run(host, tmp_path)
    assert [o.action for o in second.outcomes] == [ActionTaken.SKIPPED] * 4
    assert len(host.runner.find("makepkg")) == 1


def test_failed_build_cleans_up_and_stops(tmp_path: Path):
    host = FakeUserHost()
    host.runner.on("makepkg", rc=1)

    with pytest.raises(StepFailure) as exc:
        _run(host, tmp_path)

    assert exc.value.step_id == "paru-binary"
    assert exc.value.report.step_ids() == ["build-deps", "rust-toolchain"]
    assert not (tmp_path / "paru-build").exists()
    assert not (tmp_path / "home/.config/paru/paru.conf").exists()
