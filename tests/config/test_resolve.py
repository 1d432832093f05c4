from pathlib import Path

import pytest

from archconfigs.config.loader import load_profile
from archconfigs.config.resolve import detect_pool, resolve_context
from archconfigs.pipeline.errors import FatalPrecondition
from archconfigs.system.hostinfo import HostInfo
from archconfigs.system.prompt import AnswerAll, Prompter
from archconfigs.system.zfs import ZfsClient

from conftest import FakeRunner

PROFILE = load_profile()


class StubHost(HostInfo):
    def __init__(self, regular_user=None):
        super().__init__(Path("/"))
        self.regular_user = regular_user

    def user_home(self, user):
        return Path("/home") / user

    def first_regular_user(self):
        return self.regular_user


class ScriptedPrompter(Prompter):
    def __init__(self, answer):
        self.answer = answer
        self.asked = []

    def ask(self, text, default=None):
        self.asked.append(text)
        return self.answer


def _resolve(pipeline, *, cli=None, env=None, runner=None, host=None, prompter=None):
    return resolve_context(
        pipeline,
        profile=PROFILE,
        cli=cli or {},
        host=host or StubHost(),
        zfs=ZfsClient(runner or FakeRunner()),
        prompter=prompter or AnswerAll(),
        env=env or {},
    )


def test_defaults():
    ctx = _resolve("preinstall")
    assert ctx.pool_name == "zroot"
    assert ctx.disk == "/dev/nvme0n1"
    assert ctx.root_dataset_name == "zroot/ROOT/arch"
    assert ctx.github_user == "danielbodnar"
    assert ctx.efi_partition == "/dev/nvme0n1p1"
    assert not ctx.assume_yes and not ctx.dry_run


def test_cli_beats_environment():
    env = {"ZFS_POOL_NAME": "envpool", "ZFS_DISK": "/dev/sda", "GITHUB_SSH_USER": "envuser"}
    ctx = _resolve("preinstall", cli={"pool": "tank", "github_user": "octocat"}, env=env)
    assert ctx.pool_name == "tank"
    assert ctx.github_user == "octocat"
    assert ctx.disk == "/dev/sda"
    assert ctx.zfs_partition == "/dev/sda2"


def test_assume_yes_from_environment():
    assert _resolve("preinstall", env={"ARCHCONFIGS_ASSUME_YES": "Yes"}).assume_yes
    assert not _resolve("preinstall", env={"ARCHCONFIGS_ASSUME_YES": "0"}).assume_yes


def test_postinstall_detects_pool_from_bootfs():
    runner = FakeRunner()
    runner.on("zpool", "get", stdout="-\nrpool/ROOT/default\n")
    ctx = _resolve("postinstall", runner=runner)
    assert ctx.pool_name == "rpool"
    assert ctx.root_dataset_name == "rpool/ROOT/default"


def test_postinstall_falls_back_to_first_imported_pool():
    runner = FakeRunner()
    runner.on("zpool", "get", stdout="-\n")
    runner.on("zpool", "list", stdout="data\nbackup\n")
    assert detect_pool(ZfsClient(runner)) == ("data", None)


def test_postinstall_prompts_when_nothing_is_imported():
    runner = FakeRunner()
    runner.on("zpool", rc=1)
    prompter = ScriptedPrompter("tank ")
    ctx = _resolve("postinstall", runner=runner, prompter=prompter)
    assert prompter.asked == ["Enter your ZFS pool name"]
    assert ctx.pool_name == "tank"


def test_postinstall_empty_pool_answer_is_fatal():
    runner = FakeRunner()
    runner.on("zpool", rc=1)
    with pytest.raises(FatalPrecondition) as exc:
        _resolve("postinstall", runner=runner, prompter=ScriptedPrompter(""))
    assert exc.value.message == "Pool name is required"


def test_postinstall_given_pool_reads_its_bootfs():
    runner = FakeRunner()
    runner.on("zpool", "get", stdout="tank/ROOT/arch\n")
    ctx = _resolve("postinstall", cli={"pool": "tank"}, runner=runner)
    assert ctx.root_dataset_name == "tank/ROOT/arch"
    assert runner.ran("zpool", "get", "-H", "-o", "value", "bootfs", "tank")


def test_hyprland_user_from_sudo_then_uid_1000():
    ctx = _resolve("hyprland", env={"SUDO_USER": "alice"}, host=StubHost("bob"))
    assert ctx.target_user == "alice"
    assert ctx.target_home == Path("/home/alice")

    ctx = _resolve("hyprland", host=StubHost("bob"))
    assert ctx.target_user == "bob"

    ctx = _resolve("hyprland", cli={"user": "carol"}, env={"SUDO_USER": "alice"})
    assert ctx.target_user == "carol"


def test_hyprland_without_any_user():
    ctx = _resolve("hyprland")
    assert ctx.target_user is None
    assert ctx.target_home is None


def test_paru_uses_invoking_user_and_home():
    ctx = _resolve("paru", env={"USER": "dana"}, cli={"build_dir": "/var/tmp/paru"})
    assert ctx.target_user == "dana"
    assert ctx.target_home == Path.home()
    assert ctx.build_dir == Path("/var/tmp/paru")
