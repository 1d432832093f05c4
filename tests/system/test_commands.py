import pytest

from archconfigs.pipeline.errors import CommandError
from archconfigs.system.commands import CommandRunner


def test_run_captures_output():
    cp = CommandRunner(label="t").run(["sh", "-c", "echo hello"])
    assert cp.returncode == 0
    assert cp.stdout == "hello\n"


def test_nonzero_exit_carries_stderr():
    with pytest.raises(CommandError) as exc:
        CommandRunner().run(["sh", "-c", "echo broken >&2; exit 3"])
    assert exc.value.returncode == 3
    assert "broken" in str(exc.value)


def test_missing_tool_is_rc_127():
    runner = CommandRunner()
    with pytest.raises(CommandError) as exc:
        runner.run(["archconfigs-no-such-tool"])
    assert exc.value.returncode == 127
    assert not runner.succeeds(["archconfigs-no-such-tool"])


def test_input_is_fed_to_stdin():
    cp = CommandRunner().run(["cat"], input="payload")
    assert cp.stdout == "payload"
