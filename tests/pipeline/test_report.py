import pytest

from archconfigs.config.models import RunContext
from archconfigs.pipeline.models import ActionTaken, RunReport, StepOutcome
from archconfigs.pipeline.report import FOLLOW_UP, render, substitute


def _report():
    r = RunReport()
    r.add(StepOutcome("mkinitcpio-hooks", ActionTaken.MODIFIED))
    r.add(StepOutcome("hostid", ActionTaken.SKIPPED))
    r.add(StepOutcome("zfs-cachefile", ActionTaken.WARNED, "pool not available"))
    return r


def test_pool_marker_is_substituted():
    ctx = RunContext(pipeline="postinstall")
    out = render(_report(), ctx, "Run: zpool export {pool}")
    assert "zpool export zroot" in out
    assert "{pool}" not in out


def test_listing_follows_execution_order():
    ctx = RunContext(pipeline="postinstall")
    out = render(_report(), ctx, "")
    lines = out.splitlines()
    assert lines[0] == "postinstall complete: CREATED=0 MODIFIED=1 SKIPPED=1 WARNED=1"
    ids = [line.split()[1] for line in lines[2:5]]
    assert ids == ["mkinitcpio-hooks", "hostid", "zfs-cachefile"]
    assert "(pool not available)" in lines[4]


@pytest.mark.parametrize("pipeline", sorted(FOLLOW_UP))
def test_follow_up_templates_leave_no_markers(pipeline):
    ctx = RunContext(pipeline=pipeline, pool_name="tank", target_user="alice")
    out = render(RunReport(), ctx, FOLLOW_UP[pipeline])
    assert "{" not in out and "}" not in out


def test_unknown_marker_is_an_error():
    with pytest.raises(KeyError):
        substitute("{nope}", {"pool": "zroot"})
