import pytest

from archconfigs.config.models import RunContext
from archconfigs.observers.events import RunSummary, StepFailed, StepWarned
from archconfigs.pipeline.errors import CollaboratorError, OperatorDeclined, StepError, StepFailure
from archconfigs.pipeline.models import ActionTaken, ProbeResult, Step
from archconfigs.pipeline.planner import DependencyOrderError
from archconfigs.pipeline.runner import PipelineRunner

from conftest import Capture


class World:
    """In-memory resources: a step's resource exists once its apply ran."""

    def __init__(self):
        self.present = set()
        self.applied = []
        self.probed = []

    def step(self, sid, *, fail=None, depends_on=(), **kw):
        def probe(ctx):
            self.probed.append(sid)
            return ProbeResult.correct() if sid in self.present else ProbeResult.absent()

        def apply(ctx, result):
            self.applied.append(sid)
            if fail is not None:
                raise fail
            self.present.add(sid)
            return ActionTaken.CREATED

        return Step(sid, probe, apply, description=f"step {sid}", depends_on=list(depends_on), **kw)


def never_confirm(question):
    raise AssertionError(f"unexpected prompt: {question}")


def _ctx(**kw):
    return RunContext(pipeline="test", **kw)


def test_first_run_creates_then_second_run_skips_everything():
    w = World()
    steps = [w.step("a"), w.step("b", depends_on=["a"]), w.step("c")]

    first = PipelineRunner(_ctx(), confirm=never_confirm).run(steps)
    assert [o.action for o in first.outcomes] == [ActionTaken.CREATED] * 3
    assert w.applied == ["a", "b", "c"]

    second = PipelineRunner(_ctx(), confirm=never_confirm).run(steps)
    assert [o.action for o in second.outcomes] == [ActionTaken.SKIPPED] * 3
    assert w.applied == ["a", "b", "c"]
    assert second.summary() == "CREATED=0 MODIFIED=0 SKIPPED=3 WARNED=0"


def test_steps_are_visited_in_the_given_order():
    w = World()
    ids = ["zeta", "alpha", "mid", "beta"]
    report = PipelineRunner(_ctx(), confirm=never_confirm).run([w.step(i) for i in ids])
    assert report.step_ids() == ids


def test_failure_at_step_three_of_five_stops_the_run():
    w = World()
    cap = Capture()
    steps = [
        w.step("s1"),
        w.step("s2"),
        w.step("s3", fail=StepError("parted: device busy")),
        w.step("s4"),
        w.step("s5"),
    ]

    with pytest.raises(StepFailure) as exc:
        PipelineRunner(_ctx(), confirm=never_confirm, observers=[cap]).run(steps)

    err = exc.value
    assert err.step_id == "s3"
    assert "parted: device busy" in str(err)
    assert err.report.step_ids() == ["s1", "s2"]
    assert "s4" not in w.probed and "s5" not in w.probed
    assert w.present == {"s1", "s2"}

    failed = next(e for e in cap.events if isinstance(e, StepFailed))
    assert failed.name == "s3"
    summary = next(e for e in cap.events if isinstance(e, RunSummary))
    assert summary.status == "FAILED" and summary.failed_step == "s3"


def test_declined_destructive_step_aborts_before_any_mutation():
    w = World()
    steps = [w.step("prep"), w.step("wipe", destructive=True), w.step("after")]
    asked = []

    def decline(question):
        asked.append(question)
        return False

    with pytest.raises(OperatorDeclined):
        PipelineRunner(_ctx(), confirm=decline).run(steps)

    assert len(asked) == 1 and "step wipe" in asked[0]
    assert w.applied == []


def test_assume_yes_skips_destructive_prompt():
    w = World()
    steps = [w.step("wipe", destructive=True)]
    report = PipelineRunner(_ctx(assume_yes=True), confirm=never_confirm).run(steps)
    assert report.outcomes[0].action is ActionTaken.CREATED


def test_satisfied_destructive_step_is_not_confirmed():
    w = World()
    w.present.add("wipe")
    report = PipelineRunner(_ctx(), confirm=never_confirm).run([w.step("wipe", destructive=True)])
    assert report.outcomes[0].action is ActionTaken.SKIPPED


def test_optional_step_collaborator_failure_is_a_warning():
    w = World()
    cap = Capture()
    steps = [
        w.step("a"),
        w.step("keys", fail=CollaboratorError("github unreachable"), optional=True),
        w.step("b"),
    ]
    report = PipelineRunner(_ctx(), confirm=never_confirm, observers=[cap]).run(steps)

    assert [o.action for o in report.outcomes] == [ActionTaken.CREATED, ActionTaken.WARNED, ActionTaken.CREATED]
    assert "github unreachable" in report.outcomes[1].detail
    assert any(isinstance(e, StepWarned) for e in cap.events)


def test_collaborator_failure_on_required_step_fails_the_run():
    w = World()
    steps = [w.step("keys", fail=CollaboratorError("github unreachable"))]
    with pytest.raises(StepFailure) as exc:
        PipelineRunner(_ctx(), confirm=never_confirm).run(steps)
    assert exc.value.step_id == "keys"


def test_dry_run_probes_but_never_applies():
    w = World()
    w.present.add("done")
    steps = [w.step("done"), w.step("todo"), w.step("wipe", destructive=True)]
    report = PipelineRunner(_ctx(dry_run=True), confirm=never_confirm).run(steps)

    assert [o.action for o in report.outcomes] == [ActionTaken.SKIPPED, ActionTaken.PLANNED, ActionTaken.PLANNED]
    assert w.applied == []


def test_apply_that_does_not_converge_fails_the_step():
    def probe(ctx):
        return ProbeResult.incorrect("still wrong")

    def apply(ctx, result):
        return ActionTaken.MODIFIED

    with pytest.raises(StepFailure) as exc:
        PipelineRunner(_ctx(), confirm=never_confirm).run([Step("stuck", probe, apply)])
    assert "still wrong" in exc.value.message


def test_unskippable_step_always_applies():
    calls = []

    def probe(ctx):
        return ProbeResult.correct()

    def apply(ctx, result):
        calls.append(1)
        return ActionTaken.MODIFIED

    step = Step("always", probe, apply, skip_when_satisfied=False)
    PipelineRunner(_ctx(), confirm=never_confirm).run([step])
    PipelineRunner(_ctx(), confirm=never_confirm).run([step])
    assert len(calls) == 2


def test_bad_order_is_rejected_before_anything_runs():
    w = World()
    steps = [w.step("b", depends_on=["a"]), w.step("a")]
    with pytest.raises(DependencyOrderError):
        PipelineRunner(_ctx(), confirm=never_confirm).run(steps)
    assert w.probed == []


def test_destructive_step_timeout_fails_before_any_prompt():
    w = World()
    cap = Capture()

    def probe(ctx):
        raise StepError("lsblk timed out after 5s")

    steps = [w.step("prep"), Step("wipe", probe, lambda ctx, r: ActionTaken.CREATED, destructive=True)]

    with pytest.raises(StepFailure) as exc:
        PipelineRunner(_ctx(), confirm=never_confirm, observers=[cap]).run(steps)

    assert exc.value.step_id == "wipe"
    assert "lsblk timed out" in exc.value.message
    assert w.applied == []
    failed = next(e for e in cap.events if isinstance(e, StepFailed))
    assert failed.name == "wipe"
    summary = next(e for e in cap.events if isinstance(e, RunSummary))
    assert summary.status == "FAILED" and summary.failed_step == "wipe"


def test_value_error_from_a_step_is_a_step_failure():
    w = World()
    cap = Capture()
    steps = [w.step("a"), w.step("parse", fail=ValueError("Expecting value: line 1 column 1")), w.step("b")]

    with pytest.raises(StepFailure) as exc:
        PipelineRunner(_ctx(), confirm=never_confirm, observers=[cap]).run(steps)

    assert exc.value.step_id == "parse"
    assert exc.value.report.step_ids() == ["a"]
    assert "b" not in w.probed
    assert cap.kinds()[-2:] == ["StepFailed", "RunSummary"]
