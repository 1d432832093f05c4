import pytest

from archconfigs.observers.dispatcher import EventBus
from archconfigs.observers.events import PlanComputed, PlanFailed
from archconfigs.pipeline.models import ActionTaken, ProbeResult, Step
from archconfigs.pipeline.planner import (
    DependencyOrderError,
    DuplicateStepError,
    UnknownDependencyError,
    plan,
)

from conftest import Capture


def _step(sid, *deps):
    return Step(sid, lambda ctx: ProbeResult.correct(), lambda ctx, r: ActionTaken.SKIPPED, depends_on=list(deps))


def test_plan_keeps_order_and_emits_event():
    cap = Capture()
    steps = [_step("a"), _step("c", "a"), _step("b", "a", "c")]
    ordered = plan(steps, bus=EventBus([cap]))
    assert [s.id for s in ordered] == ["a", "c", "b"]
    pc = next(e for e in cap.events if isinstance(e, PlanComputed))
    assert pc.order == ["a", "c", "b"]


def test_plan_never_sorts_a_dependency_into_place():
    cap = Capture()
    with pytest.raises(DependencyOrderError):
        plan([_step("b", "a"), _step("a")], bus=EventBus([cap]))
    pf = next(e for e in cap.events if isinstance(e, PlanFailed))
    assert "runs before its dependency 'a'" in pf.error


def test_plan_unknown_dependency():
    with pytest.raises(UnknownDependencyError):
        plan([_step("x", "missing")])


def test_plan_duplicate_ids():
    with pytest.raises(DuplicateStepError):
        plan([_step("x"), _step("x")])


def test_self_dependency_is_an_order_error():
    with pytest.raises(DependencyOrderError):
        plan([_step("x", "x")])
