import pytest

from engine.enums import IncidentState, Severity, SignalKind
from engine.exceptions import InvalidTransitionError
from engine.incidents.models import Incident
from helpers import T0, sig


def _incident():
    return Incident(trigger_signal=sig("alarm", "svc", SignalKind.alarm, ts=T0, severity=Severity.high))


def test_happy_path_records_history_and_closes():
    incident = _incident()
    incident.transition(IncidentState.diagnosed, at=T0 + 1)
    incident.transition(IncidentState.mitigating, note="rolling back", at=T0 + 2)
    incident.transition(IncidentState.resolved, at=T0 + 3)

    assert incident.is_closed
    assert incident.closed_at == T0 + 3
    assert [c.current for c in incident.history] == [
        IncidentState.diagnosed, IncidentState.mitigating, IncidentState.resolved,
    ]
    assert incident.history[1].note == "rolling back"
    assert "rolling back" in incident.notes


@pytest.mark.parametrize("start, target", [
    (IncidentState.open, IncidentState.resolved),
    (IncidentState.open, IncidentState.escalated),
    (IncidentState.diagnosed, IncidentState.escalated),
    (IncidentState.mitigating, IncidentState.escalated),
])
def test_shortcut_transitions_allowed(start, target):
    incident = _incident()
    incident.state = start
    incident.transition(target)
    assert incident.state is target


@pytest.mark.parametrize("start, target", [
    (IncidentState.open, IncidentState.mitigating),
    (IncidentState.mitigating, IncidentState.diagnosed),
    (IncidentState.resolved, IncidentState.open),
    (IncidentState.escalated, IncidentState.resolved),
    (IncidentState.diagnosed, IncidentState.diagnosed),
])
def test_illegal_transitions_raise(start, target):
    incident = _incident()
    incident.state = start
    with pytest.raises(InvalidTransitionError):
        incident.transition(target)
    assert incident.state is start
    assert incident.history == []


def test_discard_work_clears_candidates_and_hypotheses():
    incident = _incident()
    incident.candidate_signals = [sig("a", "svc")]
    incident.discard_work("superseded")
    assert incident.candidate_signals == []
    assert incident.ranked_causes == []
    assert incident.notes == ["superseded"]
