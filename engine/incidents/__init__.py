from engine.incidents.models import Incident, RootCauseHypothesis, StateChange

__all__ = ["Incident", "RootCauseHypothesis", "StateChange"]
