"""
Signal package exports.

The signal store keeps a rolling window of metrics, logs, traces, deployment
events and alarms keyed by service and time, feeding the correlator.
"""

from engine.signals.models import Signal, Trigger
from engine.signals.store import RejectedSignal, SignalStore

__all__ = ["Signal", "Trigger", "SignalStore", "RejectedSignal"]
