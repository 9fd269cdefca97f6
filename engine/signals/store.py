"""
In-process signal store: a per-service, time-ordered index of recent observability signals.

Writers serialise on a lock and publish a fresh index mapping on every change;
readers grab whatever mapping is current and iterate it without locking. Each
per-service sequence is an immutable tuple, so a query keeps iterating the
snapshot it started with even while ingestion and eviction continue.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import bisect
import dataclasses
import heapq
import logging
import math
import threading
import time
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from config import settings
from engine.enums import Severity, SignalKind
from engine.exceptions import InvalidSignalError, UpstreamUnavailableError
from engine.signals.models import Signal

log = logging.getLogger(__name__)

_Index = Dict[str, Tuple[Signal, ...]]


def _sort_key(signal: Signal) -> Tuple[float, str]:
    return (signal.timestamp, signal.id)


@dataclasses.dataclass(frozen=True)
class RejectedSignal:
    signal_id: str
    reason: str


class SignalStore:
    def __init__(
        self,
        retention_seconds: float | None = None,
        clock_skew_tolerance: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if retention_seconds is None:
            retention_seconds = settings.signal_retention_seconds
        if clock_skew_tolerance is None:
            clock_skew_tolerance = settings.clock_skew_tolerance_seconds
        self.retention_seconds = float(retention_seconds)
        self.clock_skew_tolerance = float(clock_skew_tolerance)
        self._clock = clock
        self._write_lock = threading.Lock()
        self._index: _Index = {}
        self._locations: Dict[str, str] = {}
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise UpstreamUnavailableError("signal store is closed")

    def _validate(self, signal: Signal) -> Signal:
        if not signal.id or not str(signal.id).strip():
            raise InvalidSignalError("signal id must be a non-empty string")
        if not signal.service or not str(signal.service).strip():
            raise InvalidSignalError(f"signal {signal.id} has no service")

        kind = signal.kind
        if not isinstance(kind, SignalKind):
            try:
                kind = SignalKind(kind)
            except ValueError:
                raise InvalidSignalError(f"signal {signal.id} has unrecognised kind {kind!r}") from None

        severity = signal.severity
        if not isinstance(severity, Severity):
            try:
                severity = Severity(severity)
            except ValueError:
                raise InvalidSignalError(f"signal {signal.id} has unrecognised severity {severity!r}") from None

        try:
            timestamp = float(signal.timestamp)
        except (TypeError, ValueError):
            raise InvalidSignalError(f"signal {signal.id} has a non-numeric timestamp") from None
        if not math.isfinite(timestamp):
            raise InvalidSignalError(f"signal {signal.id} has a non-finite timestamp")
        horizon = self._clock() + self.clock_skew_tolerance
        if timestamp > horizon:
            raise InvalidSignalError(
                f"signal {signal.id} is {timestamp - horizon:.1f}s beyond the clock-skew tolerance"
            )

        if kind is signal.kind and severity is signal.severity and timestamp == signal.timestamp:
            return signal
        return dataclasses.replace(signal, kind=kind, severity=severity, timestamp=timestamp)

    def ingest(self, signal: Signal) -> None:
        self._ensure_open()
        self._commit([self._validate(signal)])

    def ingest_many(self, signals: Iterable[Signal]) -> Tuple[int, List[RejectedSignal]]:
        self._ensure_open()
        accepted = 0
        batch: Dict[str, Signal] = {}
        rejected: List[RejectedSignal] = []
        for signal in signals:
            try:
                checked = self._validate(signal)
            except InvalidSignalError as exc:
                log.warning("Rejected signal %s: %s", getattr(signal, "id", "?"), exc)
                rejected.append(RejectedSignal(signal_id=str(getattr(signal, "id", "")), reason=str(exc)))
                continue
            # a repeated id later in the same batch replaces the earlier one
            batch.pop(checked.id, None)
            batch[checked.id] = checked
            accepted += 1
        if batch:
            self._commit(list(batch.values()))
        return accepted, rejected

    def _commit(self, batch: List[Signal]) -> None:
        """Merge validated signals with unique ids into the index and publish it once."""
        with self._write_lock:
            index = dict(self._index)

            replaced: Dict[str, Set[str]] = {}
            for signal in batch:
                previous_service = self._locations.get(signal.id)
                if previous_service is not None:
                    replaced.setdefault(previous_service, set()).add(signal.id)
            for service, ids in replaced.items():
                kept = tuple(s for s in index.get(service, ()) if s.id not in ids)
                if kept:
                    index[service] = kept
                else:
                    index.pop(service, None)

            incoming: Dict[str, List[Signal]] = {}
            for signal in batch:
                incoming.setdefault(signal.service, []).append(signal)
                self._locations[signal.id] = signal.service
            for service, fresh in incoming.items():
                fresh.sort(key=_sort_key)
                entries = index.get(service, ())
                if not entries or _sort_key(entries[-1]) < _sort_key(fresh[0]):
                    index[service] = entries + tuple(fresh)
                else:
                    index[service] = tuple(heapq.merge(entries, fresh, key=_sort_key))

            self._publish(index)

    def _publish(self, index: _Index) -> None:
        self._index = index

    def query(
        self,
        service: str,
        kinds: Optional[Iterable[SignalKind]] = None,
        start: float | None = None,
        end: float | None = None,
    ) -> Iterator[Signal]:
        self._ensure_open()
        # snapshot is taken here, not when the iterator is first advanced
        entries = self._index.get(service, ())
        kind_filter: Optional[Set[SignalKind]] = set(kinds) if kinds is not None else None
        return self._scan(entries, kind_filter, start, end)

    @staticmethod
    def _scan(
        entries: Tuple[Signal, ...],
        kind_filter: Optional[Set[SignalKind]],
        start: float | None,
        end: float | None,
    ) -> Iterator[Signal]:
        lo = 0 if start is None else bisect.bisect_left(entries, start, key=lambda s: s.timestamp)
        for signal in entries[lo:]:
            if end is not None and signal.timestamp > end:
                break
            if kind_filter is not None and signal.kind not in kind_filter:
                continue
            yield signal

    def evict_expired(self, now: float | None = None) -> int:
        self._ensure_open()
        if now is None:
            now = self._clock()
        cutoff = now - self.retention_seconds
        removed = 0
        with self._write_lock:
            index: _Index = {}
            for service, entries in self._index.items():
                pos = bisect.bisect_left(entries, cutoff, key=lambda s: s.timestamp)
                for signal in entries[:pos]:
                    self._locations.pop(signal.id, None)
                removed += pos
                if pos < len(entries):
                    index[service] = entries[pos:]
            self._publish(index)
        if removed:
            log.info("Evicted %d signal(s) older than %.0fs", removed, self.retention_seconds)
        return removed

    def services(self) -> List[str]:
        return sorted(self._index)

    def close(self) -> None:
        self._closed = True

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._index.values())
