"""
Baseline statistics for metric signals and threshold evaluation, used to decide whether a metric reading in the correlation window is a genuine breach rather than normal level.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from config import settings


@dataclass(frozen=True)
class Baseline:
    mean: float
    std: float
    lower: float
    upper: float
    sample_count: int = 0


def compute(vals: Sequence[float], z_threshold: float | None = None) -> Optional[Baseline]:
    if z_threshold is None:
        z_threshold = settings.metric_zscore_threshold
    arr = np.array([v for v in vals if v is not None], dtype=float)
    arr = arr[np.isfinite(arr)]
    n = len(arr)
    if n < settings.baseline_min_samples:
        return None

    m = float(np.mean(arr))
    s = float(np.std(arr)) or 1e-9
    return Baseline(mean=m, std=s, lower=m - z_threshold * s, upper=m + z_threshold * s, sample_count=n)


def score(val: float, baseline: Baseline) -> Tuple[bool, float]:
    z = abs(val - baseline.mean) / baseline.std if baseline.std else 0.0
    return val > baseline.upper, round(z, 3)


def exceeds_threshold(
    value: float,
    history: Sequence[float],
    explicit: float | None = None,
    configured: float | None = None,
) -> Tuple[bool, str]:
    """Return whether ``value`` breaches its threshold and a short description.

    An explicit threshold carried on the signal wins, then a configured
    per-metric threshold, then a z-score against earlier samples.
    """
    if explicit is not None:
        return value > explicit, f"{value:g} > threshold {explicit:g}"
    if configured is not None:
        return value > configured, f"{value:g} > configured limit {configured:g}"
    baseline = compute(history)
    if baseline is None:
        return False, "insufficient history"
    breached, z = score(value, baseline)
    return breached, f"{value:g} is {z:g} sigma above baseline {baseline.mean:.3g}"
