"""
Baseline statistics (mean, standard deviation, breach bounds) over earlier metric samples, used by the rule base to judge whether a metric signal exceeds its normal range.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.baseline.compute import Baseline, compute, exceeds_threshold, score

__all__ = ["Baseline", "compute", "exceeds_threshold", "score"]
