"""
Correlation logic that turns a trigger alert into a bounded, time-ordered set of candidate signals drawn from the trigger's service and its topology neighbours, to feed root cause analysis.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.correlation.correlator import Correlator, apply_cap

__all__ = ["Correlator", "apply_cap"]
