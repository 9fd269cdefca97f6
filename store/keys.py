"""
Key layout for persisted incident state.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

PREFIX = "ice"


def incident(incident_id: str) -> str:
    return f"{PREFIX}:incident:{incident_id}"


def incident_pattern() -> str:
    return f"{PREFIX}:incident:*"


def incident_id_from_key(key: str) -> str:
    return key.rsplit(":", 1)[-1]
