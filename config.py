"""
Constants and configuration for the incident correlation engine.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import os
from typing import Dict, Optional

from pydantic_settings import BaseSettings


REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
INCIDENT_TTL: int = int(os.getenv("INCIDENT_TTL", "2592000"))

NOTIFIER_BACKEND_LOG = "log"
NOTIFIER_BACKEND_WEBHOOK = "webhook"

CORRELATOR_NOTIFIER_BACKEND = os.getenv("CORRELATOR_NOTIFIER_BACKEND", NOTIFIER_BACKEND_LOG).lower()
CORRELATOR_NOTIFIER_WEBHOOK_URL = os.getenv("CORRELATOR_NOTIFIER_WEBHOOK_URL", "").rstrip("/")
CORRELATOR_DEPLOYMENT_HINT_URL = os.getenv("CORRELATOR_DEPLOYMENT_HINT_URL", "").rstrip("/")

# weight values assigned to severity labels for comparison and ranking
SEVERITY_WEIGHTS: dict[str, int] = {
    "info": 0,
    "low": 1,
    "medium": 2,
    "high": 4,
    "critical": 8,
}

CRITICALITY_WEIGHTS: dict[str, int] = {
    "low": 1,
    "medium": 2,
    "high": 3,
    "critical": 4,
}

# base weight per hypothesis rule; a rule missing here is disabled
DEFAULT_RULE_WEIGHTS: Dict[str, float] = {
    "deployment_regression": 0.55,
    "dependency_outage": 0.50,
    "organic_load": 0.40,
    "error_propagation": 0.40,
    "external_dependency": 0.35,
}


class Settings(BaseSettings):
    # signal store
    signal_retention_seconds: float = 86400.0
    clock_skew_tolerance_seconds: float = 60.0
    eviction_interval_seconds: float = 60.0

    # correlation
    correlation_window_seconds: float = 1800.0
    correlation_hops: int = 2
    candidate_cap: int = 500
    deploy_window_seconds: float = 3600.0

    # pipeline
    debounce_seconds: float = 60.0
    diagnosis_budget_seconds: float = 5.0
    max_concurrent_incidents: int = 16
    incident_timeout_seconds: float = 4 * 3600.0
    incident_retention_seconds: float = 86400.0

    # rca scoring
    rca_rule_weights: Dict[str, float] = dict(DEFAULT_RULE_WEIGHTS)
    rca_recency_weight: float = 0.25
    rca_evidence_weight: float = 0.15
    rca_evidence_kinds_saturation: int = 3
    rca_score_cap: float = 0.99
    rca_error_severity: str = "high"

    # metric thresholds used by the organic load rule, values in the unit the
    # collector reports (utilisation ratios unless stated otherwise)
    metric_thresholds: Dict[str, float] = {
        "cpu_utilization": 0.90,
        "memory_utilization": 0.90,
        "container_memory_working_set_ratio": 0.90,
        "disk_utilization": 0.90,
        "connection_pool_utilization": 0.95,
        "request_rate_ratio": 2.0,
    }
    metric_zscore_threshold: float = 3.0
    baseline_min_samples: int = 6

    # topology
    topology_path: Optional[str] = os.getenv("CORRELATOR_TOPOLOGY_PATH") or None

    # notification
    notifier_backend: str = CORRELATOR_NOTIFIER_BACKEND
    notifier_webhook_url: str = CORRELATOR_NOTIFIER_WEBHOOK_URL
    deployment_hint_url: str = CORRELATOR_DEPLOYMENT_HINT_URL
    notifier_timeout: int = 10
    notifier_retry_attempts: int = 3
    notifier_retry_delay: float = 0.5

    # store
    store_redis_retry_cooldown_seconds: float = 10.0
    store_fallback_max_items: int = 10_000

    model_config = {
        "env_prefix": "CORRELATOR_",
        "extra": "ignore",
    }


settings = Settings()
