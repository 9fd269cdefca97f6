"""
Factory for creating the outbound notifier based on configuration.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from config import NOTIFIER_BACKEND_LOG, NOTIFIER_BACKEND_WEBHOOK
from notifiers.base import Notifier
from notifiers.logger import LogNotifier
from notifiers.webhook import WebhookNotifier


class NotifierFactory:

    @staticmethod
    def create(config) -> Notifier:
        backend = (config.notifier_backend or NOTIFIER_BACKEND_LOG).lower()
        if backend == NOTIFIER_BACKEND_LOG:
            return LogNotifier()
        if backend == NOTIFIER_BACKEND_WEBHOOK:
            if not config.notifier_webhook_url:
                raise ValueError("webhook notifier requires notifier_webhook_url")
            return WebhookNotifier(
                config.notifier_webhook_url,
                hint_url=config.deployment_hint_url or None,
                timeout=config.notifier_timeout,
                attempts=config.notifier_retry_attempts,
                delay=config.notifier_retry_delay,
            )
        raise ValueError(f"Unsupported notifier backend: {backend}")
