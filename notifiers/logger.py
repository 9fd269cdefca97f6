from __future__ import annotations

import logging

from api.responses import DeploymentHint, IncidentReport
from notifiers.base import Notifier

log = logging.getLogger(__name__)


class LogNotifier(Notifier):
    """Writes reports to the application log; the default when no webhook is configured."""

    async def notify(self, report: IncidentReport) -> None:
        log.info(
            "Incident %s [%s/%s] %s: %s",
            report.incident_id,
            report.priority.value,
            report.diagnosis_status.value,
            report.trigger_summary,
            report.diagnosis_summary,
        )

    async def send_deployment_hint(self, hint: DeploymentHint) -> None:
        log.info("Deployment hint for %s: commit %s in %s", hint.service, hint.commit, hint.repository or "?")
