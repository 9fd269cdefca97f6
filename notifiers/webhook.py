import httpx
from typing import Any, Dict, Optional

from api.responses import DeploymentHint, IncidentReport
from notifiers.base import Notifier
from notifiers.exceptions import NotifierRejected, NotifierTimeout, NotifierUnavailable
from notifiers.retry import retry


class WebhookNotifier(Notifier):
    """Posts the structured report as JSON; vendor formatting is the receiver's job."""

    def __init__(
        self,
        url: str,
        hint_url: Optional[str] = None,
        timeout: int = 10,
        headers: Optional[Dict[str, str]] = None,
        attempts: int = 3,
        delay: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = str(url).rstrip("/")
        self.hint_url = str(hint_url).rstrip("/") if hint_url else None
        self.timeout = timeout
        self.headers = headers or {}
        self.attempts = attempts
        self.delay = delay
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    def _headers(self) -> Dict[str, str]:
        return {**self.headers, "Content-Type": "application/json"}

    @retry(
        attempts=lambda self: self.attempts,
        delay=lambda self: self.delay,
        exceptions=(NotifierUnavailable, NotifierTimeout),
    )
    async def _post(self, url: str, payload: Dict[str, Any]) -> None:
        try:
            resp = await self._client.post(url, json=payload, headers=self._headers())
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code >= 500:
                raise NotifierUnavailable(f"Webhook {url} returned {e.response.status_code}") from e
            raise NotifierRejected(f"Webhook rejected payload [{e.response.status_code}]: {e.response.text}") from e
        except httpx.TimeoutException as e:
            raise NotifierTimeout(f"Webhook {url} timed out") from e
        except httpx.RequestError as e:
            raise NotifierUnavailable(f"Cannot reach webhook at {url}") from e

    async def notify(self, report: IncidentReport) -> None:
        await self._post(self.url, {"type": "incident_report", "report": report.model_dump(mode="json")})

    async def send_deployment_hint(self, hint: DeploymentHint) -> None:
        await self._post(self.hint_url or self.url, {"type": "deployment_hint", "hint": hint.model_dump(mode="json")})

    async def aclose(self) -> None:
        await self._client.aclose()
