"""
Base notifier interface for delivering incident reports and deployment hints to external collaborators

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from abc import ABC, abstractmethod

from api.responses import DeploymentHint, IncidentReport


class Notifier(ABC):
    @abstractmethod
    async def notify(self, report: IncidentReport) -> None: ...

    @abstractmethod
    async def send_deployment_hint(self, hint: DeploymentHint) -> None: ...

    async def aclose(self) -> None:
        return None
