from notifiers.base import Notifier
from notifiers.exceptions import NotifierError, NotifierRejected, NotifierTimeout, NotifierUnavailable
from notifiers.factory import NotifierFactory
from notifiers.logger import LogNotifier
from notifiers.webhook import WebhookNotifier

__all__ = [
    "Notifier",
    "NotifierError",
    "NotifierRejected",
    "NotifierTimeout",
    "NotifierUnavailable",
    "NotifierFactory",
    "LogNotifier",
    "WebhookNotifier",
]
