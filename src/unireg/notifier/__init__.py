"""Notifier - Email templates, outbox and mail transports."""

from unireg.notifier.exceptions import DeliveryError, NotifierError
from unireg.notifier.mailer import HttpMailer, LogMailer, Mailer, create_mailer
from unireg.notifier.models import EmailMessage, FlushResult
from unireg.notifier.outbox import Outbox
from unireg.notifier.worker import OutboxWorker

__all__ = [
    "DeliveryError",
    "EmailMessage",
    "FlushResult",
    "HttpMailer",
    "LogMailer",
    "Mailer",
    "NotifierError",
    "Outbox",
    "OutboxWorker",
    "create_mailer",
]
