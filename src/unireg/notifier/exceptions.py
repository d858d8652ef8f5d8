"""Custom exceptions for the Notifier."""


class NotifierError(Exception):
    """Base exception for Notifier errors."""


class DeliveryError(NotifierError):
    """The email transport refused or failed to deliver a message."""
