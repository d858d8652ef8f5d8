"""Data models for the Notifier module."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class EmailMessage:
    """An email ready to be queued or sent.

    Attributes:
        to: Recipient addresses.
        subject: Subject line.
        text: Plain-text body.
        html: HTML body.
    """

    to: list[str]
    subject: str
    text: str
    html: str


@dataclass
class FlushResult:
    """Outcome of one outbox flush.

    Attributes:
        sent: IDs of messages delivered during this flush.
        failed: IDs of messages whose delivery attempt failed.
    """

    sent: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        """Number of messages a delivery was attempted for."""
        return len(self.sent) + len(self.failed)
