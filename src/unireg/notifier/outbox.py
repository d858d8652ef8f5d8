"""Outbox - durable queue of notification emails.

Workflow transitions write OutboxEmail rows inside their own transaction, so an
email exists if and only if the state change that caused it was committed.
Delivery happens afterwards. ``Outbox.deliver`` tries the rows one transition
just queued, and ``Outbox.flush`` works through the backlog for the worker and
the CLI. A failed delivery is recorded on the row and retried on a later flush;
it never reaches the caller.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy import or_, select

from unireg.notifier.models import EmailMessage, FlushResult
from unireg.state_store.models import OutboxEmail, OutboxStatus, utcnow

if TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.orm import Session

    from unireg.notifier.mailer import Mailer
    from unireg.state_store import StateStore

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 1000

# session.info key listing the outbox rows queued in that session
QUEUED_KEY = "unireg.queued_emails"


class Outbox:
    """Queues emails transactionally and delivers them through a Mailer."""

    def __init__(self, store: StateStore, mailer: Mailer, max_attempts: int = 5) -> None:
        """Initialize the outbox.

        Args:
            store: StateStore holding the outbox table.
            mailer: Transport used for delivery.
            max_attempts: Attempts before a message is left FAILED for good.
        """
        self.store = store
        self.mailer = mailer
        self.max_attempts = max_attempts
        self._lock = threading.Lock()

    @staticmethod
    def enqueue(session: Session, message: EmailMessage) -> OutboxEmail | None:
        """Add a message to the outbox within the caller's transaction.

        Messages without recipients are dropped (e.g. no registrar accounts).

        Returns:
            The new OutboxEmail row, or None if the message was dropped.
        """
        recipients = [a for a in message.to if a]
        if not recipients:
            logger.info("Dropping email '%s' with no recipients", message.subject)
            return None

        row = OutboxEmail(
            to_address=",".join(recipients),
            subject=message.subject,
            text_body=message.text,
            html_body=message.html,
        )
        session.add(row)
        session.info.setdefault(QUEUED_KEY, []).append(row.id)
        return row

    def flush(self, limit: int = 50) -> FlushResult:
        """Deliver queued messages.

        Picks up PENDING messages and FAILED ones that still have attempts
        left, oldest first.

        Args:
            limit: Maximum number of messages to attempt.

        Returns:
            FlushResult listing sent and failed message IDs.
        """
        stmt = (
            select(OutboxEmail)
            .where(
                or_(
                    OutboxEmail.status == OutboxStatus.PENDING.value,
                    (OutboxEmail.status == OutboxStatus.FAILED.value)
                    & (OutboxEmail.attempts < self.max_attempts),
                )
            )
            .order_by(OutboxEmail.created_at)
            .limit(limit)
        )
        return self._send(stmt)

    def deliver(self, message_ids: Sequence[str]) -> FlushResult:
        """Make one attempt at the given PENDING messages.

        Earlier FAILED messages are left to ``flush``, so a caller only waits
        on the messages it queued itself.
        """
        if not message_ids:
            return FlushResult()
        stmt = (
            select(OutboxEmail)
            .where(
                OutboxEmail.id.in_(list(message_ids)),
                OutboxEmail.status == OutboxStatus.PENDING.value,
            )
            .order_by(OutboxEmail.created_at)
        )
        return self._send(stmt)

    def _send(self, stmt: Select[tuple[OutboxEmail]]) -> FlushResult:
        result = FlushResult()
        with self._lock:
            for row in self._load(stmt):
                message = EmailMessage(
                    to=row.recipients,
                    subject=row.subject,
                    text=row.text_body,
                    html=row.html_body,
                )
                try:
                    self.mailer.send(message)
                except Exception as e:  # noqa: BLE001 - delivery is best-effort
                    logger.warning("Delivery of email %s failed: %s", row.id, e)
                    self._mark_failed(row.id, str(e))
                    result.failed.append(row.id)
                else:
                    self._mark_sent(row.id)
                    result.sent.append(row.id)

        if result.attempted:
            logger.info(
                "Outbox flush: %d sent, %d failed", len(result.sent), len(result.failed)
            )
        return result

    def list_messages(self, status: OutboxStatus | None = None) -> list[OutboxEmail]:
        """List outbox messages, oldest first."""
        session = self.store.database.get_session()
        try:
            stmt = select(OutboxEmail)
            if status is not None:
                stmt = stmt.where(OutboxEmail.status == status.value)
            stmt = stmt.order_by(OutboxEmail.created_at)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def _load(self, stmt: Select[tuple[OutboxEmail]]) -> list[OutboxEmail]:
        session = self.store.database.get_session()
        try:
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def _mark_sent(self, message_id: str) -> None:
        with self.store.transaction() as session:
            row = session.get(OutboxEmail, message_id)
            if row is not None:
                row.status = OutboxStatus.SENT.value
                row.attempts += 1
                row.last_error = None
                row.sent_at = utcnow()

    def _mark_failed(self, message_id: str, error: str) -> None:
        with self.store.transaction() as session:
            row = session.get(OutboxEmail, message_id)
            if row is not None:
                row.status = OutboxStatus.FAILED.value
                row.attempts += 1
                row.last_error = error[:MAX_ERROR_LENGTH]
