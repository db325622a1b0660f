"""
Triage loop: reply to every candidate message once, then label it
"""

import asyncio
import uuid
import logging
from datetime import datetime
from typing import List, Optional

from .composer import REQUIRED_HEADERS, ReplyComposer
from .errors import MalformedMessageError, ResponderError
from .gmail import GmailClient
from .models import MessageOutcome, OutcomeStatus, TriageReport

logger = logging.getLogger(__name__)


class TriageLoop:
    """One run queries candidates once and handles them strictly in sequence"""

    def __init__(self, client: GmailClient, composer: ReplyComposer, query: str,
                 remove_label_ids: Optional[List[str]] = None):
        self.client = client
        self.composer = composer
        self.query = query
        self.remove_label_ids = list(remove_label_ids if remove_label_ids is not None else ["INBOX"])

    async def run(self, label_id: str, stop_event: Optional[asyncio.Event] = None) -> TriageReport:
        """
        Process every candidate message. A failing message is recorded and
        skipped; it never stops the remaining candidates. When stop_event is
        set the run ends after the message in flight.
        """
        report = TriageReport(
            run_id=str(uuid.uuid4()),
            label_id=label_id,
            started_at=datetime.now()
        )

        try:
            message_ids = await self.client.list_message_ids(self.query)
        except ResponderError as e:
            logger.error("Candidate query failed: %s", e)
            report.error = str(e)
            report.completed_at = datetime.now()
            return report

        report.candidates = len(message_ids)
        logger.info("Found %d unreplied messages", len(message_ids))

        for message_id in message_ids:
            if stop_event is not None and stop_event.is_set():
                logger.info("Stop requested, leaving %d messages for the next run",
                            report.candidates - len(report.outcomes))
                report.interrupted = True
                break
            outcome = await self.process_message(message_id, label_id)
            report.outcomes.append(outcome)

        report.completed_at = datetime.now()
        logger.info("Run %s finished: %d replied, %d skipped, %d failed",
                    report.run_id, report.replied_count, report.skipped_count, report.failed_count)
        return report

    async def process_message(self, message_id: str, label_id: str) -> MessageOutcome:
        """Fetch headers, compose, send, then label; the label is applied only after a send"""
        try:
            headers = await self.client.get_message_headers(message_id, REQUIRED_HEADERS)
            reply = self.composer.compose(message_id, headers)
        except MalformedMessageError as e:
            logger.warning("Skipping message %s: %s", message_id, e)
            return MessageOutcome(message_id=message_id, status=OutcomeStatus.SKIPPED, error=str(e))
        except Exception as e:
            logger.exception("Failed to read message %s", message_id)
            return MessageOutcome(message_id=message_id, status=OutcomeStatus.FAILED, error=str(e))

        try:
            await self.client.send_message(self.composer.encode(reply))
        except Exception as e:
            logger.error("Failed to send reply to message %s: %s", message_id, e)
            return MessageOutcome(
                message_id=message_id,
                status=OutcomeStatus.SEND_FAILED,
                recipient=reply.recipient,
                subject=reply.subject,
                error=str(e)
            )
        logger.info("Sent reply to message %s (%s)", message_id, reply.recipient)

        try:
            await self.client.modify_labels(message_id, add=[label_id], remove=self.remove_label_ids)
        except Exception as e:
            logger.error("Reply sent but labeling message %s failed: %s", message_id, e)
            return MessageOutcome(
                message_id=message_id,
                status=OutcomeStatus.LABEL_FAILED,
                recipient=reply.recipient,
                subject=reply.subject,
                error=str(e)
            )
        logger.info("Added label to message %s", message_id)

        return MessageOutcome(
            message_id=message_id,
            status=OutcomeStatus.REPLIED,
            recipient=reply.recipient,
            subject=reply.subject
        )
