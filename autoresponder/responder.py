"""
The vacation responder service: wires credentials, the Gmail client,
label resolution, triage and the scheduler together
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional
import random

from .auth import CredentialProvider, build_gmail_service
from .composer import ReplyComposer
from .config import Config
from .errors import ResponderError, TickInProgressError
from .gmail import GmailClient
from .history import RunHistory
from .labels import LabelResolver
from .models import LabelResolution, ResponderStatus, TriageReport, TriggerResponse
from .scheduler import Scheduler
from .triage import TriageLoop

logger = logging.getLogger(__name__)


class VacationResponder:
    """The long-running auto-responder behind the trigger endpoint"""

    def __init__(self, config: Config,
                 provider: Optional[CredentialProvider] = None,
                 client: Optional[GmailClient] = None,
                 history: Optional[RunHistory] = None,
                 rng: Optional[random.Random] = None,
                 on_fatal: Optional[Callable[[BaseException], None]] = None):
        self.config = config
        self.provider = provider
        self.client = client
        self.history = history or RunHistory(config.RUN_LOG_FILE, config.RUN_LOG_MAX_ENTRIES)
        self.composer = ReplyComposer(config.reply_body(), sender=config.REPLY_SENDER)
        self.rng = rng
        self.on_fatal = on_fatal

        self.label: Optional[LabelResolution] = None
        self.triage: Optional[TriageLoop] = None
        self.scheduler: Optional[Scheduler] = None
        self.started_at: Optional[datetime] = None

    async def authorize(self) -> GmailClient:
        """
        Check that the credentials are still valid (refreshing if needed) and
        build the Gmail client on first use. CredentialsError propagates.
        """
        if self.provider is not None:
            if self.client is None:
                service = await asyncio.to_thread(build_gmail_service, self.provider)
                self.client = GmailClient(service)
            else:
                await asyncio.to_thread(self.provider.get_credentials)

        if self.client is None:
            raise ResponderError("No Gmail client or credential provider configured")

        if self.triage is None:
            self.triage = TriageLoop(
                self.client,
                self.composer,
                self.config.CANDIDATE_QUERY,
                remove_label_ids=self.config.REMOVE_LABEL_IDS
            )
        return self.client

    def _ensure_scheduler(self) -> Scheduler:
        if self.scheduler is None:
            self.scheduler = Scheduler(
                self._tick,
                self.config.POLL_MIN_SECONDS,
                self.config.POLL_MAX_SECONDS,
                rng=self.rng,
                on_fatal=self.on_fatal
            )
        return self.scheduler

    async def resolve_label(self) -> LabelResolution:
        """Resolve the label id once and reuse it for every run"""
        if self.label is None:
            self.label = await LabelResolver(self.client).resolve(self.config.LABEL_NAME)
            logger.info("Created or found label with id %s", self.label.label_id)
        return self.label

    async def _tick(self, stop_event: asyncio.Event) -> TriageReport:
        label = await self.resolve_label()
        report = await self.triage.run(label.label_id, stop_event)
        try:
            self.history.record(report)
        except OSError as e:
            logger.error("Could not write run log %s: %s", self.history.filepath, e)
        return report

    async def trigger(self) -> TriggerResponse:
        """Authorize and start the scheduler without waiting for any run"""
        await self.authorize()
        scheduler = self._ensure_scheduler()

        if not scheduler.start():
            return TriggerResponse(
                status="already_running",
                message="Vacation responder is already running",
                label_name=self.config.LABEL_NAME
            )

        self.started_at = datetime.now()
        return TriggerResponse(
            status="started",
            message="You are successfully eligible for our service",
            label_name=self.config.LABEL_NAME
        )

    async def run_now(self) -> TriageReport:
        """Run one triage pass immediately; refused while another is in flight"""
        await self.authorize()
        scheduler = self._ensure_scheduler()
        if scheduler.busy:
            raise TickInProgressError("A triage run is already in progress")
        return await scheduler.run_once()

    async def shutdown(self):
        if self.scheduler is not None:
            await self.scheduler.stop(timeout=self.config.SHUTDOWN_TIMEOUT)

    def get_status(self) -> ResponderStatus:
        scheduler = self.scheduler
        return ResponderStatus(
            is_running=bool(scheduler and scheduler.is_running),
            tick_in_progress=bool(scheduler and scheduler.busy),
            label_name=self.config.LABEL_NAME,
            label_id=self.label.label_id if self.label else None,
            runs_completed=scheduler.runs_completed if scheduler else 0,
            started_at=self.started_at,
            last_report=scheduler.last_result if scheduler else None,
            history=self.history.get_stats(),
            config=self.config.get_config_summary()
        )
