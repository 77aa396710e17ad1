"""Auto-reply pipeline: intake, gate, generate, delay, deliver, record."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from wx_autoreply.bus.events import NotificationEvent, ReplyAction
from wx_autoreply.bus.queue import NotificationBus
from wx_autoreply.config.loader import ConfigWatcher
from wx_autoreply.config.schema import Config
from wx_autoreply.engine.client import LocalReplyClient
from wx_autoreply.errors import DeliveryError
from wx_autoreply.pipeline.delivery import deliver
from wx_autoreply.pipeline.intake import NotificationExtractor
from wx_autoreply.pipeline.policy import GateDecision, PolicyGate
from wx_autoreply.pipeline.ratelimit import RateTracker
from wx_autoreply.storage.contacts import ContactStore
from wx_autoreply.storage.history import ConversationStore
from wx_autoreply.storage.models import ChatTurn, Correspondent, OutcomeLogEntry
from wx_autoreply.storage.reply_log import OutcomeLog


@dataclass(frozen=True)
class ReplyJob:
    contact: Correspondent
    sender: str
    message: str
    action: ReplyAction


class AutoReplyService:
    """
    The reply pipeline.

    It:
    1. Drains notifications from the bus
    2. Extracts (sender, text) and runs the policy gate inline
    3. Schedules a worker per admitted message: generate, wait, deliver
    4. Records history, the outcome log and send counters
    """

    def __init__(
        self,
        config: Config,
        bus: NotificationBus,
        client: LocalReplyClient,
        contacts: ContactStore,
        history: ConversationStore,
        reply_log: OutcomeLog,
        *,
        rate: RateTracker | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
        watcher: ConfigWatcher | None = None,
    ):
        self.config = config
        self.bus = bus
        self.client = client
        self.contacts = contacts
        self.history = history
        self.reply_log = reply_log
        self.extractor = NotificationExtractor.from_config(config.intake)
        self.rate = rate or RateTracker(
            config.reply.max_per_minute,
            daily_count=reply_log.today_success_count(),
        )
        self.gate = PolicyGate(config.reply, contacts, self.rate, reply_log, client.is_ready)
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.watcher = watcher
        self._workers = asyncio.Semaphore(max(1, config.reply.max_workers))
        self._tasks: set[asyncio.Task[None]] = set()
        self._running = False

    async def run(self) -> None:
        """Consume notifications until ``stop`` is called."""
        self._running = True
        self.bus.bind_loop()
        logger.info("Auto-reply service started")
        while self._running:
            try:
                # Wake up periodically so stop() is noticed without an event.
                event = await asyncio.wait_for(self.bus.consume(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            try:
                self.handle_event(event)
            except Exception as e:
                logger.error(f"Error handling notification: {e}")
        logger.info("Auto-reply service loop exited")

    def handle_event(
        self,
        event: NotificationEvent,
        now: datetime | None = None,
    ) -> asyncio.Task[None] | None:
        """Run intake and the policy gate; schedule a reply worker when admitted."""
        self.refresh_settings()
        extracted = self.extractor.extract(event)
        if extracted is None:
            return None
        logger.debug(f"Message from {extracted.sender}: {extracted.text}")

        decision: GateDecision = self.gate.evaluate(extracted.sender, extracted.text, event, now)
        if not decision.passed:
            return None

        job = ReplyJob(
            contact=decision.contact,
            sender=extracted.sender,
            message=extracted.text,
            action=decision.action,
        )
        task = asyncio.create_task(self._run_job(job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def refresh_settings(self) -> bool:
        """Apply reply and intake settings edited on disk. Returns True if reloaded."""
        if self.watcher is None:
            return False
        fresh = self.watcher.poll()
        if fresh is None:
            return False
        # Model and bridge settings need a restart; reply policy and intake apply live.
        self.config.reply = fresh.reply
        self.config.intake = fresh.intake
        self.gate.config = fresh.reply
        self.rate.max_per_minute = fresh.reply.max_per_minute
        self.extractor = NotificationExtractor.from_config(fresh.intake)
        logger.info(f"Settings reloaded (auto-reply {'on' if fresh.reply.enabled else 'off'})")
        return True

    async def _run_job(self, job: ReplyJob) -> None:
        async with self._workers:
            try:
                await self.process(job)
            except Exception as e:
                logger.error(f"Auto-reply failed for {job.sender}: {e}")
                self._log_failure(job, f"[reply failed: {e}]")

    async def process(self, job: ReplyJob) -> str | None:
        """Generate, delay, deliver and record one reply. Returns the sent text."""
        history = self.history.get(job.contact.id)
        logger.debug(f"Generating reply for {job.sender}")
        reply = await self.client.generate_reply(job.sender, job.contact.style, history, job.message)

        delay = self._pick_delay()
        logger.debug(f"Sending in {delay:.1f}s")
        await self._sleep(delay)

        try:
            await deliver(job.action, reply)
        except DeliveryError as e:
            logger.error(f"Failed to send reply to {job.sender}: {e}")
            self._log_failure(job, f"[reply failed: {e}]")
            return None

        self.history.append(job.contact.id, ChatTurn(role="user", content=job.message))
        self.history.append(job.contact.id, ChatTurn(role="assistant", content=reply))
        self.reply_log.append(
            OutcomeLogEntry(
                contact_name=job.sender,
                received_message=job.message,
                replied_message=reply,
                success=True,
            )
        )
        self.rate.record_success()
        self.rate.record(job.sender)
        logger.info(f"Replied to {job.sender}: {reply}")
        return reply

    def _pick_delay(self) -> float:
        low = max(0, self.config.reply.min_delay_seconds)
        high = max(0, self.config.reply.max_delay_seconds)
        if low > high:
            low, high = high, low
        return self._rng.uniform(low, high)

    def _log_failure(self, job: ReplyJob, placeholder: str) -> None:
        self.reply_log.append(
            OutcomeLogEntry(
                contact_name=job.sender,
                received_message=job.message,
                replied_message=placeholder,
                success=False,
            )
        )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled reply worker to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        self._running = False
        await self.drain()
        logger.info("Auto-reply service stopped")
