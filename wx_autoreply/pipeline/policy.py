"""Ordered admissibility checks run before any reply is generated."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from loguru import logger

from wx_autoreply.bus.events import NotificationEvent, ReplyAction
from wx_autoreply.config.schema import ReplyConfig
from wx_autoreply.pipeline.ratelimit import RateTracker
from wx_autoreply.storage.contacts import ContactStore
from wx_autoreply.storage.models import Correspondent, OutcomeLogEntry
from wx_autoreply.storage.reply_log import OutcomeLog

SENSITIVE_PLACEHOLDER = "[sensitive content, skipped]"


class RejectReason(str, Enum):
    DISABLED = "disabled"
    ENGINE_NOT_READY = "engine_not_ready"
    OUTSIDE_WORK_HOURS = "outside_work_hours"
    DAILY_QUOTA = "daily_quota"
    NOT_WHITELISTED = "not_whitelisted"
    SENSITIVE_CONTENT = "sensitive_content"
    RATE_LIMITED = "rate_limited"
    NO_REPLY_ACTION = "no_reply_action"


@dataclass(frozen=True)
class GateDecision:
    reason: RejectReason | None = None
    contact: Correspondent | None = None
    action: ReplyAction | None = None

    @property
    def passed(self) -> bool:
        return self.reason is None


class PolicyGate:
    """
    Short-circuiting chain of checks.

    Order: master switch, engine readiness, work hours, daily quota, whitelist,
    sensitive content, per-sender rate, reply capability. Only the sensitive-content
    rejection has a side effect: a failed outcome entry with a redacted reply.
    """

    def __init__(
        self,
        config: ReplyConfig,
        contacts: ContactStore,
        rate: RateTracker,
        reply_log: OutcomeLog,
        is_ready: Callable[[], bool],
    ):
        self.config = config
        self.contacts = contacts
        self.rate = rate
        self.reply_log = reply_log
        self.is_ready = is_ready

    def evaluate(
        self,
        sender: str,
        message: str,
        event: NotificationEvent,
        now: datetime | None = None,
    ) -> GateDecision:
        moment = now or datetime.now()
        cfg = self.config

        if not cfg.enabled:
            return self._reject(RejectReason.DISABLED, sender)
        if not self.is_ready():
            return self._reject(RejectReason.ENGINE_NOT_READY, sender)
        if not cfg.is_within_work_hours(moment):
            return self._reject(RejectReason.OUTSIDE_WORK_HOURS, sender)
        if self.rate.daily_count >= cfg.max_daily_replies:
            return self._reject(RejectReason.DAILY_QUOTA, sender)

        contact = self.contacts.find_by_name(sender)
        if contact is None:
            return self._reject(RejectReason.NOT_WHITELISTED, sender)

        if cfg.contains_sensitive_word(message):
            logger.warning(f"Sensitive content from {sender}, auto-reply skipped")
            self.reply_log.append(
                OutcomeLogEntry(
                    contact_name=sender,
                    received_message=message,
                    replied_message=SENSITIVE_PLACEHOLDER,
                    success=False,
                )
            )
            return GateDecision(reason=RejectReason.SENSITIVE_CONTENT, contact=contact)

        # Without an explicit moment the tracker's own clock decides.
        at_ms = int(now.timestamp() * 1000) if now is not None else None
        if not self.rate.can_send(sender, now=at_ms, limit=cfg.max_per_minute):
            return self._reject(RejectReason.RATE_LIMITED, sender, contact)

        action = event.reply_action()
        if action is None:
            return self._reject(RejectReason.NO_REPLY_ACTION, sender, contact)

        return GateDecision(contact=contact, action=action)

    def _reject(
        self,
        reason: RejectReason,
        sender: str,
        contact: Correspondent | None = None,
    ) -> GateDecision:
        logger.debug(f"Skipping {sender}: {reason.value}")
        return GateDecision(reason=reason, contact=contact)
