"""Reply pipeline: intake, policy gate, rate accounting, delivery and orchestration."""

from wx_autoreply.pipeline.delivery import deliver
from wx_autoreply.pipeline.intake import ExtractedMessage, NotificationExtractor
from wx_autoreply.pipeline.policy import GateDecision, PolicyGate, RejectReason
from wx_autoreply.pipeline.ratelimit import RateTracker
from wx_autoreply.pipeline.service import AutoReplyService

__all__ = [
    "AutoReplyService",
    "ExtractedMessage",
    "GateDecision",
    "NotificationExtractor",
    "PolicyGate",
    "RateTracker",
    "RejectReason",
    "deliver",
]
