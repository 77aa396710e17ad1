"""Error taxonomy for the reply pipeline and inference engine."""


class AutoReplyError(Exception):
    """Base class for wx-autoreply errors."""


class LoadError(AutoReplyError):
    """Model file missing, unreadable, incompatible, or allocation failed."""


class TokenizeError(AutoReplyError):
    """Prompt could not be tokenized into the context window."""


class DecodeError(AutoReplyError):
    """A decode step against the model session failed."""


class DeliveryError(AutoReplyError):
    """The reply could not be handed to the host reply action."""
