"""wx-autoreply - offline chat auto-reply powered by a local language model."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wx-autoreply")
except PackageNotFoundError:
    __version__ = "0.1.0"

__logo__ = "💬"
__brand__ = "wx-autoreply"
