"""Session tracking module."""

from wabridge.session.tracker import SessionTracker

__all__ = ["SessionTracker"]
