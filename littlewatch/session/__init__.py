"""Session context and its durable store."""

from littlewatch.session.store import Session, SessionStore

__all__ = ["Session", "SessionStore"]
