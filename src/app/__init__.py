"""Application bootstrap helpers for the Deck Review Scheduler project."""

from .runtime import bootstrap, build_review_session
from .settings import AppSettings

__all__ = ["bootstrap", "build_review_session", "AppSettings"]
