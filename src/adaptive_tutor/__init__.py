"""Adaptive tutor engine: AI generation orchestration and adaptive learning progress."""

from .config import Settings, load_settings
from .system import TutorSystem

__all__ = ["Settings", "TutorSystem", "load_settings"]
