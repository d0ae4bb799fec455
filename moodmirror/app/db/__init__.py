"""Database models for MoodMirror."""

from .models import Base, CheckInRecord, SettingEntry

__all__ = [
    "Base",
    "CheckInRecord",
    "SettingEntry",
]
