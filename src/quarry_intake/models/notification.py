from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = [
    "Notification",
    "Severity",
]


class Severity(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """User-visible message (banner / toast) produced by a session step."""
    message: str
    severity: Severity = Severity.INFO

    @staticmethod
    def info(message: str) -> Notification:
        return Notification(message, Severity.INFO)

    @staticmethod
    def success(message: str) -> Notification:
        return Notification(message, Severity.SUCCESS)

    @staticmethod
    def warning(message: str) -> Notification:
        return Notification(message, Severity.WARNING)

    @staticmethod
    def error(message: str) -> Notification:
        return Notification(message, Severity.ERROR)
