"""Transient user-facing notifications."""

import logging
from enum import Enum

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ToastVariant(str, Enum):
    """Visual weight of a toast."""

    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Toast(BaseModel):
    """A single non-blocking notification."""

    title: str
    description: str = ""
    variant: ToastVariant = ToastVariant.DEFAULT


class ToastNotifier:
    """Collects toasts raised by views so a front end can render them."""

    def __init__(self) -> None:
        self.toasts: list[Toast] = []

    def notify(
        self, title: str, description: str = "", variant: ToastVariant = ToastVariant.DEFAULT
    ) -> Toast:
        """Record a toast and log it."""
        toast = Toast(title=title, description=description, variant=variant)
        self.toasts.append(toast)
        if variant is ToastVariant.DESTRUCTIVE:
            logger.warning("%s: %s", title, description)
        else:
            logger.info("%s: %s", title, description)
        return toast

    def error(self, title: str, description: str = "") -> Toast:
        """Record a destructive toast."""
        return self.notify(title, description, ToastVariant.DESTRUCTIVE)

    def drain(self) -> list[Toast]:
        """Return pending toasts and clear the queue."""
        pending, self.toasts = self.toasts, []
        return pending
