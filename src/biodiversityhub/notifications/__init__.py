"""Notifications domain for transient user-facing messages."""

from biodiversityhub.notifications.toasts import Toast, ToastNotifier, ToastVariant

__all__ = ["Toast", "ToastNotifier", "ToastVariant"]
