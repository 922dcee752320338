"""Profiles domain for the user directory."""

from biodiversityhub.profiles.directory import DirectoryEntry, UserDirectory

__all__ = ["DirectoryEntry", "UserDirectory"]
