"""Error kinds raised by the index advisor. Every one of them ends the run."""

from __future__ import annotations

from typing import Optional


class IndexAdvisorError(Exception):
    """Base class for advisor failures."""


class InvalidConfiguration(IndexAdvisorError):
    """Threshold ordering violated or a required setting is missing/out of range."""

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(message)
        self.setting = setting


class SourceUnavailable(IndexAdvisorError):
    """An adapter could not read its relation (connectivity, permission, timeout, bad data)."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
