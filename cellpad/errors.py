"""
Exception types raised by cellpad.

Most failure paths in the engine degrade to a visible state instead of
raising: parse anomalies drop content, execution failures become error
outputs, and operations on missing cells are no-ops. The classes here cover
the few places where an exception is the right signal to a caller.
"""

from typing import Optional


class CellpadError(Exception):
    """Base class for all cellpad errors."""


class DuplicateCellError(CellpadError):
    """A cell with the same id is already in the notebook."""

    def __init__(self, cell_id: str):
        super().__init__(f"Cell id already present: {cell_id}")
        self.cell_id = cell_id


class LoadFailure(CellpadError):
    """A remote document could not be fetched."""

    def __init__(self, url: str, reason: Optional[str] = None):
        message = f"Could not load {url}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.url = url
        self.reason = reason


class InvalidRemoteURL(LoadFailure):
    """The URL cannot be turned into a downloadable document address."""

    def __init__(self, url: str, reason: str = "not a GitHub blob URL"):
        super().__init__(url, reason)
