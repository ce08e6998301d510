"""
Collaborator interfaces the engine consumes: editing surfaces, a markdown
renderer and an HTML sanitizer.
"""

import logging
from typing import Callable, Protocol

from markdown_it import MarkdownIt

logger = logging.getLogger(__name__)

ContentChanged = Callable[[str], None]
FocusGained = Callable[[], None]


class EditorSurface(Protocol):
    """The widget that owns a cell's source text."""

    def get_text(self) -> str: ...

    def set_text(self, text: str) -> None: ...

    def on_content_changed(self, callback: ContentChanged) -> None: ...

    def on_focus_gained(self, callback: FocusGained) -> None: ...

    def dispose(self) -> None: ...


class Renderer(Protocol):
    def render(self, text: str) -> str: ...


class Sanitizer(Protocol):
    def sanitize(self, markup: str) -> str: ...


class BufferEditor:
    """
    In-memory editing surface.

    Used by the terminal editor and by tests. ``set_text`` notifies
    content-changed listeners whenever the text actually changes, the way
    a code editor reports programmatic edits.
    """

    def __init__(self, text: str = ""):
        self._text = text
        self._changed: list[ContentChanged] = []
        self._focused: list[FocusGained] = []
        self.disposed = False

    def get_text(self) -> str:
        return self._text

    def set_text(self, text: str):
        if self.disposed:
            logger.debug("set_text on a disposed editor ignored")
            return
        if text == self._text:
            return
        self._text = text
        for callback in list(self._changed):
            callback(text)

    def on_content_changed(self, callback: ContentChanged):
        self._changed.append(callback)

    def on_focus_gained(self, callback: FocusGained):
        self._focused.append(callback)

    def focus(self):
        """Simulate the surface gaining focus."""
        if self.disposed:
            return
        for callback in list(self._focused):
            callback()

    def dispose(self):
        self.disposed = True
        self._changed.clear()
        self._focused.clear()


class MarkdownRenderer:
    """CommonMark renderer with raw HTML disabled."""

    def __init__(self):
        self._md = MarkdownIt("commonmark", {"html": False}).enable("table").enable("strikethrough")

    def render(self, text: str) -> str:
        return self._md.render(text)


class IdentitySanitizer:
    """
    Sanitizer that returns markup unchanged.

    Suitable only for markup from ``MarkdownRenderer``, which escapes raw
    HTML and rejects unsafe link schemes itself. Hosts that render
    untrusted markup some other way supply their own sanitizer.
    """

    def sanitize(self, markup: str) -> str:
        return markup


EditorFactory = Callable[[str], EditorSurface]
