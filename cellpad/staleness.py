"""
Staleness tracking: does a cell's last run match its current text?
"""

import logging
from typing import Optional

from cellpad.editor import EditorSurface
from cellpad.events import EventBus, NotebookEventType
from cellpad.notebook import Cell

logger = logging.getLogger(__name__)


def is_current(cell: Cell, text: str) -> bool:
    """True when the cell has run and its text is exactly what ran."""
    state = cell.execution_state
    return state.executed and state.last_executed_text == text


class StalenessTracker:
    """
    Invalidates a cell's execution state when its text changes.

    Outputs are left alone: stale output stays visible until the next run
    replaces it. Editing the text back to what last ran does not make the
    cell current again; only a new run does.
    """

    def __init__(self, events: Optional[EventBus] = None):
        self.events = events or EventBus()

    def content_changed(self, cell: Cell, new_text: str) -> bool:
        """Handle an edit. Returns True if the cell was invalidated."""
        state = cell.execution_state
        if state.executed and state.last_executed_text == new_text:
            return False
        was_executed = state.executed
        cell.mark_unexecuted()
        if was_executed:
            logger.debug("Cell %s is stale", cell.id)
            self.events.emit(NotebookEventType.EXECUTION_STATE_CHANGED, cell.id, executed=False)
        return was_executed

    def watch(self, cell: Cell, editor: EditorSurface):
        """Subscribe to the editor's content changes for this cell."""
        editor.on_content_changed(lambda text: self.content_changed(cell, text))
