"""
Tests for staleness tracking.
"""

from cellpad.editor import BufferEditor
from cellpad.events import EventBus, NotebookEventType
from cellpad.notebook import Cell, LogOutput
from cellpad.staleness import StalenessTracker, is_current


class TestIsCurrent:
    def test_never_run(self):
        assert not is_current(Cell(), "x = 1")

    def test_same_text(self):
        cell = Cell()
        cell.mark_executed("x = 1")

        assert is_current(cell, "x = 1")
        assert not is_current(cell, "x = 2")


class TestStalenessTracker:
    def setup_method(self):
        self.events = EventBus()
        self.received = []
        self.events.subscribe(self.received.append)
        self.tracker = StalenessTracker(self.events)
        self.cell = Cell(outputs=[LogOutput(text="1")])
        self.cell.mark_executed("x = 1")

    def test_edit_invalidates(self):
        assert self.tracker.content_changed(self.cell, "x = 2")

        assert not self.cell.execution_state.executed
        assert self.cell.execution_state.last_executed_text is None
        assert [e.type for e in self.received] == [NotebookEventType.EXECUTION_STATE_CHANGED]
        assert self.received[0].data == {"executed": False}

    def test_outputs_are_kept(self):
        self.tracker.content_changed(self.cell, "x = 2")

        assert self.cell.outputs == [LogOutput(text="1")]

    def test_same_text_keeps_executed(self):
        assert not self.tracker.content_changed(self.cell, "x = 1")
        assert self.cell.execution_state.executed
        assert self.received == []

    def test_editing_back_does_not_restore(self):
        """Once stale, only a new run makes the cell current again."""
        self.tracker.content_changed(self.cell, "x = 2")
        self.tracker.content_changed(self.cell, "x = 1")

        assert not is_current(self.cell, "x = 1")
        assert len(self.received) == 1

    def test_watch_editor(self):
        editor = BufferEditor("x = 1")
        self.tracker.watch(self.cell, editor)

        editor.set_text("x = 1  # changed")

        assert not self.cell.execution_state.executed
