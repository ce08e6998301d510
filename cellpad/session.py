"""
NotebookSession: the editing session a view layer drives.

The session owns the cell store, one editing surface per cell, the kernel,
the staleness tracker and the clipboard, and exposes the commands a user
issues from menus and cell toolbars.
"""

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from cellpad.clipboard import Clipboard
from cellpad.config import Settings, get_settings
from cellpad.editor import (
    BufferEditor,
    EditorFactory,
    EditorSurface,
    IdentitySanitizer,
    MarkdownRenderer,
    Renderer,
    Sanitizer,
)
from cellpad.errors import LoadFailure
from cellpad.events import EventBus, NotebookEventType
from cellpad.kernel import ExecutionResult, NotebookKernel
from cellpad.notebook import Cell, CellKind, MoveDirection, Notebook, Output, TextMode
from cellpad.parse import ProtoCell, parse_text
from cellpad.remote import fetch_text
from cellpad.serialize import serialize, write_file
from cellpad.staleness import StalenessTracker, is_current

logger = logging.getLogger(__name__)


class NotebookSession:
    """
    A live notebook: cells, their editors, and the kernel that runs them.

    Commands that name a cell which is no longer present do nothing.
    """

    def __init__(
        self,
        kernel: Optional[NotebookKernel] = None,
        renderer: Optional[Renderer] = None,
        sanitizer: Optional[Sanitizer] = None,
        editor_factory: Optional[EditorFactory] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.events = EventBus()
        self.notebook = Notebook(events=self.events)
        self.kernel = kernel or NotebookKernel(settings=self.settings)
        self.kernel.events = self.events
        self.staleness = StalenessTracker(self.events)
        self.clipboard = Clipboard()
        self.renderer = renderer or MarkdownRenderer()
        self.sanitizer = sanitizer or IdentitySanitizer()
        self._editor_factory = editor_factory or BufferEditor
        self._editors: dict[str, EditorSurface] = {}
        self.rendered_markup: dict[str, str] = {}

    # ------------------------------------------------------------------ #
    # Loading and saving
    # ------------------------------------------------------------------ #

    def clear(self):
        """Remove every cell and dispose its editor."""
        for cell_id in self.notebook.ids():
            self.delete_cell(cell_id)
        self.notebook.blur()

    def load_cells(self, cells: Iterable[ProtoCell], fallback_cell: bool = False) -> int:
        """
        Replace the document with parsed cells.

        Args:
            cells: Proto-cells in document order
            fallback_cell: Add one empty code cell if there are no cells

        Returns:
            Number of cells loaded
        """
        self.clear()
        for proto in cells:
            self.add_cell(proto.kind, proto.text, mode=proto.mode, outputs=proto.outputs)
        if fallback_cell and not len(self.notebook):
            logger.warning("Document has no cells, starting with an empty code cell")
            self.add_cell(CellKind.CODE)
        return len(self.notebook)

    def load_text(self, text: str, fallback_cell: bool = False) -> int:
        return self.load_cells(parse_text(text), fallback_cell=fallback_cell)

    def load_file(self, path: Path, fallback_cell: bool = False) -> int:
        with open(path, "r", encoding="utf-8") as f:
            return self.load_text(f.read(), fallback_cell=fallback_cell)

    def load_remote(self, url: str) -> bool:
        """
        Load a document from a URL.

        A failed fetch leaves the session with a single empty code cell so
        there is always something to edit. Returns True if the fetch
        succeeded.
        """
        try:
            text = fetch_text(url, settings=self.settings)
        except LoadFailure as e:
            logger.warning("%s", e)
            self.load_cells([], fallback_cell=True)
            return False
        self.load_text(text, fallback_cell=True)
        return True

    def export(self) -> str:
        """The document as persisted text, built from each editor's current text."""
        return serialize(self.notebook, self.text_of)

    def save(self, path: Path) -> Path:
        path = Path(path)
        write_file(path, self.export())
        return path

    # ------------------------------------------------------------------ #
    # Editors
    # ------------------------------------------------------------------ #

    def editor(self, cell_id: str) -> Optional[EditorSurface]:
        return self._editors.get(cell_id)

    def text_of(self, cell_id: str) -> str:
        editor = self._editors.get(cell_id)
        return editor.get_text() if editor is not None else ""

    def set_text(self, cell_id: str, text: str):
        editor = self._editors.get(cell_id)
        if editor is None:
            logger.debug("set_text ignored, no cell %s", cell_id)
            return
        editor.set_text(text)

    def is_current(self, cell_id: str) -> bool:
        """True when the cell's last run matches its current text."""
        cell = self.notebook.find(cell_id)
        return cell is not None and is_current(cell, self.text_of(cell_id))

    # ------------------------------------------------------------------ #
    # Cell structure
    # ------------------------------------------------------------------ #

    def _attach(self, cell: Cell, text: str, index: Optional[int]) -> Cell:
        editor = self._editor_factory(text)
        self._editors[cell.id] = editor
        self.staleness.watch(cell, editor)
        editor.on_focus_gained(lambda: self.notebook.focus(cell.id))
        self.notebook.insert(cell, index)
        if cell.is_text and cell.mode == TextMode.RENDERED:
            self._render_text(cell)
        return cell

    def add_cell(
        self,
        kind: Union[CellKind, str] = CellKind.CODE,
        text: str = "",
        index: Optional[int] = None,
        mode: Optional[TextMode] = None,
        outputs: Optional[list[Output]] = None,
    ) -> Cell:
        """Create a cell with its editor; appended unless an index is given."""
        cell = Cell(
            kind=CellKind(kind),
            mode=mode,
            outputs=[o.model_copy(deep=True) for o in outputs or []],
        )
        return self._attach(cell, text, index)

    def _focused_index(self) -> Optional[int]:
        focused = self.notebook.find_focused()
        return self.notebook.index_of(focused.id) if focused is not None else None

    def insert_cell_above(self, kind: Union[CellKind, str] = CellKind.CODE) -> Cell:
        index = self._focused_index()
        return self.add_cell(kind, index=index if index is not None else 0)

    def insert_cell_below(self, kind: Union[CellKind, str] = CellKind.CODE) -> Cell:
        index = self._focused_index()
        return self.add_cell(kind, index=index + 1 if index is not None else None)

    def delete_cell(self, cell_id: str) -> Optional[Cell]:
        cell = self.notebook.delete(cell_id)
        editor = self._editors.pop(cell_id, None)
        if editor is not None:
            editor.dispose()
        self.rendered_markup.pop(cell_id, None)
        return cell

    def move_cell(self, cell_id: str, direction: Union[MoveDirection, str]) -> bool:
        return self.notebook.move(cell_id, direction)

    def reorder(self, old_index: int, new_index: int) -> bool:
        """Apply a drag-and-drop reorder reported by the view."""
        return self.notebook.reorder(old_index, new_index)

    def focus(self, cell_id: str):
        self.notebook.focus(cell_id)

    def toggle_output(self, cell_id: str) -> Optional[bool]:
        """Show or hide a code cell's outputs. Returns the new visibility."""
        cell = self.notebook.find(cell_id)
        if cell is None or not cell.is_code or not cell.outputs:
            return None
        cell.is_output_visible = not cell.is_output_visible
        return cell.is_output_visible

    # ------------------------------------------------------------------ #
    # Clipboard
    # ------------------------------------------------------------------ #

    def cut_cell(self) -> Optional[Cell]:
        cell = self.notebook.find_focused()
        if cell is None:
            logger.info("No cell selected to cut")
            return None
        self.clipboard.store(cell, self.text_of(cell.id))
        self.delete_cell(cell.id)
        return cell

    def copy_cell(self) -> Optional[Cell]:
        cell = self.notebook.find_focused()
        if cell is None:
            logger.info("No cell selected to copy")
            return None
        self.clipboard.store(cell, self.text_of(cell.id))
        return cell

    def paste_cell(self) -> Optional[Cell]:
        """Insert the clipboard cell after the focused cell, or at the end."""
        made = self.clipboard.materialize()
        if made is None:
            logger.info("No cell in clipboard to paste")
            return None
        cell, text = made
        index = self._focused_index()
        return self._attach(cell, text, index + 1 if index is not None else None)

    # ------------------------------------------------------------------ #
    # Running
    # ------------------------------------------------------------------ #

    def _render_text(self, cell: Cell):
        markup = self.renderer.render(self.text_of(cell.id))
        self.rendered_markup[cell.id] = self.sanitizer.sanitize(markup)
        cell.mode = TextMode.RENDERED
        cell.is_output_visible = True

    def _toggle_text(self, cell: Cell):
        if cell.mode == TextMode.EDITING:
            self._render_text(cell)
        else:
            self.rendered_markup.pop(cell.id, None)
            cell.mode = TextMode.EDITING
            cell.is_output_visible = False
            self.notebook.focus(cell.id)

    def activate_rendered(self, cell_id: str):
        """Return a rendered text cell to editing, as double-clicking its output does."""
        cell = self.notebook.find(cell_id)
        if cell is not None and cell.is_text and cell.mode == TextMode.RENDERED:
            self._toggle_text(cell)

    async def run_cell(self, cell_id: str) -> Optional[ExecutionResult]:
        """
        Run one cell.

        Code cells execute in the kernel; text cells flip between editing
        and rendered. Returns the execution result for code cells.
        """
        cell = self.notebook.find(cell_id)
        if cell is None or cell_id not in self._editors:
            logger.debug("Run ignored, no cell %s", cell_id)
            return None
        if cell.is_text:
            self._toggle_text(cell)
            return None
        return await self.kernel.run_code_cell(cell, self.text_of(cell_id))

    async def run_all(self) -> list[ExecutionResult]:
        """Run every code cell in document order, each to completion before the next."""
        results = []
        for cell in self.notebook.code_cells():
            result = await self.run_cell(cell.id)
            if result is not None:
                results.append(result)
        return results

    async def restart(self):
        """
        Empty the persistent scope and drop every code cell's outputs and run state.

        Waits for a run in flight to finish first.
        """
        await self.kernel.restart()
        for cell in self.notebook.code_cells():
            cell.reset()
            self.events.emit(NotebookEventType.EXECUTION_STATE_CHANGED, cell.id, executed=False)
        logger.info("Kernel restarted")

    async def restart_and_run_all(self) -> list[ExecutionResult]:
        await self.restart()
        return await self.run_all()

    def run_cell_sync(self, cell_id: str) -> Optional[ExecutionResult]:
        return asyncio.run(self.run_cell(cell_id))

    def run_all_sync(self) -> list[ExecutionResult]:
        return asyncio.run(self.run_all())

    def restart_sync(self):
        asyncio.run(self.restart())

    def restart_and_run_all_sync(self) -> list[ExecutionResult]:
        return asyncio.run(self.restart_and_run_all())
