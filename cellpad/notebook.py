"""
Notebook: cell records and the ordered cell store.
"""

import itertools
import logging
from enum import Enum
from typing import Annotated, Iterator, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from cellpad.errors import DuplicateCellError
from cellpad.events import EventBus, NotebookEventType

logger = logging.getLogger(__name__)

_cell_counter = itertools.count()


def new_cell_id() -> str:
    """Return an id no other cell in this process has had."""
    return f"cell{next(_cell_counter)}"


class CellKind(str, Enum):
    """Kind of notebook cell."""
    CODE = "code"
    TEXT = "text"


class TextMode(str, Enum):
    """Display mode of a text cell."""
    EDITING = "editing"
    RENDERED = "rendered"


class MoveDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class LogOutput(BaseModel):
    """Console text written by a run."""
    type: Literal["log"] = "log"
    text: str


class ErrorOutput(BaseModel):
    """An error reported by a run, either explicitly or as an uncaught exception."""
    type: Literal["error"] = "error"
    text: str


class ImageOutput(BaseModel):
    """An image emitted by a run: base64 payload or a data/http URI."""
    type: Literal["image"] = "image"
    data: str
    mime: str = "image/png"

    @property
    def src(self) -> str:
        """URI usable as an image source."""
        if self.data.startswith(("data:", "http", "./")):
            return self.data
        return f"data:{self.mime};base64,{self.data}"


Output = Annotated[Union[LogOutput, ErrorOutput, ImageOutput], Field(discriminator="type")]


class ExecutionState(BaseModel):
    """Whether a cell has run, and the text it ran."""
    executed: bool = False
    last_executed_text: Optional[str] = None


class Cell(BaseModel):
    """
    Metadata about one notebook cell.

    The cell's source text is not stored here; it belongs to the editor
    surface registered under the same id.
    """

    id: str = Field(default_factory=new_cell_id)
    kind: CellKind = CellKind.CODE
    mode: Optional[TextMode] = None
    outputs: list[Output] = Field(default_factory=list)
    is_output_visible: Optional[bool] = None
    execution_state: ExecutionState = Field(default_factory=ExecutionState)

    @model_validator(mode="after")
    def _apply_kind_defaults(self) -> "Cell":
        if self.kind == CellKind.CODE:
            self.mode = None
        else:
            if self.mode is None:
                self.mode = TextMode.EDITING
            self.outputs = []
        if self.is_output_visible is None:
            if self.kind == CellKind.CODE:
                self.is_output_visible = bool(self.outputs)
            else:
                self.is_output_visible = self.mode == TextMode.RENDERED
        return self

    @property
    def is_code(self) -> bool:
        return self.kind == CellKind.CODE

    @property
    def is_text(self) -> bool:
        return self.kind == CellKind.TEXT

    def mark_executed(self, text: str):
        self.execution_state = ExecutionState(executed=True, last_executed_text=text)

    def mark_unexecuted(self):
        self.execution_state = ExecutionState()

    def reset(self):
        """Drop outputs and execution state, as a kernel restart does."""
        self.outputs = []
        self.is_output_visible = False
        self.mark_unexecuted()


class Notebook:
    """
    Ordered store of cells.

    Order is document order: it is both the order "run all" follows and
    the order the serializer writes. Ids are unique. Operations that name
    a cell no longer present are no-ops, since a view may fire the same
    command twice.
    """

    def __init__(self, cells: Optional[list[Cell]] = None, events: Optional[EventBus] = None):
        self.events = events or EventBus()
        self._cells: list[Cell] = []
        self._focused_id: Optional[str] = None
        for cell in cells or []:
            self.insert(cell)

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Cell]:
        return iter(list(self._cells))

    def __contains__(self, cell_id: str) -> bool:
        return self.index_of(cell_id) is not None

    @property
    def cells(self) -> list[Cell]:
        """Snapshot of the cells in document order."""
        return list(self._cells)

    def ids(self) -> list[str]:
        return [c.id for c in self._cells]

    def code_cells(self) -> list[Cell]:
        return [c for c in self._cells if c.is_code]

    def find(self, cell_id: str) -> Optional[Cell]:
        for cell in self._cells:
            if cell.id == cell_id:
                return cell
        return None

    def index_of(self, cell_id: str) -> Optional[int]:
        for i, cell in enumerate(self._cells):
            if cell.id == cell_id:
                return i
        return None

    def insert(self, cell: Cell, index: Optional[int] = None) -> Cell:
        """
        Insert a cell.

        Args:
            cell: Cell to insert; its id must not already be present
            index: Position to insert before. Defaults to the end; values
                past the end append and negative values insert first.

        Returns:
            The inserted cell
        """
        if self.index_of(cell.id) is not None:
            raise DuplicateCellError(cell.id)
        if index is None or index > len(self._cells):
            index = len(self._cells)
        index = max(0, index)
        self._cells.insert(index, cell)
        self.events.emit(NotebookEventType.CELL_CREATED, cell.id, index=index)
        return cell

    def delete(self, cell_id: str) -> Optional[Cell]:
        """Remove a cell by id. Returns the removed cell, or None if absent."""
        index = self.index_of(cell_id)
        if index is None:
            logger.debug("Delete ignored, no cell %s", cell_id)
            return None
        cell = self._cells.pop(index)
        self.events.emit(NotebookEventType.CELL_DELETED, cell_id, index=index)
        return cell

    def move(self, cell_id: str, direction: Union[MoveDirection, str]) -> bool:
        """Swap a cell with its neighbour. Returns False at the boundaries."""
        direction = MoveDirection(direction)
        index = self.index_of(cell_id)
        if index is None:
            logger.debug("Move ignored, no cell %s", cell_id)
            return False
        target = index - 1 if direction == MoveDirection.UP else index + 1
        if target < 0 or target >= len(self._cells):
            return False
        self._cells[index], self._cells[target] = self._cells[target], self._cells[index]
        self.events.emit(NotebookEventType.CELL_MOVED, cell_id, old_index=index, new_index=target)
        return True

    def reorder(self, old_index: int, new_index: int) -> bool:
        """Move the cell at old_index to new_index, as a drag-and-drop does."""
        count = len(self._cells)
        if old_index == new_index:
            return False
        if not (0 <= old_index < count and 0 <= new_index < count):
            logger.debug("Reorder ignored, %s -> %s out of range", old_index, new_index)
            return False
        cell = self._cells.pop(old_index)
        self._cells.insert(new_index, cell)
        self.events.emit(NotebookEventType.CELL_MOVED, cell.id, old_index=old_index, new_index=new_index)
        return True

    def focus(self, cell_id: str):
        """Record the cell whose editing surface most recently gained focus."""
        if self.index_of(cell_id) is None:
            logger.debug("Focus ignored, no cell %s", cell_id)
            return
        self._focused_id = cell_id

    def blur(self):
        """Forget focus, so the first cell counts as focused again."""
        self._focused_id = None

    def find_focused(self) -> Optional[Cell]:
        """
        The focused cell.

        Falls back to the first cell only while nothing has been focused.
        Once the focused cell is deleted nothing is focused, so the result
        is None until another cell gains focus.
        """
        if self._focused_id is not None:
            return self.find(self._focused_id)
        if self._cells:
            return self._cells[0]
        return None
