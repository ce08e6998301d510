"""
Single-slot clipboard for cut, copy and paste of cells.
"""

from dataclasses import dataclass
from typing import Optional

from cellpad.notebook import Cell


@dataclass(frozen=True)
class ClipboardEntry:
    """A cell snapshot and the text its editor held when it was taken."""
    cell: Cell
    text: str


class Clipboard:
    """Holds at most one entry; each cut or copy replaces it, paste leaves it in place."""

    def __init__(self):
        self._entry: Optional[ClipboardEntry] = None

    @property
    def entry(self) -> Optional[ClipboardEntry]:
        return self._entry

    def is_empty(self) -> bool:
        return self._entry is None

    def store(self, cell: Cell, text: str) -> ClipboardEntry:
        self._entry = ClipboardEntry(cell=cell.model_copy(deep=True), text=text)
        return self._entry

    def clear(self):
        self._entry = None

    def materialize(self) -> Optional[tuple[Cell, str]]:
        """
        Build a new cell from the entry.

        The new cell has a fresh id and copies of the snapshot's kind, mode
        and outputs. Returns None when the clipboard is empty.
        """
        if self._entry is None:
            return None
        source = self._entry.cell
        cell = Cell(
            kind=source.kind,
            mode=source.mode,
            outputs=[o.model_copy(deep=True) for o in source.outputs],
        )
        return cell, self._entry.text
