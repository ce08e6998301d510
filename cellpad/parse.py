"""
Parser for the flat cellpad document format.

A document is a sequence of blocks separated by blank lines::

    // [CODE STARTS]
    console.log(1 + 1)
    // [CODE ENDS]

    /* Output Sample

    2

    */

    /* Markdown (render)
    # Notes
    */

Blocks do not nest and marker lines have no escape. Parsing never fails:
lines outside any block are dropped and overlapping markers close the
previous block early.
"""

import html
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from cellpad.notebook import CellKind, LogOutput, Output, TextMode

logger = logging.getLogger(__name__)

CODE_START = "// [CODE STARTS]"
CODE_END = "// [CODE ENDS]"
TEXT_OPENER = "/* Markdown"
RENDER_QUALIFIER = "(render)"
OUTPUT_OPENER = "/* Output"
CLOSE_TOKEN = "*/"


class ProtoCell(BaseModel):
    """A cell as read from a document, before it is given an id and an editor."""
    kind: CellKind
    text: str
    mode: Optional[TextMode] = None
    outputs: list[Output] = Field(default_factory=list)


class _Block(Enum):
    CODE = "code"
    TEXT = "text"
    OUTPUT = "output"


class _Scanner:
    """Line-by-line state for one parse."""

    def __init__(self):
        self.cells: list[ProtoCell] = []
        self.block: Optional[_Block] = None
        self.code_lines: list[str] = []
        self.text_lines: list[str] = []
        self.output_lines: list[str] = []
        self.text_mode = TextMode.EDITING

    def flush_code(self):
        body = "\n".join(self.code_lines).strip()
        self.code_lines = []
        if body:
            self.cells.append(ProtoCell(kind=CellKind.CODE, text=body))

    def flush_text(self):
        body = "\n".join(self.text_lines).strip()
        self.text_lines = []
        if body:
            self.cells.append(ProtoCell(kind=CellKind.TEXT, text=body, mode=self.text_mode))

    def flush_output(self):
        body = "\n".join(self.output_lines).strip()
        self.output_lines = []
        if not body:
            return
        # Attaches to the nearest earlier code cell, even across text cells.
        for cell in reversed(self.cells):
            if cell.kind == CellKind.CODE:
                cell.outputs.append(LogOutput(text=html.unescape(body)))
                return
        logger.debug("Discarding output block with no preceding code cell")

    def flush_all(self):
        self.flush_code()
        self.flush_text()
        self.flush_output()

    def open(self, block: _Block):
        self.flush_all()
        self.block = block

    def close(self):
        if self.block == _Block.CODE:
            self.flush_code()
        elif self.block == _Block.TEXT:
            self.flush_text()
        elif self.block == _Block.OUTPUT:
            self.flush_output()
        self.block = None

    def feed(self, line: str):
        stripped = line.strip()

        if stripped == CODE_START:
            self.open(_Block.CODE)
            return
        if stripped == CODE_END:
            if self.block != _Block.CODE:
                logger.debug("Code end marker outside a code block")
            self.flush_code()
            if self.block == _Block.CODE:
                self.block = None
            return
        if stripped.startswith(TEXT_OPENER):
            self.open(_Block.TEXT)
            self.text_mode = TextMode.RENDERED if RENDER_QUALIFIER in stripped else TextMode.EDITING
            return
        if stripped.startswith(OUTPUT_OPENER):
            self.open(_Block.OUTPUT)
            return

        if self.block in (_Block.TEXT, _Block.OUTPUT) and stripped.endswith(CLOSE_TOKEN):
            content = stripped[: -len(CLOSE_TOKEN)].strip()
            if content:
                self._lines_for(self.block).append(content)
            self.close()
            return

        if self.block is None:
            if stripped:
                logger.debug("Dropping line outside any block: %r", line)
            return
        self._lines_for(self.block).append(line)

    def _lines_for(self, block: _Block) -> list[str]:
        if block == _Block.CODE:
            return self.code_lines
        if block == _Block.TEXT:
            return self.text_lines
        return self.output_lines

    def finish(self) -> list[ProtoCell]:
        self.flush_all()
        self.block = None
        return self.cells


def parse_text(text: str) -> list[ProtoCell]:
    """
    Split a document into proto-cells.

    Args:
        text: Full document text

    Returns:
        Proto-cells in document order; empty for empty or unrecognized input
    """
    scanner = _Scanner()
    for line in text.split("\n"):
        scanner.feed(line.rstrip("\r"))
    return scanner.finish()


def parse_file(path: Path) -> list[ProtoCell]:
    with open(path, "r", encoding="utf-8") as f:
        return parse_text(f.read())
