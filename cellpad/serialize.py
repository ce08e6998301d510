"""
Serializer for the flat cellpad document format; the inverse of cellpad.parse.
"""

import html
import re
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from cellpad.notebook import Cell, CellKind, ImageOutput, Output, TextMode
from cellpad.parse import (
    CLOSE_TOKEN,
    CODE_END,
    CODE_START,
    RENDER_QUALIFIER,
    TEXT_OPENER,
    ProtoCell,
)

OUTPUT_HEADER = "/* Output Sample"

_UNSAFE_SRC_CHARS = re.compile(r"[<>\"']")


def escape_output_text(text: str) -> str:
    """Entity-escape ``<>&"'`` in output text."""
    return html.escape(text, quote=True)


def image_tag(output: ImageOutput) -> str:
    """Self-closing reference tag for an image output."""
    src = _UNSAFE_SRC_CHARS.sub("", output.src)
    return f'<img src="{src}" style="height:auto; width:100%;" />'


def _output_lines(outputs: Sequence[Output]) -> list[str]:
    lines = [OUTPUT_HEADER, ""]
    for output in outputs:
        if isinstance(output, ImageOutput):
            lines.append(image_tag(output))
        else:
            lines.append(escape_output_text(output.text))
        lines.append("")
    lines.append(CLOSE_TOKEN)
    return lines


def _block_lines(
    kind: CellKind,
    text: str,
    mode: Optional[TextMode] = None,
    outputs: Sequence[Output] = (),
) -> list[str]:
    if kind == CellKind.TEXT:
        opener = f"{TEXT_OPENER} {RENDER_QUALIFIER}" if mode == TextMode.RENDERED else TEXT_OPENER
        return [opener, text, CLOSE_TOKEN, ""]

    lines = [CODE_START, text, CODE_END, ""]
    if outputs:
        lines.extend(_output_lines(outputs))
        lines.append("")
    return lines


def serialize(cells: Iterable[Cell], text_of: Callable[[str], str]) -> str:
    """
    Write cells as a document.

    Args:
        cells: Cells in document order
        text_of: Returns the current text of the cell with the given id

    Returns:
        Document text with one blank line between blocks
    """
    lines: list[str] = []
    for cell in cells:
        lines.extend(_block_lines(cell.kind, text_of(cell.id), cell.mode, cell.outputs))
    return "\n".join(lines).strip()


def serialize_proto_cells(cells: Iterable[ProtoCell]) -> str:
    """Write parsed proto-cells back out, e.g. to normalize a document."""
    lines: list[str] = []
    for cell in cells:
        lines.extend(_block_lines(cell.kind, cell.text, cell.mode, cell.outputs))
    return "\n".join(lines).strip()


def write_file(path: Path, content: str):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content + "\n")
