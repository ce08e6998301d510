"""
Utility functions for displaying cells and outputs in the terminal.
"""

from rich.markdown import Markdown
from rich.syntax import Syntax
from rich.text import Text

from cellpad.notebook import Cell, CellKind, ErrorOutput, ImageOutput, LogOutput, Output


def format_output(output: Output) -> str:
    """
    Format an output for display (plain text).

    Args:
        output: Output appended by a run or read from a document

    Returns:
        Formatted string for display
    """
    if isinstance(output, LogOutput):
        return output.text
    if isinstance(output, ErrorOutput):
        return f"ERROR: {output.text}"
    if isinstance(output, ImageOutput):
        return f"[image {output.mime}, {len(output.data)} chars]"
    return str(output)


def format_rich_output(output: Output):
    """
    Format an output as a Rich renderable.

    Log text is shown as markdown, the way the browser view renders
    console.log output.
    """
    if isinstance(output, LogOutput):
        if is_json(output.text):
            return Syntax(output.text, "json", theme="monokai", line_numbers=False)
        return Markdown(output.text)
    if isinstance(output, ErrorOutput):
        text = Text()
        text.append("ERROR", style="bold red")
        text.append(f": {output.text}", style="red")
        return text
    if isinstance(output, ImageOutput):
        return Text(format_output(output), style="magenta")
    return Text(str(output), style="dim")


def is_json(text: str) -> bool:
    stripped = text.strip()
    return (stripped.startswith("{") and stripped.endswith("}")) or (
        stripped.startswith("[") and stripped.endswith("]")
    )


def get_cell_type_icon(kind) -> str:
    """Get a short label for the cell kind."""
    if hasattr(kind, "value"):
        kind = kind.value
    return "py" if kind == CellKind.CODE.value else "md"


def get_cell_status(cell: Cell, current: bool) -> tuple[str, str]:
    """
    Get status indicator and style for a cell.

    Args:
        cell: The cell
        current: Whether the cell's text matches its last run

    Returns:
        Tuple of (indicator_string, rich_style)
    """
    if cell.kind != CellKind.CODE:
        return ("--", "dim")
    if current:
        if any(isinstance(o, ErrorOutput) for o in cell.outputs):
            return ("err", "red")
        return ("ok", "green")
    if cell.outputs:
        return ("stale", "yellow")
    return ("--", "dim")


def truncate_text(text: str, max_length: int = 100) -> str:
    """Truncate text to max_length, adding ellipsis if needed."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
