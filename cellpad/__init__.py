"""
cellpad: a notebook of code and text cells with a persistent scope.

This package provides a lightweight notebook system where:
- Code cells run one at a time and share a persistent scope
- Text cells are markdown that toggles between editing and rendered
- Documents are plain text files with marked code, text and output blocks
"""

from cellpad.kernel import ExecutionResult, NotebookKernel
from cellpad.notebook import Cell, CellKind, Notebook, TextMode
from cellpad.parse import ProtoCell, parse_text
from cellpad.serialize import serialize
from cellpad.session import NotebookSession

__version__ = "0.1.0"
__all__ = [
    "NotebookKernel",
    "ExecutionResult",
    "Notebook",
    "Cell",
    "CellKind",
    "TextMode",
    "ProtoCell",
    "parse_text",
    "serialize",
    "NotebookSession",
]
