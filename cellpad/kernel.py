"""
NotebookKernel: runs code cells against a scope that persists across runs.
"""

import ast
import asyncio
import base64
import builtins
import inspect
import json
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

import httpx
from IPython.utils.capture import capture_output

from cellpad.config import Settings, get_settings
from cellpad.events import EventBus, NotebookEventType
from cellpad.notebook import Cell, ErrorOutput, ImageOutput, LogOutput, Output

logger = logging.getLogger(__name__)

Fetch = Callable[..., Awaitable[httpx.Response]]


class PersistentScope(dict):
    """
    Name to value mapping shared by every code cell.

    Cells reach it as ``persistent_scope``. It is only ever mutated by the
    code that runs and only emptied by a kernel restart.
    """

    def names(self) -> list[str]:
        return [k for k in self.keys() if not k.startswith("_")]


def _format_value(value: Any) -> str:
    if isinstance(value, (dict, list, tuple)):
        try:
            return json.dumps(value, indent=2, default=str)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


class SandboxConsole:
    """
    Output capture surface for a single run.

    Every append lands on the cell immediately and makes the cell's output
    visible.
    """

    def __init__(self, cell: Cell, events: Optional[EventBus] = None):
        self._cell = cell
        self._events = events

    def _append(self, output: Output):
        self._cell.outputs.append(output)
        self._cell.is_output_visible = True
        if self._events is not None:
            self._events.emit(
                NotebookEventType.OUTPUT_APPENDED,
                self._cell.id,
                output=output,
                index=len(self._cell.outputs) - 1,
            )

    def log(self, *values: Any):
        self._append(LogOutput(text=" ".join(_format_value(v) for v in values)))

    def error(self, *values: Any):
        self._append(ErrorOutput(text=" ".join(str(v) for v in values)))

    def image(self, data: Union[str, bytes], mime: str = "image/png"):
        """Append an image given as base64 text, a data/http URI, or raw bytes."""
        if isinstance(data, (bytes, bytearray)):
            data = base64.b64encode(data).decode("ascii")
        self._append(ImageOutput(data=data, mime=mime))

    def print(self, *values: Any, sep: Optional[str] = " ", end: Optional[str] = "\n", file=None, flush: bool = False):
        """Stand-in for the builtin print; stdout goes to log, stderr to error."""
        if file is not None and file not in (sys.stdout, sys.stderr):
            builtins.print(*values, sep=sep, end=end, file=file, flush=flush)
            return
        text = (" " if sep is None else sep).join(str(v) for v in values)
        if file is sys.stderr:
            self._append(ErrorOutput(text=text))
        else:
            self._append(LogOutput(text=text))


@dataclass
class ExecutionResult:
    """Result of executing a code cell."""
    success: bool
    outputs: list[Output] = field(default_factory=list)
    execution_count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "outputs": [o.model_dump() for o in self.outputs],
            "execution_count": self.execution_count,
            "error": self.error,
        }


def make_fetch(timeout: float) -> Fetch:
    """Build the network capability handed to running cells."""

    async def fetch(url: str, method: str = "GET", **kwargs: Any) -> httpx.Response:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            return await client.request(method, url, **kwargs)

    return fetch


class NotebookKernel:
    """
    Executes code cells one at a time.

    Each run gets a fresh global namespace holding exactly five bindings:
    ``console``, ``print``, ``fetch``, ``persistent_scope`` and
    ``cell_scope``. Only ``persistent_scope`` survives between runs.
    Top-level ``await`` is allowed, so a cell can await ``fetch``; the
    kernel waits for it without time limit. Failures never escape: they
    become an error output on the cell.
    """

    def __init__(
        self,
        events: Optional[EventBus] = None,
        fetch: Optional[Fetch] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.events = events or EventBus()
        self.scope = PersistentScope()
        self.fetch = fetch or make_fetch(self.settings.fetch_timeout)
        self.execution_count = 0
        self._history: list[tuple[int, str, ExecutionResult]] = []
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def busy(self) -> bool:
        """True while a cell is running."""
        return self._lock is not None and self._lock.locked()

    def _run_lock(self) -> asyncio.Lock:
        # One lock per event loop; the sync wrappers start a new loop per call.
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def _sandbox(self, console: SandboxConsole) -> dict[str, Any]:
        return {
            "__name__": "__cell__",
            "__builtins__": builtins,
            "console": console,
            "print": console.print,
            "fetch": self.fetch,
            "persistent_scope": self.scope,
            "cell_scope": {},
        }

    async def _exec(self, code: str, namespace: dict[str, Any], filename: str):
        compiled = compile(code, filename, "exec", flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT)
        if compiled.co_flags & inspect.CO_COROUTINE:
            await eval(compiled, namespace)
        else:
            exec(compiled, namespace)

    async def run_code_cell(self, cell: Cell, code: str) -> ExecutionResult:
        """
        Run code as the body of a cell.

        Waits for any run already in flight, so two cells never execute
        concurrently.

        Args:
            cell: Cell whose outputs and execution state are replaced
            code: The cell's current text

        Returns:
            ExecutionResult with the outputs appended during the run
        """
        async with self._run_lock():
            return await self._run(cell, code)

    async def _run(self, cell: Cell, code: str) -> ExecutionResult:
        self.execution_count += 1
        cell.outputs = []
        console = SandboxConsole(cell, self.events)
        namespace = self._sandbox(console)
        error = None

        logger.debug("Running %s (execution %d)", cell.id, self.execution_count)
        with capture_output(display=False) as captured:
            try:
                await self._exec(code, namespace, f"<{cell.id}>")
            except (Exception, SystemExit) as e:
                error = f"{type(e).__name__}: {e}"

        if captured.stdout:
            console.log(captured.stdout.rstrip("\n"))
        if captured.stderr:
            console.error(captured.stderr.rstrip("\n"))
        if error is not None:
            logger.debug("Cell %s raised %s", cell.id, error)
            console.error("Uncaught:", error)

        cell.mark_executed(code)
        self.events.emit(NotebookEventType.EXECUTION_STATE_CHANGED, cell.id, executed=True)

        result = ExecutionResult(
            success=error is None,
            outputs=list(cell.outputs),
            execution_count=self.execution_count,
            error=error,
        )
        self._history.append((self.execution_count, code, result))
        return result

    def execute_cell(self, code: str, cell: Optional[Cell] = None) -> ExecutionResult:
        """Synchronous run for callers outside an event loop."""
        return asyncio.run(self.run_code_cell(cell or Cell(), code))

    def get_history(self) -> list[tuple[int, str, ExecutionResult]]:
        return self._history.copy()

    def clear_history(self):
        self._history.clear()

    def reset(self):
        """Empty the persistent scope and forget execution history."""
        self.scope.clear()
        self.execution_count = 0
        self._history.clear()

    async def restart(self):
        """Reset once any run in flight has finished."""
        async with self._run_lock():
            self.reset()

    def get_variable(self, name: str) -> Any:
        return self.scope.get(name)

    def set_variable(self, name: str, value: Any):
        self.scope[name] = value

    def del_variable(self, name: str):
        if name in self.scope:
            del self.scope[name]

    def get_defined_names(self) -> list[str]:
        """Names in the persistent scope, excluding private ones."""
        return self.scope.names()
