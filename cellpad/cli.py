"""
CLI interface for cellpad with Rich TUI.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm, Prompt
from rich.rule import Rule
from rich.status import Status
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from cellpad.config import get_settings
from cellpad.notebook import Cell, CellKind, ErrorOutput, MoveDirection, TextMode
from cellpad.parse import parse_file
from cellpad.serialize import serialize_proto_cells, write_file
from cellpad.session import NotebookSession
from cellpad.utils import format_rich_output, get_cell_status, get_cell_type_icon, truncate_text

console = Console()
logger = logging.getLogger(__name__)

STARTER_DOCUMENT = """/* Markdown (render)
# Notes

Code cells share `persistent_scope`; everything else is local to a run.
*/

// [CODE STARTS]
persistent_scope["greeting"] = "hello"
console.log(persistent_scope["greeting"])
// [CODE ENDS]
"""


def render_cells(session: NotebookSession, current_id: Optional[str] = None):
    """Print every cell and its outputs."""
    for i, cell in enumerate(session.notebook):
        is_current = cell.id == current_id
        source = session.text_of(cell.id)
        status_char, _ = get_cell_status(cell, session.is_current(cell.id))
        type_icon = get_cell_type_icon(cell.kind)
        cursor = " > " if is_current else "   "

        if cell.kind == CellKind.CODE:
            title_label = f"[{i}] code"
        else:
            title_label = f"[{i}] text ({cell.mode.value})"

        if is_current:
            border_style = "bright_green"
            title_style = "bold bright_green"
        elif status_char == "err":
            border_style = "red"
            title_style = "red"
        elif status_char == "stale":
            border_style = "yellow"
            title_style = "yellow"
        elif status_char == "ok":
            border_style = "dim green"
            title_style = "dim green"
        else:
            border_style = "dim"
            title_style = "dim"

        if status_char == "ok":
            subtitle = "[green]ok[/green]"
        elif status_char == "err":
            subtitle = "[red]err[/red]"
        elif status_char == "stale":
            subtitle = "[yellow]stale[/yellow]"
        else:
            subtitle = None

        if not source.strip():
            content = Text("(empty)", style="dim italic")
        elif cell.kind == CellKind.CODE:
            content = Syntax(source, "python", theme="monokai", line_numbers=True, word_wrap=True)
        elif cell.mode == TextMode.RENDERED:
            content = Markdown(source)
        else:
            content = Text(source)

        console.print(Panel(
            content,
            title=f"[{title_style}]{cursor}{type_icon}  {title_label}[/{title_style}]",
            title_align="left",
            subtitle=subtitle,
            subtitle_align="right",
            border_style=border_style,
            padding=(0, 1),
        ))

        if cell.kind == CellKind.CODE and cell.outputs:
            if not cell.is_output_visible:
                console.print(f"   [dim]Output hidden ({len(cell.outputs)})[/dim]")
                continue
            for output in cell.outputs:
                is_error = isinstance(output, ErrorOutput)
                console.print(Panel(
                    format_rich_output(output),
                    title="[red]Error[/red]" if is_error else "[blue]Output[/blue]",
                    title_align="left",
                    border_style="red" if is_error else "blue",
                    padding=(0, 1),
                ))


class NotebookEditor:
    """Interactive notebook editor with Rich TUI."""

    def __init__(self, session: NotebookSession, path: Optional[Path] = None):
        self.session = session
        self.path = path
        self.running = True
        self.modified = False
        self._status_message = ""

    def _set_message(self, message: str):
        """Set a status message to display on next render."""
        self._status_message = message

    @property
    def current_cell(self) -> Optional[Cell]:
        return self.session.notebook.find_focused()

    @property
    def current_index(self) -> int:
        cell = self.current_cell
        if cell is None:
            return 0
        return self.session.notebook.index_of(cell.id) or 0

    def select(self, index: int):
        """Focus the cell at index, clamped to the document."""
        cells = self.session.notebook.cells
        if not cells:
            return
        index = max(0, min(index, len(cells) - 1))
        self.session.focus(cells[index].id)

    def display_header(self):
        """Display the header with notebook info."""
        name = self.path.name if self.path else "untitled"
        parts = [f"[bold white]{name}[/bold white]"]
        if self.modified:
            parts.append("[yellow]*modified[/yellow]")

        cell_count = len(self.session.notebook)
        if cell_count > 0:
            parts.append(f"[dim]Cell {self.current_index + 1}/{cell_count}[/dim]")
        else:
            parts.append("[dim]No cells[/dim]")

        variables = len(self.session.kernel.get_defined_names())
        if variables:
            parts.append(f"[dim]{variables} in scope[/dim]")
        if not self.session.clipboard.is_empty():
            parts.append("[dim]clipboard: 1[/dim]")

        console.print(Panel(
            "  |  ".join(parts),
            title="[bold blue]cellpad[/bold blue]",
            border_style="blue",
            padding=(0, 1),
        ))

    def display_cells(self):
        """Display all cells with current cell highlighted."""
        console.clear()
        self.display_header()

        if self._status_message:
            console.print(f"  {self._status_message}")
            self._status_message = ""

        if not len(self.session.notebook):
            console.print()
            console.print(Panel(
                "[bold]This notebook is empty.[/bold]\n\n"
                "  • Press [bold cyan]a[/bold cyan] to add a code cell\n"
                "  • Press [bold cyan]t[/bold cyan] to add a text cell\n"
                "  • Press [bold cyan]p[/bold cyan] to paste from the clipboard\n"
                "  • Press [bold cyan]h[/bold cyan] for all shortcuts",
                border_style="cyan",
                title="[bold blue]Getting Started[/bold blue]",
            ))
            return

        console.print()
        current = self.current_cell
        render_cells(self.session, current.id if current else None)

    def display_command_bar(self):
        """Display compact command bar at bottom."""
        console.print()
        console.print(Rule(style="dim"))

        commands = [
            ("Enter", "Edit"),
            ("e", "Run"),
            ("E", "RunAll"),
            ("a/b", "Add"),
            ("t/T", "Text"),
            ("d", "Del"),
            ("x/c/p", "Cut/Copy/Paste"),
            ("j/k", "Nav"),
            ("J/K", "Move"),
            ("o", "Output"),
            ("s", "Save"),
            ("h", "Help"),
            ("q", "Quit"),
        ]

        bar = Text()
        for i, (key, action) in enumerate(commands):
            if i > 0:
                bar.append("  ", style="dim")
            bar.append(key, style="bold cyan")
            bar.append(f":{action}", style="dim")

        console.print(bar, justify="center")
        console.print(Rule(style="dim"))

    def edit_current_cell(self):
        """Open editor for current cell."""
        cell = self.current_cell
        if cell is None:
            self._set_message("[yellow]No cells to edit[/yellow]")
            return

        source = self.session.text_of(cell.id)
        console.print()
        console.print(f"[bold]Editing cell {self.current_index} [{get_cell_type_icon(cell.kind)}][/bold]")
        if source.strip():
            console.print("[dim]Current content:[/dim]")
            if cell.kind == CellKind.CODE:
                console.print(Syntax(source, "python", theme="monokai", line_numbers=True))
            else:
                console.print(Panel(Text(source), border_style="dim"))
            console.print()

        console.print("[dim]Enter new content (empty line to finish, 'cancel' to abort):[/dim]")

        lines = []
        line_num = 1
        while True:
            try:
                line = console.input(f"[green]{line_num:>3}[/green] | ")
                if line.strip() == "cancel":
                    self._set_message("[yellow]Edit cancelled[/yellow]")
                    return
                if line == "" and lines:
                    break
                lines.append(line)
                line_num += 1
            except KeyboardInterrupt:
                self._set_message("[yellow]Edit cancelled[/yellow]")
                return

        new_source = "\n".join(lines)
        if lines and new_source != source:
            self.session.set_text(cell.id, new_source)
            self.modified = True
            self._set_message("[green]Cell updated[/green]")
        else:
            self._set_message("[dim]No changes[/dim]")

    def execute_current_cell(self):
        """Run the current cell (text cells toggle rendering)."""
        cell = self.current_cell
        if cell is None:
            self._set_message("[yellow]No cells to run[/yellow]")
            return

        index = self.current_index
        if cell.kind == CellKind.TEXT:
            self.session.run_cell_sync(cell.id)
            self._set_message(f"[green]Cell {index} is now {cell.mode.value}[/green]")
            return

        with Status(f"[bold]Running cell {index}...[/bold]", console=console, spinner="dots"):
            result = self.session.run_cell_sync(cell.id)

        self.modified = True
        if result is not None and result.success:
            self._set_message(f"[green]Cell {index} executed[/green]")
        else:
            error = result.error if result is not None else "cell not found"
            self._set_message(f"[red]Error in cell {index}: {error}[/red]")

    def execute_all_cells(self, restart: bool = False):
        """Run all code cells in order, optionally after a restart."""
        code_cells = self.session.notebook.code_cells()
        if not code_cells:
            self._set_message("[yellow]No code cells to run[/yellow]")
            return

        if restart:
            self.session.restart_sync()

        console.print()
        error_count = 0
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
        ) as progress:
            task = progress.add_task("Running cells...", total=len(code_cells))
            for cell in code_cells:
                index = self.session.notebook.index_of(cell.id)
                progress.update(task, description=f"Cell {index}...")
                result = self.session.run_cell_sync(cell.id)
                if result is not None and not result.success:
                    error_count += 1
                progress.update(task, advance=1)

        self.modified = True
        if error_count:
            self._set_message(f"[yellow]Ran {len(code_cells)} cells, {error_count} error(s)[/yellow]")
        else:
            self._set_message(f"[green]All {len(code_cells)} cells executed[/green]")

    def add_cell(self, kind: CellKind, above: bool = False):
        if above:
            cell = self.session.insert_cell_above(kind)
        else:
            cell = self.session.insert_cell_below(kind)
        self.session.focus(cell.id)
        self.modified = True
        self._set_message(f"[green]Added {kind.value} cell at position {self.current_index}[/green]")

    def delete_current_cell(self):
        cell = self.current_cell
        if cell is None:
            self._set_message("[yellow]No cells to delete[/yellow]")
            return
        index = self.current_index
        if Confirm.ask(f"Delete cell {index}?"):
            self.session.delete_cell(cell.id)
            self.select(index)
            self.modified = True
            self._set_message("[green]Cell deleted[/green]")

    def move_current_cell(self, direction: MoveDirection):
        cell = self.current_cell
        if cell is None or not self.session.move_cell(cell.id, direction):
            self._set_message(f"[yellow]Cannot move {direction.value}[/yellow]")
            return
        self.session.focus(cell.id)
        self.modified = True
        self._set_message(f"[green]Cell moved {direction.value}[/green]")

    def cut_cell(self):
        index = self.current_index
        if self.session.cut_cell() is None:
            self._set_message("[yellow]No cell selected to cut[/yellow]")
            return
        self.select(index)
        self.modified = True
        self._set_message("[green]Cell cut to clipboard[/green]")

    def copy_cell(self):
        if self.session.copy_cell() is None:
            self._set_message("[yellow]No cell selected to copy[/yellow]")
            return
        self._set_message("[green]Cell copied to clipboard[/green]")

    def paste_cell(self):
        cell = self.session.paste_cell()
        if cell is None:
            self._set_message("[yellow]No cell in clipboard to paste[/yellow]")
            return
        self.session.focus(cell.id)
        self.modified = True
        self._set_message("[green]Cell pasted from clipboard[/green]")

    def toggle_output(self):
        cell = self.current_cell
        if cell is None or self.session.toggle_output(cell.id) is None:
            self._set_message("[dim]No output to toggle[/dim]")

    def restart_kernel(self):
        if Confirm.ask("Restart the kernel? All variables will be lost."):
            self.session.restart_sync()
            self._set_message("[green]Kernel restarted[/green]")

    def restart_and_run_all(self):
        if Confirm.ask("Restart the kernel and run all cells? All variables will be lost."):
            self.execute_all_cells(restart=True)

    def save_notebook(self):
        path = self.path
        if path is None:
            path = Path(Prompt.ask("Enter file path", default="notebook.js"))
        self.session.save(path)
        self.path = path
        self.modified = False
        self._set_message(f"[green]Saved to {path}[/green]")

    def show_variables(self):
        """Show the names in the persistent scope."""
        kernel = self.session.kernel
        variables = kernel.get_defined_names()

        if not variables:
            console.print("\n[yellow]Persistent scope is empty[/yellow]")
            console.input("\n[dim]Press Enter to continue...[/dim]")
            return

        console.print()
        table = Table(title="Persistent Scope", border_style="cyan", show_lines=True)
        table.add_column("Name", style="bold cyan", no_wrap=True)
        table.add_column("Type", style="yellow")
        table.add_column("Value", max_width=60, overflow="ellipsis")

        for name in sorted(variables):
            value = kernel.get_variable(name)
            try:
                var_str = truncate_text(repr(value), 60)
            except Exception:
                var_str = "<unable to repr>"
            table.add_row(name, type(value).__name__, var_str)

        console.print(table)
        console.input("\n[dim]Press Enter to continue...[/dim]")

    def show_help(self):
        """Show detailed help."""
        console.print()

        help_sections = [
            ("Navigation", [
                ("j / down", "Next cell"),
                ("k / up", "Previous cell"),
                ("g / G", "First / last cell"),
            ]),
            ("Cells", [
                ("Enter", "Edit current cell"),
                ("e", "Run current cell (text cells toggle rendering)"),
                ("a / b", "Add code cell below / above"),
                ("t / T", "Add text cell below / above"),
                ("d", "Delete current cell"),
                ("J / K", "Move cell down / up"),
                ("o", "Show or hide output"),
            ]),
            ("Clipboard", [
                ("x", "Cut cell"),
                ("c", "Copy cell"),
                ("p", "Paste cell below"),
            ]),
            ("Kernel", [
                ("E", "Run all"),
                ("r", "Restart"),
                ("R", "Restart and run all"),
                ("?", "Show persistent scope"),
            ]),
            ("General", [
                ("s", "Save"),
                ("h", "Show this help"),
                ("q", "Quit"),
            ]),
        ]

        for section_name, bindings in help_sections:
            table = Table(
                show_header=False,
                box=None,
                padding=(0, 2),
                title=f"[bold]{section_name}[/bold]",
                title_justify="left",
            )
            table.add_column("Key", style="bold cyan", no_wrap=True, min_width=12)
            table.add_column("Action")
            for key, action in bindings:
                table.add_row(key, action)
            console.print(table)
            console.print()

        console.print("[dim]Tip: values stored in persistent_scope survive until restart.[/dim]")
        console.input("[dim]Press Enter to continue...[/dim]")

    def handle_key(self, key: str):
        """Dispatch one command key."""
        if key == "q":
            if self.modified and Confirm.ask("Save before quitting?"):
                self.save_notebook()
            self.running = False
        elif key == "h":
            self.show_help()
        elif key in ("", "enter"):
            self.edit_current_cell()
        elif key == "e":
            self.execute_current_cell()
        elif key == "E":
            self.execute_all_cells()
        elif key == "a":
            self.add_cell(CellKind.CODE)
        elif key == "b":
            self.add_cell(CellKind.CODE, above=True)
        elif key == "t":
            self.add_cell(CellKind.TEXT)
        elif key == "T":
            self.add_cell(CellKind.TEXT, above=True)
        elif key == "d":
            self.delete_current_cell()
        elif key == "x":
            self.cut_cell()
        elif key == "c":
            self.copy_cell()
        elif key == "p":
            self.paste_cell()
        elif key == "o":
            self.toggle_output()
        elif key == "r":
            self.restart_kernel()
        elif key == "R":
            self.restart_and_run_all()
        elif key == "s":
            self.save_notebook()
        elif key == "?":
            self.show_variables()
        elif key in ("j", "down"):
            self.select(self.current_index + 1)
        elif key in ("k", "up"):
            self.select(self.current_index - 1)
        elif key == "g":
            self.select(0)
        elif key == "G":
            self.select(len(self.session.notebook) - 1)
        elif key == "J":
            self.move_current_cell(MoveDirection.DOWN)
        elif key == "K":
            self.move_current_cell(MoveDirection.UP)
        else:
            self._set_message(f"[dim]Unknown command: '{key}' (press 'h' for help)[/dim]")

    def run(self):
        """Run the interactive editor."""
        while self.running:
            self.display_cells()
            self.display_command_bar()

            try:
                key = console.input("\n[bold cyan]> [/bold cyan]").strip()
            except (KeyboardInterrupt, EOFError):
                key = "q"
            self.handle_key(key)

        console.print("\n[green]Goodbye![/green]")


@click.group()
@click.option("--log-level", default=None, help="Override CELLPAD_LOG_LEVEL")
def main(log_level: Optional[str]):
    """cellpad: a notebook of code and text cells sharing one persistent scope."""
    level = (log_level or get_settings().log_level).upper()
    # Log records go to the process stderr, never to a stream a running cell captures.
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(file=sys.__stderr__), show_path=False)],
        force=True,
    )


@main.command()
@click.argument("path", type=click.Path(), default="notebook.js")
def new(path: str):
    """Create a new notebook."""
    target = Path(path)
    if target.exists():
        console.print(f"[red]{path} already exists[/red]")
        sys.exit(1)
    write_file(target, STARTER_DOCUMENT.strip())

    console.print(Panel(
        f"[green]Created:[/green] {path}\n"
        f"[dim]Cells:[/dim] 2 (1 code, 1 text)",
        title="[bold blue]cellpad[/bold blue]",
        border_style="green",
    ))
    console.print(f"\n[dim]Edit with:[/dim] cellpad edit {path}")


@main.command()
@click.argument("path", type=click.Path(), required=False, default=None)
def edit(path: Optional[str]):
    """Edit a notebook with the interactive TUI.

    Without PATH, opens CELLPAD_NOTEBOOK_URL if set, else an empty notebook.
    """
    settings = get_settings()
    session = NotebookSession(settings=settings)
    target = Path(path) if path else None

    if target is not None and target.exists():
        session.load_file(target, fallback_cell=True)
    elif target is None and settings.notebook_url:
        session.load_remote(settings.notebook_url)
    else:
        session.load_cells([], fallback_cell=True)
    logger.info("Editing %d cells", len(session.notebook))

    NotebookEditor(session, target).run()


@main.command()
@click.argument("path", type=click.Path(exists=True))
def show(path: str):
    """Print a notebook's cells and stored outputs."""
    session = NotebookSession()
    session.load_file(Path(path))
    if not len(session.notebook):
        console.print("[yellow]No cells found[/yellow]")
        return
    render_cells(session)


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("--write", "-w", is_flag=True, help="Write the new outputs back to PATH")
def run(path: str, write: bool):
    """Run every code cell in order, non-interactively."""
    session = NotebookSession()
    session.load_file(Path(path))

    console.print(Panel(
        f"[bold]{Path(path).name}[/bold]",
        title="[bold blue]cellpad[/bold blue]",
        border_style="blue",
    ))

    code_cells = session.notebook.code_cells()
    if not code_cells:
        console.print("[yellow]No code cells to execute[/yellow]")
        return

    success_count = 0
    for cell in code_cells:
        index = session.notebook.index_of(cell.id)
        console.print(f"[dim]--- Cell {index} ---[/dim]")
        console.print(Syntax(session.text_of(cell.id), "python", theme="monokai", line_numbers=True))

        with Status("Executing...", console=console, spinner="dots"):
            result = session.run_cell_sync(cell.id)

        for output in result.outputs:
            console.print(format_rich_output(output))
        if result.success:
            success_count += 1
        console.print()

    if write:
        session.save(Path(path))

    total = len(code_cells)
    if success_count == total:
        console.print(f"[green]All {total} cells executed successfully[/green]")
    else:
        console.print(f"[yellow]{success_count}/{total} cells ran without errors[/yellow]")


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("--check", is_flag=True, help="Exit with status 1 if PATH is not normalized")
def fmt(path: str, check: bool):
    """Normalize a notebook's block layout."""
    target = Path(path)
    original = target.read_text(encoding="utf-8")
    formatted = serialize_proto_cells(parse_file(target)) + "\n"

    if formatted == original:
        console.print(f"[dim]{path} unchanged[/dim]")
        return
    if check:
        console.print(f"[yellow]{path} would be reformatted[/yellow]")
        sys.exit(1)
    target.write_text(formatted, encoding="utf-8")
    console.print(f"[green]Reformatted {path}[/green]")


@main.command()
@click.argument("url")
@click.option("--output", "-o", type=click.Path(), default=None, help="Save the document here")
def fetch(url: str, output: Optional[str]):
    """Download a notebook from a URL (GitHub blob links are converted)."""
    session = NotebookSession()
    if not session.load_remote(url):
        console.print(f"[red]Could not load {url}[/red]")
        sys.exit(1)

    if output:
        session.save(Path(output))
        console.print(f"[green]Saved {len(session.notebook)} cells to {output}[/green]")
    else:
        click.echo(session.export())


if __name__ == "__main__":
    main()
