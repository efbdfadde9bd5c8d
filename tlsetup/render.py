"""
Rendering functions for tlsetup output.

Core functions return data, this module makes it human-readable.
"""

from typing import Iterable, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from .domain.dependency import Dependency
from .domain.tlpobj import TLPObj

console = Console()


def render_table(headers: List[str], rows: List[List[str]], title: Optional[str] = None) -> None:
    """
    Render a generic table with the given headers and rows.

    Args:
        headers: List of column headers
        rows: List of rows, where each row is a list of values
        title: Optional table title
    """
    if not rows:
        console.print("[yellow]No data to display.[/yellow]")
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*[str(val) for val in row])

    console.print(table)


def render_packages_table(packages: Iterable[TLPObj], title: str = "Installed Packages") -> None:
    """Render installed packages with their catalogue version or revision."""
    rows = [
        [p.name, p.version or '', p.revision]
        for p in packages
    ]
    render_table(["Package", "Version", "Revision"], rows, title=title)


def render_dependencies_table(dependencies: Iterable[Dependency], title: str = "Dependencies") -> None:
    rows = [
        [d.name, d.type.value, d.package or '']
        for d in dependencies
    ]
    render_table(["Name", "Type", "Package"], rows, title=title)
