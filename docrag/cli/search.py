"""CLI command for searching the documentation index."""

import logging
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from docrag.errors import DocRAGError
from docrag.system import RAGSystem

console = Console()
app = typer.Typer()


@app.command()
def search(
    query: Annotated[
        str,
        typer.Argument(help="Natural language search query"),
    ],
    limit: Annotated[
        Optional[int],
        typer.Option(
            "--limit", "-n", help="Maximum number of results (default: DOCRAG_DEFAULT_LIMIT)"
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
):
    """Search the documentation index."""
    if verbose:
        logging.basicConfig(level=logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING)

    system = RAGSystem()
    try:
        with console.status("[bold green]Loading index..."):
            ready = system.initialize()
        if not ready:
            console.print(
                "[bold red]No documentation index found.[/bold red]\n"
                "Run 'docrag ingest' first."
            )
            raise typer.Exit(1)
        results = system.search(query, limit=limit)
    except DocRAGError as e:
        console.print(f"[bold red]Search failed:[/bold red] {e.message}")
        raise typer.Exit(1)

    if not results:
        console.print("No results.")
        return

    table = Table(title=f"Results for: {query}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Source", style="cyan")
    table.add_column("Distance", justify="right")
    table.add_column("Text")
    for i, result in enumerate(results, start=1):
        excerpt = result.text if len(result.text) <= 300 else result.text[:300] + "..."
        table.add_row(str(i), result.source, f"{result.score:.4f}", excerpt)
    console.print(table)
