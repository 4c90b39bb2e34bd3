"""CLI command for documentation ingestion."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from config.settings import get_settings
from docrag.errors import DocRAGError
from docrag.system import RAGSystem

console = Console()
app = typer.Typer()


@app.command()
def ingest(
    docs_path: Annotated[
        Optional[Path],
        typer.Option("--docs", "-d", help="Documentation directory (defaults to DOCRAG_DOCS_PATH)"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
):
    """Rebuild the documentation index from markdown files."""
    if verbose:
        logging.basicConfig(level=logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING)

    settings = get_settings()
    if docs_path is not None:
        settings.docrag_docs_path = str(docs_path)
    system = RAGSystem(settings=settings)

    console.print("[bold]docrag Ingestion[/bold]")
    console.print(f"Docs: {settings.docs_path}")
    console.print(f"Index: {settings.db_path} (table '{settings.docrag_table_name}')")
    console.print()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Embedding documentation...", total=None)
        try:
            report = system.ingest()
        except DocRAGError as e:
            progress.stop()
            console.print(f"[bold red]Ingestion failed:[/bold red] {e.message}")
            raise typer.Exit(1)
        progress.update(task, completed=True)

    console.print("[bold green]Ingestion complete![/bold green]")
    console.print(f"  Documents found: {report.documents_found}")
    console.print(f"  Documents without chunks: {report.documents_skipped}")
    console.print(f"  Chunks written: {report.chunks_written}")
