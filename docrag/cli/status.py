"""CLI command reporting index status."""

import typer
from rich.console import Console

from config.settings import get_settings
from docrag.errors import StorageError
from docrag.vectorstore.chroma_store import connect

console = Console()
app = typer.Typer()


@app.command()
def status():
    """Show whether the documentation index exists and how many chunks it holds."""
    settings = get_settings()
    table_name = settings.docrag_table_name

    try:
        store = connect(settings.db_path)
        if table_name not in store.list_tables():
            console.print(f"[yellow]Table '{table_name}' not found in {settings.db_path}.[/yellow]")
            console.print("Run 'docrag ingest' to build it.")
            raise typer.Exit(1)
        count = store.count(table_name)
        dimension = store.table_dimension(table_name)
    except StorageError as e:
        console.print(f"[bold red]Storage error:[/bold red] {e.message}")
        raise typer.Exit(1)

    console.print(f"[bold green]Table '{table_name}' ready[/bold green]")
    console.print(f"  Chunks: {count}")
    console.print(f"  Dimension: {dimension}")
    console.print(f"  Embedding model: {settings.docrag_embedding_model}")
