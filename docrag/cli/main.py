"""docrag CLI entry point."""

import typer

from docrag.cli.ingest import ingest
from docrag.cli.search import search
from docrag.cli.serve import serve
from docrag.cli.status import status

app = typer.Typer(
    name="docrag",
    help="Documentation retrieval engine - index markdown docs and search them semantically.",
)

app.command(name="ingest")(ingest)
app.command(name="search")(search)
app.command(name="status")(status)
app.command(name="serve")(serve)


if __name__ == "__main__":
    app()
