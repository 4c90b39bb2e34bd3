"""CLI command running the MCP stdio server."""

import asyncio

import typer

app = typer.Typer()


@app.command()
def serve():
    """Run the MCP server on stdio."""
    from docrag.mcp_server.server import main

    asyncio.run(main())
