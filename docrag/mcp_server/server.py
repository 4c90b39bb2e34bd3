"""MCP server exposing documentation search, ingestion and record lookup."""

import asyncio
import json
import logging
import sys
from urllib.parse import quote, unquote, urlparse

from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.types import (
    GetPromptResult,
    Prompt,
    PromptArgument,
    PromptMessage,
    Resource,
    TextContent,
    Tool,
)

from docrag.errors import (
    DimensionMismatchError,
    DocRAGError,
    EmbeddingError,
    EmptyCorpusError,
    IngestionInProgressError,
    InitializationError,
    InputValidationError,
    NotReadyError,
    RecordStoreError,
    StorageError,
)
from docrag.ingestion.loader import discover_documents, read_document
from docrag.records.client import RecordStoreClient
from docrag.system import RAGSystem, get_system

logger = logging.getLogger(__name__)

server = Server("docrag")
_system: RAGSystem | None = None
_record_client: RecordStoreClient | None = None
_init_task: asyncio.Task | None = None

DOCS_URI_PREFIX = "docs://corpus/"
ENTITIES_URI = "records://entities"

# Most specific first: the first matching class names the error kind.
_ERROR_KINDS: list[tuple[type[DocRAGError], str]] = [
    (NotReadyError, "not_ready"),
    (InputValidationError, "invalid_input"),
    (DimensionMismatchError, "configuration_error"),
    (InitializationError, "initialization_error"),
    (EmptyCorpusError, "empty_corpus"),
    (IngestionInProgressError, "ingestion_in_progress"),
    (EmbeddingError, "embedding_error"),
    (StorageError, "storage_error"),
    (RecordStoreError, "record_store_error"),
]


def _get_system() -> RAGSystem:
    global _system
    if _system is None:
        _system = get_system()
    return _system


def _get_record_client() -> RecordStoreClient:
    global _record_client
    if _record_client is None:
        settings = _get_system().settings
        _record_client = RecordStoreClient(
            base_url=settings.docrag_record_store_url,
            token=settings.docrag_record_store_token,
            timeout=settings.docrag_record_store_timeout,
        )
    return _record_client


def _error_kind(error: DocRAGError) -> str:
    for cls, kind in _ERROR_KINDS:
        if isinstance(error, cls):
            return kind
    return "internal_error"


def _json_result(payload) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload))]


def _error_result(error: DocRAGError) -> list[TextContent]:
    kind = _error_kind(error)
    logger.error("Tool failed (%s): %s", kind, error)
    return _json_result({"error": kind, "message": error.message})


@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="search_documentation",
            description=(
                "Search the product documentation by semantic similarity. "
                "Returns the closest sections with their source file."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Natural language search query"},
                    "limit": {"type": "integer", "default": 3, "description": "Number of results (max 20)"},
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="ingest_documentation",
            description="Rebuild the documentation index from the docs folder. This may take a while.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="documentation_status",
            description="Report whether the documentation index is ready for search.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="get_record",
            description="Fetch a single record from the remote record store.",
            inputSchema={
                "type": "object",
                "properties": {
                    "entity": {"type": "string", "description": "Entity name"},
                    "record_id": {"type": "string", "description": "Record identifier"},
                },
                "required": ["entity", "record_id"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict | None) -> list[TextContent]:
    arguments = arguments or {}
    logger.info("Executing tool: %s", name)
    if name == "search_documentation":
        return await _handle_search_documentation(arguments)
    elif name == "ingest_documentation":
        return await _handle_ingest_documentation(arguments)
    elif name == "documentation_status":
        return await _handle_documentation_status(arguments)
    elif name == "get_record":
        return await _handle_get_record(arguments)
    else:
        return _json_result({"error": "unknown_tool", "message": f"Unknown tool: {name}"})


async def _handle_search_documentation(arguments: dict) -> list[TextContent]:
    system = _get_system()
    query = arguments.get("query", "")
    limit = arguments.get("limit", system.settings.docrag_default_limit)

    if not system.is_ready():
        return _error_result(
            NotReadyError("Documentation index is still loading or has not been built. "
                          "Run ingest_documentation or try again shortly.")
        )

    try:
        results = await asyncio.to_thread(system.search, query, limit)
    except DocRAGError as e:
        return _error_result(e)

    return _json_result([r.to_dict() for r in results])


async def _handle_ingest_documentation(arguments: dict) -> list[TextContent]:
    system = _get_system()
    try:
        report = await asyncio.to_thread(system.ingest)
    except DocRAGError as e:
        return _error_result(e)
    return _json_result(report.to_dict())


async def _handle_documentation_status(arguments: dict) -> list[TextContent]:
    system = _get_system()
    return _json_result({
        "ready": system.is_ready(),
        "table": system.settings.docrag_table_name,
    })


async def _handle_get_record(arguments: dict) -> list[TextContent]:
    entity = arguments.get("entity", "")
    record_id = arguments.get("record_id", "")
    client = _get_record_client()
    try:
        record = await asyncio.to_thread(client.get_record, entity, record_id)
    except DocRAGError as e:
        return _error_result(e)
    return _json_result(record)


@server.list_resources()
async def list_resources() -> list[Resource]:
    settings = _get_system().settings
    root = settings.docs_path
    resources = []
    for path in discover_documents(root, settings.docrag_doc_suffixes):
        rel = path.relative_to(root).as_posix()
        resources.append(Resource(
            uri=f"{DOCS_URI_PREFIX}{quote(rel)}",
            name=rel,
            description="Documentation file",
            mimeType="text/markdown",
        ))
    if _get_record_client().is_configured:
        resources.append(Resource(
            uri=ENTITIES_URI,
            name="Entities",
            description="List of all entities in the remote record store",
            mimeType="application/json",
        ))
    return resources


@server.read_resource()
async def read_resource(uri) -> list[ReadResourceContents]:
    uri = str(uri)

    if uri == ENTITIES_URI:
        entities = await asyncio.to_thread(_get_record_client().list_entities)
        return [ReadResourceContents(
            content=json.dumps(entities, indent=2), mime_type="application/json"
        )]

    parsed = urlparse(uri)
    if parsed.scheme == "docs" and parsed.netloc == "corpus":
        rel = unquote(parsed.path.lstrip("/"))
        try:
            text = read_document(_get_system().settings.docs_path, rel)
        except (FileNotFoundError, InputValidationError) as e:
            raise ValueError(f"Resource not found: {uri}") from e
        return [ReadResourceContents(content=text, mime_type="text/markdown")]

    raise ValueError(f"Resource not found: {uri}")


@server.list_prompts()
async def list_prompts() -> list[Prompt]:
    return [
        Prompt(
            name="search_documentation_for",
            description="Answer a question about a topic using the documentation search tool.",
            arguments=[
                PromptArgument(name="topic", description="Topic or question to research", required=True),
            ],
        ),
        Prompt(
            name="debug_script",
            description="Provides context for debugging a script using the documentation.",
            arguments=[
                PromptArgument(name="script_snippet", description="The script snippet to debug", required=True),
            ],
        ),
    ]


@server.get_prompt()
async def get_prompt(name: str, arguments: dict[str, str] | None) -> GetPromptResult:
    arguments = arguments or {}

    if name == "search_documentation_for":
        topic = arguments.get("topic", "")
        text = (
            f"I need to understand: {topic}\n"
            "Use the 'search_documentation' tool to find the relevant sections, "
            "cite the source file of each section you rely on, and say so if the "
            "documentation does not cover it."
        )
    elif name == "debug_script":
        snippet = arguments.get("script_snippet", "")
        text = (
            f"I'm having trouble with this script:\n\n```javascript\n{snippet}\n```\n\n"
            "Please search the documentation for relevant API methods and help me fix it."
        )
    else:
        raise ValueError(f"Prompt not found: {name}")

    return GetPromptResult(
        description=name,
        messages=[PromptMessage(role="user", content=TextContent(type="text", text=text))],
    )


async def _initialize_in_background() -> None:
    """Load the model and probe the index without blocking request handling.

    A failure leaves the server running with readiness false; a later
    successful ingestion makes it ready.
    """
    try:
        ready = await asyncio.to_thread(_get_system().initialize)
    except Exception:
        logger.exception("Background RAG initialization failed")
        return
    if ready:
        logger.info("RAG system ready: documentation table found")


async def main():
    global _init_task
    settings = _get_system().settings
    # stdout carries the MCP protocol; logs go to stderr.
    logging.basicConfig(level=settings.docrag_log_level.upper(), stream=sys.stderr)

    _init_task = asyncio.create_task(_initialize_in_background())
    async with stdio_server() as (read, write):
        logger.info("docrag MCP server running on stdio")
        await server.run(read, write, server.create_initialization_options())


if __name__ == "__main__":
    asyncio.run(main())
