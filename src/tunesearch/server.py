"""MCP server exposing the tunesearch operations as tools.

NAMING CONVENTION:
All tool names follow the "tunesearch_" prefix pattern, one tool per
service operation: tunesearch_search, tunesearch_suggestions,
tunesearch_track_search. Every tool takes an ``auth_token`` argument and
returns a single JSON text block, either the operation payload or
``{"error": {"code": ..., "message": ...}}``.
"""

import asyncio
import json
from collections.abc import Sequence
from typing import Any

from mcp.server import Server
from mcp.types import TextContent, Tool

from .auth import IdentityBackend, StaticIdentityBackend
from .config import SearchSettings
from .errors import ErrorCode, ErrorMapper, TuneSearchError, handle_async_errors
from .handler_registry import HandlerRegistry
from .logging_config import configure_logging, get_logger
from .service import SearchService
from .store import InMemoryDocumentStore

logger = get_logger(__name__)

tool_registry = HandlerRegistry()


def _json_content(payload: dict[str, Any]) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, default=str, ensure_ascii=False))]


def _error_content(error: TuneSearchError) -> list[TextContent]:
    return _json_content({"error": {"code": error.code, "message": error.message, "details": error.details}})


class SearchServer:
    """MCP server for video search and suggestions."""

    def __init__(
        self,
        service: SearchService | None = None,
        store: InMemoryDocumentStore | None = None,
        identity_backend: IdentityBackend | None = None,
        settings: SearchSettings | None = None,
    ):
        self.settings = settings or SearchSettings.from_env()
        self.store = store or InMemoryDocumentStore()
        self.identity_backend = identity_backend or StaticIdentityBackend()
        self.service = service or SearchService.create(self.store, self.identity_backend, self.settings)
        self.error_mapper = ErrorMapper()
        self.app = Server("tunesearch")
        self._setup_handlers()

    async def list_tools_direct(self) -> list[Tool]:
        return tool_registry.get_tools()

    async def call_tool_direct(self, name: str, arguments: dict[str, Any] | None) -> Sequence[TextContent]:
        """Dispatch a tool call and render the outcome as JSON text."""
        arguments = dict(arguments or {})
        handler_info = tool_registry.dispatch(name)
        if handler_info is None:
            return _error_content(TuneSearchError(f"Unknown tool: {name}", error_code=ErrorCode.NOT_FOUND))

        token = arguments.pop("auth_token", None)
        try:
            payload = await handler_info.handler(self, token, arguments)
        except TuneSearchError as e:
            return _error_content(e)
        except Exception as e:
            return _error_content(self.error_mapper.map(e, name))
        return _json_content(payload)

    def _setup_handlers(self):
        @self.app.list_tools()
        async def list_tools() -> list[Tool]:
            return await self.list_tools_direct()

        @self.app.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> Sequence[TextContent]:
            return await self.call_tool_direct(name, arguments)

    @tool_registry.register(
        "tunesearch_search",
        description="Search videos by free-text query and/or genre, mood and artist filters, newest first.",
        properties={
            "query": {"type": "string", "description": "Free-text query matched against tags, title and artist"},
            "filters": {
                "type": "object",
                "properties": {
                    "genre": {"type": "string"},
                    "mood": {"type": "string"},
                    "artist": {"type": "string"},
                    "searchInTags": {"type": "boolean"},
                },
            },
            "limit": {"type": "integer", "minimum": 1, "default": 20},
        },
    )
    async def _handle_search(self, token: Any, arguments: dict[str, Any]) -> dict[str, Any]:
        return await self.service.search(token, arguments)

    @tool_registry.register(
        "tunesearch_suggestions",
        description="Suggest artists, genres and moods starting with the typed text.",
        properties={"query": {"type": "string", "description": "Partial search input"}},
    )
    async def _handle_suggestions(self, token: Any, arguments: dict[str, Any]) -> dict[str, Any]:
        return await self.service.suggestions(token, arguments)

    @tool_registry.register(
        "tunesearch_track_search",
        description="Record a query in the calling user's recent searches.",
        properties={"query": {"type": "string"}},
        required=["query"],
    )
    async def _handle_track_search(self, token: Any, arguments: dict[str, Any]) -> dict[str, Any]:
        return await self.service.track_search(token, arguments)

    @handle_async_errors()
    async def load_seed_data(self) -> None:
        """Load configured seed documents and tokens; unreadable files raise InternalError."""
        if self.settings.seed_file:
            await self.store.load_json(self.settings.seed_file)
        if self.settings.tokens_file and isinstance(self.identity_backend, StaticIdentityBackend):
            await self.identity_backend.load_json(self.settings.tokens_file)

    async def run(self):
        """Run the MCP server over stdio."""
        from mcp.server.stdio import stdio_server

        await self.load_seed_data()
        async with stdio_server() as (read_stream, write_stream):
            await self.app.run(
                read_stream,
                write_stream,
                self.app.create_initialization_options(),
            )


def main():
    """Main entry point."""
    configure_logging()
    server = SearchServer()
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
