"""Registry of MCP tools exposed by the tunesearch server."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from mcp.types import Tool

ToolHandler = Callable[..., Awaitable[dict[str, Any]]]

AUTH_TOKEN_PROPERTY = {
    "type": "string",
    "description": "Identity token of the calling user",
}


@dataclass
class HandlerInfo:
    """Information about a registered tool."""

    name: str
    handler: ToolHandler
    description: str
    input_schema: dict[str, Any]


class HandlerRegistry:
    """Maps tool names to the coroutine functions that serve them.

    Usage:
        registry = HandlerRegistry()

        @registry.register(
            "tunesearch_search",
            description="Search videos",
            properties={"query": {"type": "string"}},
        )
        async def _handle_search(self, token, arguments):
            ...

        handler_info = registry.dispatch("tunesearch_search")
        if handler_info:
            result = await handler_info.handler(self, token, arguments)
    """

    def __init__(self):
        self._handlers: dict[str, HandlerInfo] = {}

    def register(
        self,
        name: str,
        description: str,
        properties: dict[str, Any],
        required: list[str] | None = None,
    ):
        """Decorator for tool registration.

        Every tool takes an ``auth_token`` in addition to ``properties``.
        """

        def decorator(func: ToolHandler):
            self._handlers[name] = HandlerInfo(
                name=name,
                handler=func,
                description=description,
                input_schema={
                    "type": "object",
                    "properties": {"auth_token": AUTH_TOKEN_PROPERTY, **properties},
                    "required": ["auth_token", *(required or [])],
                },
            )
            return func

        return decorator

    def dispatch(self, name: str) -> HandlerInfo | None:
        return self._handlers.get(name)

    def get_tools(self) -> list[Tool]:
        return [
            Tool(name=info.name, description=info.description, inputSchema=info.input_schema)
            for info in self._handlers.values()
        ]

    def __contains__(self, name: str) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
