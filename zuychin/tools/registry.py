"""Tool registry: the fixed catalog of capabilities the model may call."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from zuychin.tools.base import ToolContext, ToolParams, ToolResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    Handler = Callable[..., Awaitable[ToolResult]]

logger = logging.getLogger(__name__)

_EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


@dataclass
class ToolDef:
    """One registered capability."""

    name: str
    description: str
    category: str
    handler: Handler
    params_model: type[ToolParams] | None = None
    wants_context: bool = False

    def declaration(self) -> dict[str, Any]:
        """The declaration sent to the model in tool mode."""
        schema = (
            self.params_model.model_json_schema()
            if self.params_model is not None
            else dict(_EMPTY_SCHEMA)
        )
        return {"name": self.name, "description": self.description, "input_schema": schema}

    def bind(self, arguments: dict[str, Any], context: ToolContext | None) -> dict[str, Any]:
        """Validate model-supplied *arguments* into handler kwargs."""
        if self.params_model is not None:
            kwargs = self.params_model.model_validate(arguments).model_dump()
        else:
            kwargs = dict(arguments)
        if self.wants_context:
            kwargs["context"] = context or ToolContext()
        return kwargs


class ToolRegistry:
    """Name → capability lookup plus safe dispatch.

    Handlers are registered with a decorator::

        @registry.tool(name="get_current_time", description="...", category="utility")
        async def get_current_time() -> ToolResult:
            ...

    A handler that declares a ``context`` parameter receives the turn's
    :class:`ToolContext`; it is never part of the declared schema.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDef] = {}

    def tool(
        self,
        *,
        name: str,
        description: str,
        category: str,
        params_model: type[ToolParams] | None = None,
    ) -> Callable[[Handler], Handler]:
        def decorator(fn: Handler) -> Handler:
            if not inspect.iscoroutinefunction(fn):
                msg = f"Tool handler '{name}' must be an async function"
                raise TypeError(msg)
            self._tools[name] = ToolDef(
                name=name,
                description=description,
                category=category,
                handler=fn,
                params_model=params_model,
                wants_context="context" in inspect.signature(fn).parameters,
            )
            return fn

        return decorator

    def get(self, name: str) -> ToolDef | None:
        return self._tools.get(name)

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def get_schemas(self) -> list[dict[str, Any]]:
        """Declarations for every registered tool, in registration order."""
        return [tool_def.declaration() for tool_def in self._tools.values()]

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any],
        context: ToolContext | None = None,
    ) -> ToolResult:
        """Run the named tool. Never raises.

        Unknown names, arguments that fail validation and handler exceptions
        all come back as ``ToolResult(error=...)`` so the model can see what
        went wrong and answer anyway.
        """
        tool_def = self._tools.get(name)
        if tool_def is None:
            logger.warning("Model requested unknown tool %s", name)
            return ToolResult(error=f"Unknown tool: {name}")

        try:
            kwargs = tool_def.bind(arguments, context)
        except ValidationError as exc:
            logger.warning("Invalid arguments for %s: %s", name, exc.errors())
            return ToolResult(error=f"Invalid arguments for tool '{name}'.")

        logger.info("Tool %s(%s)", name, arguments)
        started = time.monotonic()
        try:
            result = await tool_def.handler(**kwargs)
        except Exception:
            logger.exception("Tool %s raised after %.2fs", name, time.monotonic() - started)
            return ToolResult(error=f"Tool '{name}' failed. Check logs for details.")

        elapsed = time.monotonic() - started
        if result.success:
            logger.info("Tool %s ok in %.2fs", name, elapsed)
        else:
            logger.warning("Tool %s returned error in %.2fs: %s", name, elapsed, result.error)
        return result


# Global registry. Import this to register or look up tools.
registry = ToolRegistry()
