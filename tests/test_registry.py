"""Tests for the tool registry."""

import pytest
from pydantic import Field

from zuychin.tools import registry as global_registry
from zuychin.tools.base import ToolContext, ToolParams, ToolResult
from zuychin.tools.registry import ToolRegistry


class ForecastParams(ToolParams):
    city: str = Field(description="City to look up")
    days: int = Field(default=1, description="How many days ahead")


@pytest.fixture
def tools() -> ToolRegistry:
    catalog = ToolRegistry()

    @catalog.tool(name="flip_coin", description="Heads or tails", category="fun")
    async def flip_coin() -> ToolResult:
        return ToolResult(data={"side": "heads"})

    @catalog.tool(
        name="forecast",
        description="Weather forecast for a city",
        category="weather",
        params_model=ForecastParams,
    )
    async def forecast(city: str, days: int) -> ToolResult:
        return ToolResult(data={"city": city, "days": days, "summary": "sunny"})

    @catalog.tool(name="explode", description="Always breaks", category="fun")
    async def explode() -> ToolResult:
        raise RuntimeError("internal detail")

    @catalog.tool(name="who_is_asking", description="Echo the caller", category="fun")
    async def who_is_asking(context: ToolContext) -> ToolResult:
        return ToolResult(data={"owner": context.owner_id, "channel": context.channel})

    return catalog


# -- Registration ----------------------------------------------------------------


def test_registration_order_and_lookup(tools: ToolRegistry) -> None:
    assert tools.tool_names == ["flip_coin", "forecast", "explode", "who_is_asking"]
    assert tools.get("forecast").category == "weather"
    assert tools.get("missing") is None


def test_sync_handler_refused(tools: ToolRegistry) -> None:
    with pytest.raises(TypeError, match="must be an async function"):

        @tools.tool(name="sync", description="Not async", category="fun")
        def sync() -> ToolResult:
            return ToolResult()


def test_context_parameter_detected(tools: ToolRegistry) -> None:
    assert tools.get("who_is_asking").wants_context is True
    assert tools.get("forecast").wants_context is False


def test_builtin_catalog_registered() -> None:
    assert set(global_registry.tool_names) >= {
        "get_current_time",
        "search_knowledge",
        "save_note",
        "get_recent_conversations",
    }


# -- Declarations ------------------------------------------------------------------


def test_declaration_without_params_is_empty_object(tools: ToolRegistry) -> None:
    declaration = tools.get("flip_coin").declaration()
    assert declaration == {
        "name": "flip_coin",
        "description": "Heads or tails",
        "input_schema": {"type": "object", "properties": {}},
    }


def test_declaration_from_params_model(tools: ToolRegistry) -> None:
    by_name = {d["name"]: d for d in tools.get_schemas()}
    schema = by_name["forecast"]["input_schema"]
    assert schema["properties"]["city"]["type"] == "string"
    assert schema["properties"]["days"]["type"] == "integer"
    assert schema["required"] == ["city"]


def test_context_hidden_from_declarations(tools: ToolRegistry) -> None:
    schema = tools.get("who_is_asking").declaration()["input_schema"]
    assert "context" not in schema["properties"]

    builtin = {d["name"]: d for d in global_registry.get_schemas()}
    props = builtin["save_note"]["input_schema"]["properties"]
    assert "context" not in props
    assert "content" in props


# -- Dispatch ------------------------------------------------------------------------


async def test_validated_arguments_reach_handler(tools: ToolRegistry) -> None:
    result = await tools.execute("forecast", {"city": "Hobart"})
    assert result.success
    assert result.data == {"city": "Hobart", "days": 1, "summary": "sunny"}


async def test_unknown_tool_is_an_error_result(tools: ToolRegistry) -> None:
    result = await tools.execute("teleport", {})
    assert not result.success
    assert result.error == "Unknown tool: teleport"


async def test_bad_arguments_are_an_error_result(tools: ToolRegistry) -> None:
    result = await tools.execute("forecast", {"city": "Hobart", "days": "soon"})
    assert not result.success
    assert "forecast" in result.error


async def test_handler_failure_hides_details(tools: ToolRegistry) -> None:
    result = await tools.execute("explode", {})
    assert not result.success
    assert "failed" in result.error
    assert "internal detail" not in result.error


async def test_context_passed_through(tools: ToolRegistry) -> None:
    context = ToolContext(owner_id="u1", channel="web")
    result = await tools.execute("who_is_asking", {}, context=context)
    assert result.data == {"owner": "u1", "channel": "web"}


async def test_missing_context_gets_empty_one(tools: ToolRegistry) -> None:
    result = await tools.execute("who_is_asking", {})
    assert result.data == {"owner": None, "channel": None}


# -- ToolResult ------------------------------------------------------------------------


def test_result_serialization() -> None:
    assert ToolResult(data={"temp": 24}).to_content() == '{"temp": 24}'
    assert ToolResult(error="offline").to_content() == '{"error": "offline"}'
    assert ToolResult().to_content() == "{}"
