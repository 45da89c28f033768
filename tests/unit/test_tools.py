"""Unit tests for FunctionTool."""

import pytest

from clinical_agents.tools import FunctionTool, integer_param, object_schema, string_param


def greet(name: str, title: str = "Dr.") -> str:
    return f"{title} {name}"


@pytest.fixture
def greet_tool() -> FunctionTool:
    return FunctionTool(
        name="greet",
        description="Greet someone",
        func=greet,
        parameters=object_schema(
            {"name": string_param("Who"), "title": string_param("Honorific")},
            required=["name"],
        ),
    )


class TestFunctionToolInvoke:
    """Tests for calling wrapped functions."""

    async def test_sync_function(self, greet_tool):
        assert await greet_tool.invoke({"name": "House"}) == "Dr. House"

    async def test_async_function(self):
        async def lookup(query: str) -> str:
            return f"found {query}"

        tool = FunctionTool(
            name="lookup",
            description="Async lookup",
            func=lookup,
            parameters=object_schema({"query": string_param("Term")}),
        )

        assert await tool.invoke({"query": "HTA"}) == "found HTA"

    async def test_unknown_arguments_dropped(self, greet_tool):
        result = await greet_tool.invoke({"name": "Wilson", "title": "Prof.", "mood": "tired"})
        assert result == "Prof. Wilson"

    async def test_none_result_becomes_empty_string(self):
        tool = FunctionTool(name="noop", description="Nothing", func=lambda: None)
        assert await tool.invoke() == ""

    async def test_non_string_result_stringified(self):
        tool = FunctionTool(
            name="double",
            description="Double a number",
            func=lambda n: n * 2,
            parameters=object_schema({"n": integer_param("Number")}),
        )
        assert await tool.invoke({"n": 21}) == "42"

    async def test_function_errors_propagate(self):
        def broken():
            raise RuntimeError("boom")

        tool = FunctionTool(name="broken", description="Fails", func=broken)

        with pytest.raises(RuntimeError, match="boom"):
            await tool.invoke({})


class TestFunctionToolSchemas:
    """Tests for provider schema rendering."""

    def test_openai_schema(self, greet_tool):
        schema = greet_tool.to_openai_schema()

        assert schema["type"] == "function"
        assert schema["function"]["name"] == "greet"
        assert schema["function"]["parameters"]["required"] == ["name"]

    def test_anthropic_schema(self, greet_tool):
        schema = greet_tool.to_anthropic_schema()

        assert schema == {
            "name": "greet",
            "description": "Greet someone",
            "input_schema": greet_tool.parameters,
        }

    def test_default_parameters(self):
        tool = FunctionTool(name="noop", description="Nothing", func=lambda: None)
        assert tool.parameters == {"type": "object", "properties": {}}

    def test_object_schema_without_required(self):
        assert object_schema({"q": string_param("Query")}) == {
            "type": "object",
            "properties": {"q": {"type": "string", "description": "Query"}},
        }
