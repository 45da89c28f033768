"""Function tools exposed to agents.

A FunctionTool wraps a plain (sync or async) callable together with the
JSON schema the chat model sees.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable


@dataclass(frozen=True)
class FunctionTool:
    """A callable the model may invoke by name."""

    name: str
    description: str
    func: Callable[..., Any]
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_openai_schema(self) -> dict[str, Any]:
        """Chat-completions ``tools`` entry."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_anthropic_schema(self) -> dict[str, Any]:
        """Messages API ``tools`` entry."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters,
        }

    async def invoke(self, arguments: dict[str, Any] | None = None) -> str:
        """Call the wrapped function with keyword arguments.

        Unknown argument names are dropped so a model that invents extra
        parameters does not break the call.

        Returns:
            The function's result as a string
        """
        arguments = dict(arguments or {})
        known = self.parameters.get("properties", {})
        if known:
            arguments = {k: v for k, v in arguments.items() if k in known}

        result = self.func(**arguments)
        if inspect.isawaitable(result):
            result = await result
        return "" if result is None else str(result)


def string_param(description: str) -> dict[str, Any]:
    return {"type": "string", "description": description}


def integer_param(description: str) -> dict[str, Any]:
    return {"type": "integer", "description": description}


def object_schema(
    properties: dict[str, dict[str, Any]], required: list[str] | None = None
) -> dict[str, Any]:
    """Build a JSON schema object for tool parameters."""
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema
