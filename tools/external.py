"""
Caller-supplied tools: descriptors converted to LangChain tools and bound next to getWeather.
A descriptor without a handler is client-handled: the model can see it, the server cannot run it.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Union

from langchain_core.tools import BaseTool, StructuredTool

from tools.weather_tool import WEATHER_TOOL_NAME, get_weather_tool


@dataclass(frozen=True)
class ExternalToolDescriptor:
    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})
    handler: Optional[Callable[..., Any]] = None

    @property
    def client_handled(self) -> bool:
        return self.handler is None

    def to_openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_structured_tool(self) -> StructuredTool:
        if self.handler is None:
            raise ValueError(f"Tool {self.name!r} is client-handled and has no server-side handler")
        return StructuredTool.from_function(
            func=self.handler,
            name=self.name,
            description=self.description,
            args_schema=self.parameters,
        )


def _check_names(descriptors: Iterable[ExternalToolDescriptor]) -> list[ExternalToolDescriptor]:
    seen = {WEATHER_TOOL_NAME}
    checked = []
    for d in descriptors:
        if d.name in seen:
            raise ValueError(f"Duplicate tool name: {d.name!r}")
        seen.add(d.name)
        checked.append(d)
    return checked


def bindable_tools(descriptors: Iterable[ExternalToolDescriptor]) -> list[Union[BaseTool, dict]]:
    """Everything the model may call: getWeather first, then the caller's tools in order."""
    tools: list[Union[BaseTool, dict]] = [get_weather_tool()]
    for d in _check_names(descriptors):
        tools.append(d.to_openai_tool() if d.client_handled else d.to_structured_tool())
    return tools


def build_tool_registry(descriptors: Iterable[ExternalToolDescriptor]) -> dict[str, BaseTool]:
    """Tools the server executes, by name. Client-handled descriptors are left out."""
    registry: dict[str, BaseTool] = {WEATHER_TOOL_NAME: get_weather_tool()}
    for d in _check_names(descriptors):
        if not d.client_handled:
            registry[d.name] = d.to_structured_tool()
    return registry


def client_tool_names(descriptors: Iterable[ExternalToolDescriptor]) -> frozenset[str]:
    return frozenset(d.name for d in descriptors if d.client_handled)
