"""
LangGraph nodes: ChatNode (one model call) and ToolNode (runs every tool call of the last message).
The graph alternates between them until the model answers without calling a tool.
"""
import time
from typing import Any, Callable

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import SystemMessage, ToolMessage

from graph.errors import UnregisteredToolError
from graph.llm import LOCAL, REMOTE
from graph.state import ConversationState
from tools.base import WeatherReport
from tools.external import bindable_tools, build_tool_registry, client_tool_names
from tools.weather_tool import WEATHER_TOOL_NAME, is_current_location

log = structlog.get_logger()


SYSTEM_PROMPTS = {
    REMOTE: (
        "You are WeatherBot, a friendly AI weather forecaster.\n\n"
        "For ANY weather question you MUST call the getWeather tool. Never answer weather "
        "questions from memory.\n"
        "If the user asks about their own or current location, call getWeather with "
        'cityName "current location".\n'
        "The tool returns JSON. Answer with the city name it returns, the temperature and "
        "feels-like temperature with tempUnit, the description, humidity and wind speed with windUnit.\n"
        'Never write the phrase "current location" in your answer; always use the actual city name.\n'
        "If the tool returns an error field, apologize briefly and suggest trying again or another city."
    ),
    LOCAL: (
        "You are a function-calling weather assistant. For ANY weather question, you MUST call "
        "the getWeather function. Do NOT provide weather information without calling the function first.\n"
        'Example: User asks "What\'s the weather in Montreal?" - you MUST call getWeather({"cityName": "Montreal"}).\n'
        'Example: User asks "What\'s the weather here?" - you MUST call getWeather({"cityName": "current location"}).\n'
        "After the function returns, reply in one or two sentences using the city name from the result. "
        'Never say "current location". If the result has an error, say sorry.'
    ),
}


def make_chat_node(llm: BaseChatModel, tier: str = REMOTE) -> Callable[[ConversationState], dict[str, Any]]:
    system_prompt = SYSTEM_PROMPTS[tier]

    def chat_node(state: ConversationState) -> dict[str, Any]:
        """
        ChatNode: system prompt + full history to the model, with getWeather and the caller's
        tools bound. Appends exactly the model's single response.
        """
        tools = bindable_tools(state.get("tools") or [])
        model_with_tools = llm.bind_tools(tools)
        messages = [SystemMessage(content=system_prompt), *state["messages"]]

        start = time.perf_counter()
        response = model_with_tools.invoke(messages)
        duration = time.perf_counter() - start
        log.info(
            "chat_node",
            tool_calls=len(getattr(response, "tool_calls", None) or []),
            duration_sec=round(duration, 3),
        )
        return {"messages": [response]}

    return chat_node


def make_tool_node(skip_client_tools: bool = False) -> Callable[[ConversationState], dict[str, Any]]:
    def tool_node(state: ConversationState) -> dict[str, Any]:
        """
        ToolNode: executes the last message's tool calls in order, one ToolMessage per call.
        'current location' is replaced by the session's last resolved place when there is one.
        With skip_client_tools, calls to client-handled tools are left for the caller to answer.
        """
        last = state["messages"][-1]
        descriptors = state.get("tools") or []
        registry = build_tool_registry(descriptors)
        skipped = client_tool_names(descriptors) if skip_client_tools else frozenset()
        last_location = state.get("last_location") or ""

        results: list[ToolMessage] = []
        update: dict[str, Any] = {}
        for call in last.tool_calls:
            name = call["name"]
            if name in skipped:
                continue
            selected = registry.get(name)
            if selected is None:
                log.error("tool_node_unregistered", tool=name)
                raise UnregisteredToolError(name)

            args = dict(call.get("args") or {})
            if name == WEATHER_TOOL_NAME and last_location and is_current_location(args.get("cityName")):
                args["cityName"] = last_location

            start = time.perf_counter()
            output = selected.invoke({"type": "tool_call", "name": name, "args": args, "id": call["id"]})
            duration = time.perf_counter() - start
            log.info("tool_node", tool=name, duration_sec=round(duration, 3))

            if isinstance(output.artifact, WeatherReport):
                last_location = output.artifact.location
                update["last_location"] = last_location
            results.append(output)

        update["messages"] = results
        return update

    return tool_node


tool_node = make_tool_node()
