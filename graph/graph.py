"""
LangGraph StateGraph: chat -> (tool -> chat)* -> END, under one of two routing policies.
ConversationRunner is the entry for the backend: one run_turn per user message, per session.
"""
import threading
import time
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional, Sequence, Union

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langgraph.graph import END, START, StateGraph

from app.config import get_settings
from graph.checkpoint import MemoryCheckpointStore
from graph.errors import EmptyConversationError
from graph.llm import REMOTE, create_model, model_tier
from graph.nodes import make_chat_node, make_tool_node
from graph.state import ConversationState
from tools.external import ExternalToolDescriptor, client_tool_names

log = structlog.get_logger()

CHAT = "chat"
TOOL = "tool"


def should_continue(state: ConversationState) -> str:
    """
    Conditional edge after chat: any tool call on the last message goes to the tool node,
    otherwise the turn ends. Every call is executed server-side.
    """
    messages = state.get("messages") or []
    if not messages:
        raise EmptyConversationError("Cannot route an empty conversation")
    if getattr(messages[-1], "tool_calls", None):
        return TOOL
    return END


def _last_ai_message(messages: Sequence[BaseMessage]) -> Optional[AIMessage]:
    for message in reversed(messages):
        if isinstance(message, AIMessage):
            return message
    return None


def _split_calls(state: ConversationState) -> tuple[list[dict], list[dict]]:
    """(server calls, client-handled calls) of the latest AI message."""
    client = client_tool_names(state.get("tools") or [])
    ai = _last_ai_message(state["messages"])
    calls = ai.tool_calls if ai is not None else []
    return [c for c in calls if c["name"] not in client], [c for c in calls if c["name"] in client]


def client_passthrough_router(state: ConversationState) -> str:
    """
    Alternative policy: client-handled tools (descriptors without a handler) are answered by the
    caller. Server calls still go to the tool node; a message with only client calls ends the turn.
    """
    target = should_continue(state)
    if target == TOOL:
        server, _ = _split_calls(state)
        if not server:
            return END
    return target


def after_tools(state: ConversationState) -> str:
    """Edge after the tool node under passthrough: stop while client calls are still unanswered."""
    _, client = _split_calls(state)
    return END if client else CHAT


def _as_messages(message) -> list[BaseMessage]:
    """A user string, a message, or several (e.g. ToolMessages for client-handled calls)."""
    if isinstance(message, str):
        return [HumanMessage(content=message)]
    if isinstance(message, BaseMessage):
        return [message]
    return list(message)


def build_graph(llm: BaseChatModel, tier: str = REMOTE, passthrough: bool = False):
    """Build and compile the graph. START -> chat -> (tool -> chat)* -> END."""
    builder = StateGraph(ConversationState)

    builder.add_node(CHAT, make_chat_node(llm, tier))
    builder.add_node(TOOL, make_tool_node(skip_client_tools=passthrough))

    builder.add_edge(START, CHAT)
    if passthrough:
        builder.add_conditional_edges(CHAT, client_passthrough_router, {TOOL: TOOL, END: END})
        builder.add_conditional_edges(TOOL, after_tools, {CHAT: CHAT, END: END})
    else:
        builder.add_conditional_edges(CHAT, should_continue, {TOOL: TOOL, END: END})
        builder.add_edge(TOOL, CHAT)

    return builder.compile()


class ConversationRunner:
    """
    Drives one turn at a time per session: load checkpoint, run the graph to END, save.
    Different sessions may run concurrently.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        tier: str = REMOTE,
        store: Optional[MemoryCheckpointStore] = None,
        passthrough: bool = False,
    ):
        self.passthrough = passthrough
        self.graph = build_graph(llm, tier, passthrough)
        self.store = store if store is not None else MemoryCheckpointStore()
        # session id -> [lock, turns holding or waiting on it]
        self._locks: dict[str, list] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _session_lock(self, session_id: str) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.get(session_id)
            if entry is None:
                entry = self._locks[session_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[session_id]

    def run_turn(
        self,
        session_id: str,
        message: Union[str, BaseMessage, Sequence[BaseMessage]],
        external_tools: Optional[Iterable[ExternalToolDescriptor]] = None,
    ) -> AIMessage:
        """
        Returns the model's last message. Under passthrough this may carry client-handled
        calls; the caller answers them with ToolMessages in the next run_turn.
        """
        new_messages = _as_messages(message)
        with self._session_lock(session_id):
            saved = self.store.load(session_id) or {"messages": [], "last_location": ""}
            inputs = {
                "messages": [*saved["messages"], *new_messages],
                "last_location": saved["last_location"],
                "tools": list(external_tools or []),
            }
            start = time.perf_counter()
            final = self.graph.invoke(inputs)
            self.store.save(session_id, final)
            log.info(
                "run_turn",
                session_id=session_id,
                messages=len(final["messages"]),
                duration_sec=round(time.perf_counter() - start, 3),
            )
        return _last_ai_message(final["messages"])

    def history(self, session_id: str) -> list:
        saved = self.store.load(session_id)
        return saved["messages"] if saved else []

    def last_location(self, session_id: str) -> str:
        saved = self.store.load(session_id)
        return saved["last_location"] if saved else ""


# Singleton runner for the app
_runner = None


def get_runner() -> ConversationRunner:
    global _runner
    if _runner is None:
        settings = get_settings()
        _runner = ConversationRunner(
            create_model(settings),
            tier=model_tier(settings),
            passthrough=settings.client_tool_passthrough,
        )
    return _runner
