"""
LangGraph state: conversation messages, the last place the weather tool resolved,
and the caller's external tools for the current invocation.
"""
from typing import Annotated, Sequence, TypedDict, Union

from langchain_core.messages import AnyMessage

from tools.external import ExternalToolDescriptor


def append_messages(
    left: Sequence[AnyMessage], right: Union[AnyMessage, Sequence[AnyMessage]]
) -> list[AnyMessage]:
    """Reducer for messages: always concatenates, never replaces by id."""
    if not isinstance(right, (list, tuple)):
        right = [right]
    return list(left or []) + list(right)


class ConversationState(TypedDict):
    """State passed between nodes. Only messages and last_location are checkpointed."""
    messages: Annotated[list[AnyMessage], append_messages]
    last_location: str
    tools: list[ExternalToolDescriptor]
