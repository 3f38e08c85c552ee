"""Errors that abort a turn. Tool-level failures never get here; they become payloads."""


class EmptyConversationError(ValueError):
    """Routing was asked to look at a conversation with no messages."""


class UnregisteredToolError(LookupError):
    """The model called a tool the server has no handler for."""

    def __init__(self, name: str):
        super().__init__(f"Model requested unregistered tool {name!r}")
        self.name = name
