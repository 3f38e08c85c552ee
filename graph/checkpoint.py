"""
Process-lifetime checkpoint store: conversation state per session id.
Saved once a turn completes; a failed turn leaves the previous checkpoint untouched.
"""
import threading
from typing import Any, Optional


class MemoryCheckpointStore:
    """In-memory store. Only messages and last_location are kept; external tools are per call."""

    def __init__(self):
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def load(self, session_id: str) -> Optional[dict[str, Any]]:
        with self._lock:
            saved = self._data.get(session_id)
            if saved is None:
                return None
            return {"messages": list(saved["messages"]), "last_location": saved["last_location"]}

    def save(self, session_id: str, state: dict[str, Any]) -> None:
        snapshot = {
            "messages": list(state.get("messages") or []),
            "last_location": state.get("last_location") or "",
        }
        with self._lock:
            self._data[session_id] = snapshot

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._data.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
