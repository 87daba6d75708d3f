from __future__ import annotations

import json
import threading

from conceptmap.chat.llm import LLMError
from conceptmap.db import connect, init_db


def memory_db():
    conn = connect(":memory:")
    init_db(conn)
    return conn


class FakeLLM:
    """Stands in for OllamaChatClient; returns a canned reply."""

    def __init__(self, reply: str | dict | None = None, *, error: str | None = None):
        if isinstance(reply, dict):
            reply = json.dumps(reply)
        self.reply = reply or ""
        self.error = error
        self.calls = 0
        self._lock = threading.Lock()

    def chat(self, messages):
        with self._lock:
            self.calls += 1
        if self.error is not None:
            raise LLMError(self.error)
        return self.reply
