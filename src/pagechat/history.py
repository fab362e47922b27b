from __future__ import annotations
from collections import deque
from dataclasses import dataclass

from .config import settings


@dataclass(frozen=True)
class ConversationTurn:
    prompt: str
    response: str


class ConversationHistory:
    """
    Bounded prompt/response log for one chat session.

    Holds at most ``limit`` turns; recording past the limit drops the oldest.
    """

    def __init__(self, limit: int | None = None):
        self.limit = settings.history_limit if limit is None else limit
        self._turns: deque[ConversationTurn] = deque()

    def record(self, prompt: str, response: str) -> ConversationTurn:
        turn = ConversationTurn(prompt=prompt, response=response)
        self._turns.append(turn)
        self.enforce_limit()
        return turn

    def enforce_limit(self) -> None:
        while len(self._turns) > self.limit:
            self._turns.popleft()

    @property
    def turns(self) -> list[ConversationTurn]:
        return list(self._turns)

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self):
        return iter(list(self._turns))
