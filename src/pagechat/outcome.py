"""
Tagged results passed between the crawler, prompt builder and LLM client.

Failures are still shown to users as plain text, but internally every step
says whether it produced real text (``Ok``) or a failure (``Err``), so page
content that merely looks like an error message is never mistaken for one.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Union


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    FETCH = "fetch"
    GUARD = "guard"
    PROVIDER = "provider"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class Ok:
    text: str

    @property
    def ok(self) -> bool:
        return True

    def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str  # exact text shown to the caller

    @property
    def ok(self) -> bool:
        return False

    def render(self) -> str:
        return self.message


Outcome = Union[Ok, Err]
