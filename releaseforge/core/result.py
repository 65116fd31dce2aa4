"""Result type for explicit error propagation between promotion components.

Every component call in the promotion workflow returns ``Ok(value)`` or
``Err(error)`` instead of raising.  The orchestrator is the single place that
turns a terminal ``Err`` into the outward status code and message.

Usage::

    result = map_release_path(...)
    if is_err(result):
        return result
    release_path = result.value
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeGuard, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """A successful result carrying ``value``."""

    value: T

    def unwrap(self) -> T:
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """A failed result carrying ``error``."""

    error: E

    def unwrap(self) -> None:
        """Raise ``ValueError``; an ``Err`` has no value."""
        raise ValueError(f"called unwrap on Err: {self.error}")

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Union[Ok[T], Err[E]]


def is_ok(result: Result[T, E]) -> TypeGuard[Ok[T]]:
    """Narrow *result* to ``Ok`` for type checkers."""
    return isinstance(result, Ok)


def is_err(result: Result[T, E]) -> TypeGuard[Err[E]]:
    """Narrow *result* to ``Err`` for type checkers."""
    return isinstance(result, Err)
