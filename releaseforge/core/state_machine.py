"""Promotion state machine.

Enforces the VALID_TRANSITIONS table and journals every transition into the
promotion context so the outcome shows how far an attempt got.
"""

from __future__ import annotations

import logging

from releaseforge.models.promotion import (
    VALID_TRANSITIONS,
    PromotionContext,
    PromotionState,
    PromotionTransition,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class PromotionStateMachine:
    """Tracks the workflow state of one promotion attempt.

    Parameters
    ----------
    ctx:
        The attempt's context; transitions are appended to
        ``ctx.transitions``.
    """

    def __init__(
        self,
        ctx: PromotionContext,
        initial: PromotionState = PromotionState.LOCATE_BUILD,
    ) -> None:
        self._ctx = ctx
        self._state = initial

    @property
    def state(self) -> PromotionState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS.get(self._state)

    def transition(self, target: PromotionState, note: str = "") -> PromotionTransition:
        allowed = VALID_TRANSITIONS.get(self._state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition promotion from {self._state.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        record = PromotionTransition(from_state=self._state, to_state=target, note=note)
        self._ctx.transitions.append(record)
        logger.info(
            "Promotion %s/%s: %s -> %s",
            self._ctx.request.build_name,
            self._ctx.request.build_number,
            self._state.value,
            target.value,
        )
        self._state = target
        return record
