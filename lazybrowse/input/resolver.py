"""Chord-sequence resolution automaton.

States are ``Idle`` and ``PendingSequence(buffer, deadline)``. The clock is
injectable so timeout behavior can be tested without sleeping.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Collection
from dataclasses import dataclass

from ..actions import Action
from .key_registry import BindingTable
from .keys import Chord, Sequence

DEFAULT_SEQUENCE_TIMEOUT_SECONDS = 0.5


@dataclass(frozen=True)
class Resolution:
    """One resolved input unit.

    ``action`` is ``None`` when ``chord`` matched nothing; text contexts treat
    such chords as literal characters.
    """

    action: Action | None
    chord: Chord


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class PendingSequence:
    buffer: Sequence
    deadline: float


ResolverState = Idle | PendingSequence

_IDLE = Idle()


class KeyResolver:
    """Resolve chords to actions against a ``BindingTable``."""

    def __init__(
        self,
        table: BindingTable,
        timeout_seconds: float = DEFAULT_SEQUENCE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.table = table
        self.timeout_seconds = max(0.0, float(timeout_seconds))
        self._clock = clock
        self._state: ResolverState = _IDLE

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def pending(self) -> Sequence:
        state = self._state
        return state.buffer if isinstance(state, PendingSequence) else ()

    def next_deadline(self) -> float | None:
        state = self._state
        return state.deadline if isinstance(state, PendingSequence) else None

    def reset(self) -> None:
        self._state = _IDLE

    def feed(
        self,
        chord: Chord,
        *,
        accepts: Collection[Action] | None = None,
        text_input: bool = False,
        now: float | None = None,
    ) -> list[Resolution]:
        """Consume one chord and return whatever it resolved (possibly nothing)."""
        if now is None:
            now = self._clock()
        out = self.tick(now, accepts=accepts, text_input=text_input)

        state = self._state
        if isinstance(state, PendingSequence):
            buffer = state.buffer + (chord,)
            found = self.table.match(buffer, accepts, text_input)
            if found.action is not None:
                self._state = _IDLE
                out.append(Resolution(found.action, chord))
                return out
            if found.has_longer:
                self._state = PendingSequence(buffer, now + self.timeout_seconds)
                return out
            # Broken sequence: drop the buffer, retry this chord from scratch.
            self._state = _IDLE

        out.extend(self._resolve_fresh(chord, accepts, text_input, now))
        return out

    def tick(
        self,
        now: float | None = None,
        *,
        accepts: Collection[Action] | None = None,
        text_input: bool = False,
    ) -> list[Resolution]:
        """Expire a stale pending sequence.

        The first buffered chord is resolved on its own and the rest are fed
        again, so an abandoned ``g`` still acts as ``g`` would alone.
        """
        if now is None:
            now = self._clock()
        state = self._state
        if not isinstance(state, PendingSequence) or now < state.deadline:
            return []

        self._state = _IDLE
        first, rest = state.buffer[0], state.buffer[1:]
        single = self.table.match((first,), accepts, text_input)
        out = [Resolution(single.action, first)]
        for chord in rest:
            out.extend(self.feed(chord, accepts=accepts, text_input=text_input, now=now))
        return out

    def _resolve_fresh(
        self,
        chord: Chord,
        accepts: Collection[Action] | None,
        text_input: bool,
        now: float,
    ) -> list[Resolution]:
        found = self.table.match((chord,), accepts, text_input)
        if found.action is not None:
            return [Resolution(found.action, chord)]
        if found.has_longer:
            self._state = PendingSequence((chord,), now + self.timeout_seconds)
            return []
        return [Resolution(None, chord)]


__all__ = [
    "DEFAULT_SEQUENCE_TIMEOUT_SECONDS",
    "Idle",
    "KeyResolver",
    "PendingSequence",
    "Resolution",
    "ResolverState",
]
