"""Immutable action binding table built once from configuration."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass

from ..actions import Action
from .keys import Sequence, format_sequence, parse_sequence_spec


@dataclass(frozen=True)
class KeyBinding:
    """Mapping from one chord sequence to a single action."""

    action: Action
    sequence: Sequence


@dataclass(frozen=True)
class BindingMatch:
    """Outcome of testing a chord buffer against the table.

    ``action`` is the first-declared exact match, if any. ``has_longer`` says
    whether some binding continues past the buffer.
    """

    action: Action | None
    has_longer: bool

    @property
    def is_empty(self) -> bool:
        return self.action is None and not self.has_longer


@dataclass(frozen=True)
class BindingOverlap:
    """Two actions reachable through the same (or a shadowing) sequence."""

    sequence: Sequence
    first: Action
    second: Action
    shadowed: bool = False

    def describe(self) -> str:
        verb = "shadows a longer binding of" if self.shadowed else "is also bound to"
        return f"'{format_sequence(self.sequence)}' ({self.first.value}) {verb} {self.second.value}"


class BindingTable:
    """Ordered ``Action -> sequences`` table.

    Declaration order is preserved and is the only conflict policy: when a
    buffer exactly matches bindings of several actions, the first declared
    one wins.
    """

    def __init__(self, bindings: Iterable[KeyBinding] = ()) -> None:
        ordered: list[KeyBinding] = []
        seen: set[KeyBinding] = set()
        for binding in bindings:
            if not binding.sequence or binding in seen:
                continue
            seen.add(binding)
            ordered.append(binding)
        self._bindings: tuple[KeyBinding, ...] = tuple(ordered)

    @classmethod
    def from_specs(cls, specs: Iterable[tuple[Action, Iterable[str]]]) -> BindingTable:
        """Build a table from ``(action, key-spec strings)`` pairs.

        Specs outside the key grammar are dropped without error.
        """
        bindings: list[KeyBinding] = []
        for action, raw_specs in specs:
            for raw in raw_specs:
                sequence = parse_sequence_spec(raw)
                if sequence is None:
                    continue
                bindings.append(KeyBinding(action=action, sequence=sequence))
        return cls(bindings)

    @property
    def bindings(self) -> tuple[KeyBinding, ...]:
        return self._bindings

    def sequences_for(self, action: Action) -> tuple[Sequence, ...]:
        return tuple(binding.sequence for binding in self._bindings if binding.action is action)

    def actions(self) -> tuple[Action, ...]:
        out: list[Action] = []
        for binding in self._bindings:
            if binding.action not in out:
                out.append(binding.action)
        return tuple(out)

    def match(
        self,
        buffer: Sequence,
        accepts: Collection[Action] | None = None,
        text_input: bool = False,
    ) -> BindingMatch:
        """Test ``buffer`` for an exact and/or prefix match.

        ``accepts`` restricts matching to the actions meaningful in the caller's
        context. With ``text_input`` set, bindings that start with a plain
        printable chord are skipped so typing is never intercepted.
        """
        exact: Action | None = None
        has_longer = False
        size = len(buffer)
        for binding in self._bindings:
            if accepts is not None and binding.action not in accepts:
                continue
            sequence = binding.sequence
            if text_input and sequence[0].is_text:
                continue
            if len(sequence) == size:
                if exact is None and sequence == buffer:
                    exact = binding.action
            elif len(sequence) > size and sequence[:size] == buffer:
                has_longer = True
        return BindingMatch(action=exact, has_longer=has_longer)

    def overlaps(self, scopes: Iterable[Collection[Action]] | None = None) -> list[BindingOverlap]:
        """List bindings where declaration order silently picks a winner.

        Covers identical sequences bound to different actions and single
        chords bound alone that also start a longer sequence. With ``scopes``,
        only pairs of actions that can be active together are reported.
        """
        scope_list = [frozenset(scope) for scope in scopes] if scopes is not None else None

        def share_scope(first: Action, second: Action) -> bool:
            if scope_list is None:
                return True
            return any(first in scope and second in scope for scope in scope_list)

        found: list[BindingOverlap] = []
        for idx, earlier in enumerate(self._bindings):
            for later in self._bindings[idx + 1 :]:
                if earlier.action is later.action or not share_scope(earlier.action, later.action):
                    continue
                if earlier.sequence == later.sequence:
                    found.append(BindingOverlap(earlier.sequence, earlier.action, later.action))
                    continue
                short, long = sorted((earlier, later), key=lambda item: len(item.sequence))
                if long.sequence[: len(short.sequence)] == short.sequence:
                    found.append(BindingOverlap(short.sequence, short.action, long.action, shadowed=True))
        return found


__all__ = [
    "KeyBinding",
    "BindingMatch",
    "BindingOverlap",
    "BindingTable",
]
