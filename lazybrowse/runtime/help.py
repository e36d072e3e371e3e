"""Key binding reference shown by the help overlay."""

from __future__ import annotations

from ..actions import ACTION_HELP
from ..input.key_registry import BindingTable
from ..input.keys import format_sequence


def help_lines(table: BindingTable) -> tuple[str, ...]:
    """One aligned ``keys  description`` line per bound action, in table order."""
    rows: list[tuple[str, str]] = []
    for action in table.actions():
        keys = ", ".join(format_sequence(sequence) for sequence in table.sequences_for(action))
        rows.append((keys, ACTION_HELP.get(action, action.value)))
    if not rows:
        return ()
    width = max(len(keys) for keys, _text in rows)
    return tuple(f"{keys.ljust(width)}  {text}" for keys, text in rows)


__all__ = ["help_lines"]
