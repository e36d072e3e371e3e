"""Binding table matching and overlap lint tests."""

from __future__ import annotations

import unittest

from lazybrowse.actions import Action
from lazybrowse.input.key_registry import BindingTable, KeyBinding
from lazybrowse.input.keys import Chord


class BindingTableTests(unittest.TestCase):
    def test_from_specs_keeps_declaration_order_and_drops_bad_specs(self) -> None:
        table = BindingTable.from_specs(
            [
                (Action.QUIT, ("Ctrl-q", "Bogus-key")),
                (Action.MOVE_UP, ("k", "Up")),
            ]
        )

        self.assertEqual(
            table.bindings,
            (
                KeyBinding(Action.QUIT, (Chord("q", ctrl=True),)),
                KeyBinding(Action.MOVE_UP, (Chord("k"),)),
                KeyBinding(Action.MOVE_UP, (Chord("Up"),)),
            ),
        )
        self.assertEqual(table.actions(), (Action.QUIT, Action.MOVE_UP))
        self.assertEqual(table.sequences_for(Action.MOVE_UP), ((Chord("k"),), (Chord("Up"),)))

    def test_duplicate_bindings_collapse(self) -> None:
        table = BindingTable.from_specs([(Action.MOVE_UP, ("k", "k"))])
        self.assertEqual(len(table.bindings), 1)

    def test_match_reports_prefix(self) -> None:
        table = BindingTable.from_specs([(Action.JUMP_TO_TOP, ("g g",))])

        partial = table.match((Chord("g"),))
        self.assertIsNone(partial.action)
        self.assertTrue(partial.has_longer)

        full = table.match((Chord("g"), Chord("g")))
        self.assertEqual(full.action, Action.JUMP_TO_TOP)
        self.assertFalse(full.has_longer)

        self.assertTrue(table.match((Chord("x"),)).is_empty)

    def test_overlaps_report_duplicates_and_shadowed_prefixes(self) -> None:
        table = BindingTable.from_specs(
            [
                (Action.COPY_PATH, ("y",)),
                (Action.YANK, ("y",)),
                (Action.MOVE_DOWN, ("g",)),
                (Action.JUMP_TO_TOP, ("gg",)),
            ]
        )

        overlaps = table.overlaps()

        self.assertEqual(len(overlaps), 2)
        duplicate, shadow = overlaps
        self.assertEqual((duplicate.first, duplicate.second), (Action.COPY_PATH, Action.YANK))
        self.assertFalse(duplicate.shadowed)
        self.assertEqual((shadow.first, shadow.second), (Action.MOVE_DOWN, Action.JUMP_TO_TOP))
        self.assertTrue(shadow.shadowed)
        for overlap in overlaps:
            self.assertTrue(overlap.describe())

    def test_overlaps_ignore_actions_that_never_share_a_scope(self) -> None:
        table = BindingTable.from_specs([(Action.COPY_PATH, ("y",)), (Action.YANK, ("y",))])
        scopes = [{Action.COPY_PATH}, {Action.YANK}]
        self.assertEqual(table.overlaps(scopes), [])


if __name__ == "__main__":
    unittest.main()
