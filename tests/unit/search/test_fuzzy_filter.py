"""Smart-case fuzzy ranking tests."""

from __future__ import annotations

import unittest

from lazybrowse.search.fuzzy import FuzzyFilter, fuzzy_filter, fuzzy_score, is_case_sensitive_query


class FuzzyScoreTests(unittest.TestCase):
    def test_non_subsequence_has_no_score(self) -> None:
        self.assertIsNone(fuzzy_score("xyz", "main.rs"))
        self.assertIsNone(fuzzy_score("nm", "main"))

    def test_contiguous_match_beats_scattered_match(self) -> None:
        contiguous = fuzzy_score("main", "main.rs")
        scattered = fuzzy_score("main", "my_awesome_index_name")
        self.assertIsNotNone(contiguous)
        self.assertIsNotNone(scattered)
        self.assertGreater(contiguous, scattered)

    def test_boundary_match_scores_higher(self) -> None:
        self.assertGreater(fuzzy_score("b", "foo_bar"), fuzzy_score("b", "foobar"))

    def test_smart_case(self) -> None:
        self.assertFalse(is_case_sensitive_query("main"))
        self.assertTrue(is_case_sensitive_query("Main"))
        self.assertIsNotNone(fuzzy_score("main", "MAIN.RS"))
        self.assertIsNone(fuzzy_score("Main", "main.rs"))


class FuzzyFilterTests(unittest.TestCase):
    def test_lowercase_query_ranks_both_main_files_first(self) -> None:
        labels = ["main.rs", "Main.rs", "remainder.rs"]
        ranked = fuzzy_filter("main", labels)
        self.assertEqual(ranked[:2], ["main.rs", "Main.rs"])
        self.assertEqual(ranked, fuzzy_filter("main", labels))

    def test_uppercase_query_is_case_sensitive(self) -> None:
        self.assertEqual(fuzzy_filter("Main", ["main.rs", "Main.rs", "remainder.rs"]), ["Main.rs"])

    def test_empty_query_keeps_everything_in_order(self) -> None:
        labels = ["b", "a", "c"]
        self.assertEqual(fuzzy_filter("", labels), labels)

    def test_equal_scores_keep_original_order(self) -> None:
        labels = ["alpha.txt", "alpha.log", "alpha.md5"]
        self.assertEqual(fuzzy_filter("alpha", labels), ["alpha.txt", "alpha.log", "alpha.md5"])

    def test_filter_uses_label_function(self) -> None:
        items = [("x", "notes.md"), ("y", "main.py"), ("z", "setup.cfg")]
        fuzzy = FuzzyFilter(label=lambda item: item[1])
        self.assertEqual(fuzzy.filter("py", items), [("y", "main.py")])
        self.assertEqual(fuzzy.match_indices("py", items), [1])


if __name__ == "__main__":
    unittest.main()
