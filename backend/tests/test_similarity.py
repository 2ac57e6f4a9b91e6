"""Unit tests for attribute code, label and option-set similarity."""

from __future__ import annotations

import unittest

from attribute_insight.duplicates.similarity import (
    character_overlap,
    code_similarity,
    label_similarity,
    normalize_code,
    set_overlap,
)


class SimilarityTests(unittest.TestCase):
    def test_normalize_code_strips_decorations(self) -> None:
        self.assertEqual(normalize_code("attr_Farbe_select"), "farbe")
        self.assertEqual(normalize_code("product_gn_groesse"), "gngroesse")
        self.assertEqual(normalize_code("Breite"), "breite")

    def test_identical_codes_score_one(self) -> None:
        for code in ("breite", "gn_groesse", "attr_color_dropdown", "x"):
            self.assertEqual(code_similarity(code, code), 1.0)

    def test_decorated_variants_score_one(self) -> None:
        self.assertEqual(code_similarity("farbe", "attr_farbe_select"), 1.0)
        self.assertEqual(code_similarity("gn_groesse", "gngroesse"), 1.0)

    def test_code_similarity_is_symmetric(self) -> None:
        pairs = [
            ("breite", "breite_mm"),
            ("leistung", "nennleistung"),
            ("color", "farbe"),
            ("temperaturbereich", "temp_range"),
            ("abcde", "edcba"),
        ]
        for left, right in pairs:
            self.assertEqual(code_similarity(left, right), code_similarity(right, left), (left, right))

    def test_containment_scores_higher_than_unrelated(self) -> None:
        self.assertGreater(code_similarity("leistung", "nennleistung"), code_similarity("leistung", "material"))
        self.assertGreaterEqual(code_similarity("breite", "breite_mm"), 0.7)

    def test_code_similarity_is_bounded(self) -> None:
        for left, right in [("a", "b"), ("breite", "breite_netto"), ("kw", "kilowatt")]:
            score = code_similarity(left, right)
            self.assertGreaterEqual(score, 0.0)
            self.assertLessEqual(score, 1.0)

    def test_character_overlap_is_symmetric(self) -> None:
        self.assertEqual(character_overlap("abcd", "bcda"), character_overlap("bcda", "abcd"))
        self.assertEqual(character_overlap("", ""), 1.0)

    def test_label_similarity(self) -> None:
        self.assertEqual(label_similarity("Farbe", " farbe "), 1.0)
        self.assertEqual(label_similarity("", "Farbe"), 0.0)
        self.assertEqual(label_similarity(None, None), 0.0)
        self.assertGreater(label_similarity("Breite (mm)", "Breite"), 0.5)

    def test_set_overlap_is_case_insensitive_jaccard(self) -> None:
        self.assertEqual(set_overlap(["Rot", "Blau"], ["rot", "blau"]), 1.0)
        self.assertAlmostEqual(set_overlap(["rot", "blau"], ["rot", "gruen"]), 1 / 3)
        self.assertEqual(set_overlap([], []), 0.0)


if __name__ == "__main__":
    unittest.main()
