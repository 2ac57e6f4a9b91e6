"""Tests for caller-facing error messages."""

from __future__ import annotations

import sqlite3
import unittest

from sqlalchemy.exc import IntegrityError, StatementError

from attribute_insight.errors import NotFoundError, sanitize_error


class SanitizeErrorTests(unittest.TestCase):
    def test_plain_exception_is_collapsed_to_one_line(self) -> None:
        self.assertEqual(sanitize_error(ValueError("bad\n   value")), "ValueError: bad value")
        self.assertEqual(sanitize_error(NotFoundError("Proposal 4 not found")), "NotFoundError: Proposal 4 not found")
        self.assertEqual(sanitize_error(RuntimeError()), "RuntimeError")

    def test_long_messages_are_capped(self) -> None:
        rendered = sanitize_error(ValueError("x" * 900))
        self.assertEqual(rendered, "ValueError: " + "x" * 500)

    def test_database_errors_hide_statement_and_parameters(self) -> None:
        exc = IntegrityError(
            "UPDATE catalog_entities SET attribute_set_id=? WHERE catalog_entities.id = ?",
            (2, 1),
            sqlite3.IntegrityError("locked row"),
        )

        rendered = sanitize_error(exc)

        self.assertEqual(rendered, "IntegrityError: locked row")
        self.assertNotIn("UPDATE", rendered)
        self.assertNotIn("parameters", rendered)

    def test_statement_error_without_driver_error_shows_only_the_type(self) -> None:
        exc = StatementError("A value is required for bind parameter 'id'", "SELECT 1", {}, None)
        self.assertEqual(sanitize_error(exc), "StatementError")


if __name__ == "__main__":
    unittest.main()
