# tests/test_formatting.py

"""Tests for display formatting helpers."""

import unittest
from datetime import datetime

from classifieds.cli.formatting import (
    format_category_name,
    format_price,
    format_timestamp,
)


class TestFormatting(unittest.TestCase):
    """Price, category and timestamp rendering."""

    def test_zero_price_is_free(self) -> None:
        """A zero price renders as FREE."""
        self.assertEqual(format_price(0), "FREE")
        self.assertEqual(format_price(0.0), "FREE")

    def test_price_two_decimals(self) -> None:
        """Non-zero prices render in dollars with two decimals."""
        self.assertEqual(format_price(5), "$5.00")
        self.assertEqual(format_price(1234.5), "$1234.50")

    def test_category_name(self) -> None:
        """Underscores become ampersands."""
        self.assertEqual(format_category_name("cars_trucks"), "cars & trucks")
        self.assertEqual(format_category_name("books"), "books")

    def test_timestamp(self) -> None:
        """Timestamps render to the minute; None is N/A."""
        self.assertEqual(
            format_timestamp(datetime(2026, 2, 14, 15, 30, 45)),
            "2026-02-14 15:30",
        )
        self.assertEqual(format_timestamp(None), "N/A")


if __name__ == "__main__":
    unittest.main()
