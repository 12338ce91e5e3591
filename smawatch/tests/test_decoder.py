"""
Unit tests for the register decoder.

Tests verify:
- Words are assembled high word first into an unsigned integer.
- Values below the sanity ceiling are divided by 10**decimals.
- Values at or above the ceiling decode as exactly 0.0.
- SMA "not available" codes (all ones) decode as 0.0.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import pytest
from smawatch.src.decoder import DEFAULT_SANITY_CEILING, decode_scaled, decode_unsigned


class TestDecodeUnsigned:
    """Big-endian word assembly."""

    def test_single_word(self) -> None:
        assert decode_unsigned([0x1234]) == 0x1234

    def test_two_words_high_first(self) -> None:
        assert decode_unsigned([0x0001, 0x0002]) == 0x00010002

    def test_all_ones_is_unsigned(self) -> None:
        assert decode_unsigned([0xFFFF, 0xFFFF]) == 0xFFFFFFFF

    def test_words_are_masked_to_16_bits(self) -> None:
        assert decode_unsigned([0x1FFFF]) == 0xFFFF

    def test_empty_is_zero(self) -> None:
        assert decode_unsigned([]) == 0


class TestDecodeScaled:
    """Scaling and the sanity ceiling."""

    @pytest.mark.parametrize(
        ("raw", "decimals", "expected"),
        [
            (8123, 3, 8.123),
            (34567, 2, 345.67),
            (2804, 0, 2804.0),
            (0, 3, 0.0),
            (999_999, 0, 999_999.0),
        ],
    )
    def test_below_ceiling_is_scaled(self, raw: int, decimals: int, expected: float) -> None:
        words = [(raw >> 16) & 0xFFFF, raw & 0xFFFF]
        assert decode_scaled(words, decimals) == pytest.approx(expected)

    def test_at_ceiling_is_zero(self) -> None:
        raw = DEFAULT_SANITY_CEILING
        words = [(raw >> 16) & 0xFFFF, raw & 0xFFFF]
        assert decode_scaled(words, 0) == 0.0

    def test_above_ceiling_is_zero(self) -> None:
        raw = DEFAULT_SANITY_CEILING + 1
        words = [(raw >> 16) & 0xFFFF, raw & 0xFFFF]
        assert decode_scaled(words, 2) == 0.0

    def test_not_available_code_is_zero(self) -> None:
        assert decode_scaled([0xFFFF, 0xFFFF], 3) == 0.0
        assert decode_scaled([0x8000, 0x0000], 2) == 0.0

    def test_custom_ceiling(self) -> None:
        assert decode_scaled([0, 500], 0, sanity_ceiling=500) == 0.0
        assert decode_scaled([0, 499], 0, sanity_ceiling=500) == 499.0
